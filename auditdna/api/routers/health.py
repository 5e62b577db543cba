from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Liveness plus the registered engine count and correlation ID from request state."""
    settings = request.app.state.settings
    return {
        "status": "ok",
        "correlation_id": getattr(request.state, "correlation_id", None),
        "environment": settings.environment,
        "version": settings.version,
        "storage_backend": settings.storage_backend,
        "engines": len(request.app.state.engine_registry),
    }
