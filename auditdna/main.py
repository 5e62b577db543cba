# auditdna/main.py

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auditdna.api.middleware import CorrelationIdMiddleware, RequestAuditMiddleware
from auditdna.api.routers import engines, enterprise, health
from auditdna.application.exceptions import ApplicationError
from auditdna.application.notifications import NotificationService
from auditdna.application.tenant_provisioner import TenantProvisioner
from auditdna.application.tenant_registry import TenantRegistry
from auditdna.application.tenant_resolver import TenantResolver
from auditdna.config.logging import configure_logging
from auditdna.config.settings import AppSettings, get_settings
from auditdna.domain.exceptions import (
    CapabilityNotImplementedError,
    DomainError,
    DomainValidationError,
    EngineAlreadyRegisteredError,
    EngineNotFoundError,
    InvalidStatusTransitionError,
    NotFoundError,
    TenantConflictError,
    TenantInactiveError,
    TenantRequiredError,
)
from auditdna.engines.registry import build_default_registry
from auditdna.security.encryption import EncryptionService
from auditdna.security.exceptions import SecurityError
from auditdna.security.tokens import TokenService

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


async def _build_repositories(app: FastAPI, settings: AppSettings):
    """(engine repository, tenant repository, tenant storage factory) for the configured backend."""
    if settings.storage_backend == "postgres":
        from auditdna.infrastructure.database.engine_repository_db import DbEngineRepository
        from auditdna.infrastructure.database.session import create_engine, create_schema, create_session_factory
        from auditdna.infrastructure.database.tenant_repository_db import (
            DbTenantRepository,
            SqlTenantStorageFactory,
        )

        db_engine = create_engine(settings.database_url)
        await create_schema(db_engine)
        app.state.db_engine = db_engine
        session_factory = create_session_factory(db_engine)
        return (
            DbEngineRepository(session_factory),
            DbTenantRepository(session_factory),
            SqlTenantStorageFactory(db_engine),
        )

    from auditdna.infrastructure.memory.engine_repository_memory import InMemoryEngineRepository
    from auditdna.infrastructure.memory.tenant_repository_memory import (
        InMemoryTenantRepository,
        InMemoryTenantStorageFactory,
    )

    return InMemoryEngineRepository(), InMemoryTenantRepository(), InMemoryTenantStorageFactory()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build process-scoped services onto app.state; close them on shutdown."""
    settings: AppSettings = app.state.settings
    app.state.db_engine = None
    engine_repository, tenant_repository, storage_factory = await _build_repositories(app, settings)

    publisher = None
    if settings.notifications_enabled:
        from auditdna.infrastructure.messaging.rabbitmq_publisher import RabbitMQPublisher

        publisher = RabbitMQPublisher(settings.rabbitmq_url)

    tenant_registry = TenantRegistry(tenant_repository, storage_factory)
    encryption = EncryptionService(settings.encryption_key) if settings.encryption_key else None

    app.state.engine_repository = engine_repository
    app.state.engine_registry = await build_default_registry(engine_repository, settings)
    app.state.tenant_registry = tenant_registry
    app.state.tenant_resolver = TenantResolver(
        tenant_registry,
        TokenService(settings.jwt_secret, settings.jwt_algorithm),
        settings.tenant_base_domain,
    )
    app.state.tenant_provisioner = TenantProvisioner(
        tenant_repository,
        storage_factory,
        tenant_registry,
        settings.tenant_base_domain,
        encryption=encryption,
    )
    app.state.notifications = NotificationService(publisher, settings.external_call_timeout_seconds)
    logger.info(
        "application_started",
        extra={
            "storage_backend": settings.storage_backend,
            "engine_count": len(app.state.engine_registry),
            "notifications_enabled": publisher is not None,
        },
    )
    try:
        yield
    finally:
        await tenant_registry.close()
        if publisher is not None:
            await publisher.close()
        if app.state.db_engine is not None:
            await app.state.db_engine.dispose()
        logger.info("application_stopped")


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Middleware order: last added runs first (outermost). Request flow: CorrelationId -> RequestAudit.
    app.add_middleware(RequestAuditMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = first.get("msg", "Invalid request")
        return _error(400, f"{field}: {message}" if field else message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(DomainValidationError)
    async def domain_validation_error_handler(request, exc: DomainValidationError):
        return _error(400, exc.message)

    @app.exception_handler(TenantRequiredError)
    async def tenant_required_error_handler(request, exc: TenantRequiredError):
        return _error(400, exc.message)

    @app.exception_handler(EngineNotFoundError)
    async def engine_not_found_error_handler(request, exc: EngineNotFoundError):
        return _error(404, exc.message, availableEngines=exc.available)

    @app.exception_handler(NotFoundError)
    async def not_found_error_handler(request, exc: NotFoundError):
        return _error(404, exc.message)

    @app.exception_handler(TenantInactiveError)
    async def tenant_inactive_error_handler(request, exc: TenantInactiveError):
        return _error(404, exc.message)

    @app.exception_handler(TenantConflictError)
    @app.exception_handler(EngineAlreadyRegisteredError)
    @app.exception_handler(InvalidStatusTransitionError)
    async def conflict_error_handler(request, exc: DomainError):
        return _error(409, exc.message)

    @app.exception_handler(CapabilityNotImplementedError)
    async def capability_error_handler(request, exc: CapabilityNotImplementedError):
        logger.error("engine_capability_missing", extra={"engine_name": exc.engine_name, "capability": exc.capability})
        return _error(500, exc.message)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request, exc: DomainError):
        return _error(400, exc.message)

    @app.exception_handler(ApplicationError)
    @app.exception_handler(SecurityError)
    async def internal_error_handler(request, exc: Exception):
        logger.error("request_failed", extra={"error_type": type(exc).__name__, "error": str(exc)})
        return _error(500, INTERNAL_ERROR)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request, exc: Exception):
        logger.exception("unexpected_error")
        return _error(500, INTERNAL_ERROR)

    # Routers: /health, /api/engines, /api/enterprise
    app.include_router(health.router)
    app.include_router(engines.router, prefix="/api/engines")
    app.include_router(enterprise.router, prefix="/api/enterprise")
    return app


settings = get_settings()
configure_logging(settings.log_level)

app = create_app(settings)
