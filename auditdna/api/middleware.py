"""API middleware: correlation ID and request audit line."""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from auditdna.core.context import correlation_id_ctx

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Generate or preserve correlation ID; attach to request.state, response header, and logging context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        correlation_id_ctx.set(correlation_id)

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class RequestAuditMiddleware(BaseHTTPMiddleware):
    """After response: log one structured line (path, method, status, tenant if resolved, duration)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "request_audit",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "resolved_tenant_id": getattr(request.state, "tenant_id", None),
                "duration_ms": round((time.perf_counter() - started) * 1000, 3),
            },
        )
        return response
