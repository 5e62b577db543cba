"""FastAPI dependency injection. Process-scoped services live on app.state (built in the lifespan)."""

from typing import Annotated, Optional

from fastapi import Depends, Request

from auditdna.application.notifications import NotificationService
from auditdna.application.tenant_provisioner import TenantProvisioner
from auditdna.application.tenant_resolver import TenantContext, TenantResolver
from auditdna.engines.base import Engine
from auditdna.engines.registry import EngineRegistry

TENANT_HEADER = "X-Tenant-ID"
USER_HEADER = "X-User-ID"


def get_engine_registry(request: Request) -> EngineRegistry:
    return request.app.state.engine_registry


def get_tenant_resolver(request: Request) -> TenantResolver:
    return request.app.state.tenant_resolver


def get_tenant_provisioner(request: Request) -> TenantProvisioner:
    return request.app.state.tenant_provisioner


def get_notifications(request: Request) -> NotificationService:
    return request.app.state.notifications


def get_engine(
    engineName: str,
    registry: Annotated[EngineRegistry, Depends(get_engine_registry)],
) -> Engine:
    """Path-parameter engine lookup. Unknown names raise EngineNotFoundError (404)."""
    return registry.require(engineName)


async def get_tenant_context(
    request: Request,
    resolver: Annotated[TenantResolver, Depends(get_tenant_resolver)],
) -> TenantContext:
    """Resolve the tenant for tenant-scoped routes; attach its id to request.state for the audit line."""
    context = await resolver.resolve(
        request.headers.get("host"),
        request.headers.get(TENANT_HEADER),
        request.headers.get("Authorization"),
    )
    request.state.tenant_id = context.tenant_id
    return context


def get_correlation_id(request: Request) -> str:
    """Extract correlation_id from request.state (set by middleware)."""
    return getattr(request.state, "correlation_id", "") or ""


def get_actor_id(request: Request) -> Optional[str]:
    return request.headers.get(USER_HEADER) or None
