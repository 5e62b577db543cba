"""
Enterprise routes under /api/enterprise.

/tenants/... are platform operations addressed by tenant id.
/tenant, /tenant/users and /sso/{provider} act on the tenant resolved
from the request (subdomain, X-Tenant-ID or bearer token).
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Query

from auditdna.api.dependencies import get_tenant_context, get_tenant_provisioner
from auditdna.application.tenant_provisioner import TenantProvisioner, sso_login_url
from auditdna.application.tenant_resolver import TenantContext
from auditdna.domain.schemas.tenant import (
    SSOConfigRequest,
    TenantCreateRequest,
    TenantSuspendRequest,
    TenantUpdateRequest,
)

router = APIRouter()

ProvisionerDep = Annotated[TenantProvisioner, Depends(get_tenant_provisioner)]
TenantDep = Annotated[TenantContext, Depends(get_tenant_context)]


# --- platform operations ---


@router.post("/tenants", status_code=201)
async def create_tenant(body: TenantCreateRequest, provisioner: ProvisionerDep):
    result = await provisioner.create_tenant(body)
    return {"success": True, **result, "message": "Tenant created successfully"}


@router.post("/tenants/{tenantId}/suspend")
async def suspend_tenant(
    tenantId: str,
    provisioner: ProvisionerDep,
    body: Annotated[Optional[TenantSuspendRequest], Body()] = None,
):
    tenant = await provisioner.suspend_tenant(tenantId, body.reason if body else None)
    return {"success": True, "tenant": tenant.to_dict()}


@router.post("/tenants/{tenantId}/reactivate")
async def reactivate_tenant(tenantId: str, provisioner: ProvisionerDep):
    tenant = await provisioner.reactivate_tenant(tenantId)
    return {"success": True, "tenant": tenant.to_dict()}


@router.delete("/tenants/{tenantId}")
async def deactivate_tenant(tenantId: str, provisioner: ProvisionerDep):
    tenant = await provisioner.deactivate_tenant(tenantId)
    return {"success": True, "tenantId": tenant.tenant_id, "active": tenant.active}


# --- tenant-scoped ---


@router.get("/tenant")
async def current_tenant(context: TenantDep):
    return {"success": True, "tenant": context.config.to_dict()}


@router.patch("/tenant")
async def update_current_tenant(body: TenantUpdateRequest, context: TenantDep, provisioner: ProvisionerDep):
    tenant = await provisioner.update_tenant(context.tenant_id, body.branding, body.settings, body.features)
    return {"success": True, "tenant": tenant.to_dict()}


@router.get("/tenant/users")
async def tenant_users(
    context: TenantDep,
    provisioner: ProvisionerDep,
    limit: int = Query(100, ge=1, le=500),
):
    users = await provisioner.list_users(context.storage, limit=limit)
    return {"success": True, "tenantId": context.tenant_id, "users": users}


@router.post("/sso/{provider}")
async def configure_sso(provider: str, body: SSOConfigRequest, context: TenantDep, provisioner: ProvisionerDep):
    tenant = await provisioner.configure_sso(context.tenant_id, provider, body)
    kind = provider.lower()
    return {
        "success": True,
        "message": f"{kind.upper()} SSO configured successfully",
        "provider": kind,
        "loginUrl": sso_login_url(tenant, kind, body.return_url),
    }
