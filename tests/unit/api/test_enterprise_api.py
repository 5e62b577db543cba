"""Enterprise routes: provisioning, tenant resolution, admin operations and SSO."""

import pytest
from httpx import AsyncClient

from auditdna.security.encryption import EncryptionService
from auditdna.security.tokens import TokenService


async def _create(client: AsyncClient, body) -> str:
    r = await client.post("/api/enterprise/tenants", json=body)
    assert r.status_code == 201, r.text
    return r.json()["tenantId"]


@pytest.mark.asyncio
async def test_create_tenant(async_client: AsyncClient, tenant_body):
    r = await async_client.post("/api/enterprise/tenants", json=tenant_body)
    assert r.status_code == 201
    data = r.json()
    assert data["success"] is True
    assert data["tenantId"].startswith("acmelending_")
    assert data["domain"] == f"{data['tenantId']}.auditdna.com"
    assert data["adminLoginUrl"] == f"https://{data['domain']}/admin"


@pytest.mark.asyncio
async def test_create_tenant_validates_body(async_client: AsyncClient, tenant_body):
    r = await async_client.post("/api/enterprise/tenants", json={"companyName": "No Admin"})
    assert r.status_code == 400
    bad_email = {**tenant_body, "adminUser": {**tenant_body["adminUser"], "email": "nobody"}}
    r = await async_client.post("/api/enterprise/tenants", json=bad_email)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_domain_conflict(async_client: AsyncClient, tenant_body):
    await _create(async_client, {**tenant_body, "domain": "loans.acme.com"})
    r = await async_client.post("/api/enterprise/tenants", json={**tenant_body, "domain": "loans.acme.com"})
    assert r.status_code == 409
    assert r.json() == {"success": False, "error": "Domain already exists"}


@pytest.mark.asyncio
async def test_tenant_scoped_route_needs_identification(async_client: AsyncClient):
    r = await async_client.get("/api/enterprise/tenant")
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Tenant identification required"}


@pytest.mark.asyncio
async def test_unknown_tenant_is_generic_404(async_client: AsyncClient):
    r = await async_client.get("/api/enterprise/tenant", headers={"X-Tenant-ID": "ghost_00000000"})
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Tenant not found or inactive"}


@pytest.mark.asyncio
async def test_resolve_by_header_subdomain_and_token(app, async_client: AsyncClient, tenant_body):
    tenant_id = await _create(async_client, tenant_body)

    by_header = await async_client.get("/api/enterprise/tenant", headers={"X-Tenant-ID": tenant_id})
    assert by_header.status_code == 200
    assert by_header.json()["tenant"]["tenantId"] == tenant_id

    by_host = await async_client.get("/api/enterprise/tenant", headers={"Host": f"{tenant_id}.auditdna.com"})
    assert by_host.status_code == 200
    assert by_host.json()["tenant"]["companyName"] == "Acme Lending"

    settings = app.state.settings
    token = TokenService(settings.jwt_secret, settings.jwt_algorithm).issue("admin", tenant_id=tenant_id)
    by_token = await async_client.get("/api/enterprise/tenant", headers={"Authorization": f"Bearer {token}"})
    assert by_token.status_code == 200


@pytest.mark.asyncio
async def test_suspend_then_reactivate(async_client: AsyncClient, tenant_body):
    tenant_id = await _create(async_client, tenant_body)
    headers = {"X-Tenant-ID": tenant_id}

    r = await async_client.post(f"/api/enterprise/tenants/{tenant_id}/suspend", json={"reason": "Overdue"})
    assert r.status_code == 200
    assert r.json()["tenant"]["suspended"] is True
    assert r.json()["tenant"]["suspensionReason"] == "Overdue"

    r = await async_client.get("/api/enterprise/tenant", headers=headers)
    assert r.status_code == 404
    assert r.json()["error"] == "Tenant not found or inactive"

    r = await async_client.post(f"/api/enterprise/tenants/{tenant_id}/reactivate")
    assert r.status_code == 200
    r = await async_client.get("/api/enterprise/tenant", headers=headers)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_suspend_without_body_uses_default_reason(async_client: AsyncClient, tenant_body):
    tenant_id = await _create(async_client, tenant_body)
    r = await async_client.post(f"/api/enterprise/tenants/{tenant_id}/suspend")
    assert r.status_code == 200
    assert r.json()["tenant"]["suspensionReason"] == "Suspended by platform administrator"


@pytest.mark.asyncio
async def test_admin_operation_on_unknown_tenant(async_client: AsyncClient):
    r = await async_client.post("/api/enterprise/tenants/ghost_00000000/reactivate")
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Tenant 'ghost_00000000' not found"}


@pytest.mark.asyncio
async def test_delete_is_soft(app, async_client: AsyncClient, tenant_body):
    tenant_id = await _create(async_client, tenant_body)
    r = await async_client.delete(f"/api/enterprise/tenants/{tenant_id}")
    assert r.status_code == 200
    assert r.json() == {"success": True, "tenantId": tenant_id, "active": False}

    r = await async_client.get("/api/enterprise/tenant", headers={"X-Tenant-ID": tenant_id})
    assert r.status_code == 404
    assert await app.state.tenant_provisioner.get_tenant(tenant_id) is not None


@pytest.mark.asyncio
async def test_update_current_tenant(async_client: AsyncClient, tenant_body):
    tenant_id = await _create(async_client, tenant_body)
    headers = {"X-Tenant-ID": tenant_id}
    r = await async_client.patch(
        "/api/enterprise/tenant", json={"branding": {"primaryColor": "#222222"}}, headers=headers
    )
    assert r.status_code == 200
    assert r.json()["tenant"]["branding"]["primaryColor"] == "#222222"

    r = await async_client.get("/api/enterprise/tenant", headers=headers)
    assert r.json()["tenant"]["branding"]["primaryColor"] == "#222222"

    r = await async_client.patch("/api/enterprise/tenant", json={}, headers=headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_list_users(async_client: AsyncClient, tenant_body):
    tenant_id = await _create(async_client, tenant_body)
    r = await async_client.get("/api/enterprise/tenant/users", headers={"X-Tenant-ID": tenant_id})
    assert r.status_code == 200
    users = r.json()["users"]
    assert [u["email"] for u in users] == ["admin@acme.com"]
    assert users[0]["role"] == "tenant_admin"
    assert "password_hash" not in users[0]
    assert "passwordHash" not in users[0]


@pytest.mark.asyncio
async def test_configure_oidc(app, async_client: AsyncClient, tenant_body):
    tenant_id = await _create(async_client, tenant_body)
    r = await async_client.post(
        "/api/enterprise/sso/oidc",
        json={
            "clientId": "acme-portal",
            "clientSecret": "very-secret",
            "authorizationURL": "https://idp.acme.com/authorize",
            "tokenURL": "https://idp.acme.com/token",
            "returnUrl": "/dashboard",
        },
        headers={"X-Tenant-ID": tenant_id},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["provider"] == "oidc"
    assert data["loginUrl"] == f"https://{tenant_id}.auditdna.com/auth/oidc/login?returnUrl=%2Fdashboard"

    tenant = await app.state.tenant_provisioner.get_tenant(tenant_id)
    assert tenant.oidc.client_secret != "very-secret"
    assert EncryptionService(app.state.settings.encryption_key).decrypt(tenant.oidc.client_secret) == "very-secret"

    r = await async_client.get("/api/enterprise/tenant", headers={"X-Tenant-ID": tenant_id})
    assert r.json()["tenant"]["features"]["sso"] is True
    assert r.json()["tenant"]["integrations"]["sso"]["oidc"]["clientSecret"] == "***"


@pytest.mark.asyncio
async def test_configure_saml_missing_fields(async_client: AsyncClient, tenant_body):
    tenant_id = await _create(async_client, tenant_body)
    r = await async_client.post(
        "/api/enterprise/sso/saml", json={"entryPoint": "https://idp"}, headers={"X-Tenant-ID": tenant_id}
    )
    assert r.status_code == 400
    assert "certificate" in r.json()["error"]
