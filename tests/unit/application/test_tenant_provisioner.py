"""TenantProvisioner: provisioning, rollback, conflicts and admin operations."""

import re

import pytest

from auditdna.application.exceptions import StorageError
from auditdna.application.tenant_provisioner import (
    TenantProvisioner,
    generate_tenant_id,
    slugify_company,
    sso_login_url,
)
from auditdna.application.tenant_registry import TenantRegistry
from auditdna.application.tenant_repository import STANDARD_INDEXES
from auditdna.application.tenant_resolver import TenantResolver
from auditdna.domain.exceptions import (
    DomainValidationError,
    TenantConflictError,
    TenantInactiveError,
    TenantNotFoundError,
)
from auditdna.domain.schemas.tenant import SSOConfigRequest, TenantCreateRequest
from auditdna.infrastructure.memory.tenant_repository_memory import (
    InMemoryTenantRepository,
    InMemoryTenantStorageFactory,
)
from auditdna.security.encryption import EncryptionService
from auditdna.security.tokens import TokenService

ENCRYPTION_KEY = "provisioner-test-key-at-least-32-characters"


def _fake_hash(password: str) -> str:
    return f"hashed::{password[::-1]}"


def _request(company="Acme Lending Co.", domain=None, **extra) -> TenantCreateRequest:
    body = {
        "companyName": company,
        "adminUser": {"email": "ops@acme.com", "password": "s3cret-passw0rd", "firstName": "Ada"},
        **extra,
    }
    if domain:
        body["domain"] = domain
    return TenantCreateRequest.model_validate(body)


class _FailingInsertFactory(InMemoryTenantStorageFactory):
    async def open(self, tenant_id):
        storage = await super().open(tenant_id)

        async def insert_one(collection, document):
            raise StorageError("write conflict")

        storage.insert_one = insert_one
        return storage


@pytest.fixture
def repository():
    return InMemoryTenantRepository()


@pytest.fixture
def factory():
    return InMemoryTenantStorageFactory()


@pytest.fixture
def registry(repository, factory):
    return TenantRegistry(repository, factory)


@pytest.fixture
def provisioner(repository, factory, registry):
    return TenantProvisioner(
        repository,
        factory,
        registry,
        "auditdna.com",
        encryption=EncryptionService(ENCRYPTION_KEY),
        password_hasher=_fake_hash,
    )


@pytest.fixture
def resolver(registry):
    return TenantResolver(registry, TokenService("provisioner-test-jwt-secret-32-chars-min"), "auditdna.com")


def test_slug_and_tenant_id():
    assert slugify_company("Acme Lending Co.") == "acmelendingco"
    assert slugify_company("A" * 40) == "a" * 20
    assert re.fullmatch(r"acmelendingco_[0-9a-f]{8}", generate_tenant_id("Acme Lending Co."))
    with pytest.raises(DomainValidationError):
        generate_tenant_id("!!!")


@pytest.mark.asyncio
async def test_create_tenant_provisions_namespace(provisioner, repository, factory, registry):
    result = await provisioner.create_tenant(_request())

    tenant_id = result["tenantId"]
    assert result["domain"] == f"{tenant_id}.auditdna.com"
    assert result["adminLoginUrl"] == f"https://{tenant_id}.auditdna.com/admin"

    tenant = await repository.get(tenant_id)
    assert tenant.company_name == "Acme Lending Co."
    storage = await registry.get_storage(tenant_id)
    assert factory.open_count == 1
    assert storage.index_names == {index.name for index in STANDARD_INDEXES}

    users = await storage.find("users")
    assert len(users) == 1
    assert users[0]["email"] == "ops@acme.com"
    assert users[0]["password_hash"] == _fake_hash("s3cret-passw0rd")
    assert users[0]["role"] == "tenant_admin"


@pytest.mark.asyncio
async def test_create_tenant_rejects_taken_domain(provisioner, factory):
    await provisioner.create_tenant(_request(domain="loans.acme.com"))
    with pytest.raises(TenantConflictError, match="Domain already exists"):
        await provisioner.create_tenant(_request(company="Other", domain="LOANS.acme.com"))
    assert len(factory.namespaces()) == 1


@pytest.mark.asyncio
async def test_failed_provisioning_leaves_nothing_resolvable(repository, registry, resolver, monkeypatch):
    monkeypatch.setattr(
        "auditdna.application.tenant_provisioner.generate_tenant_id", lambda name: "acmelendingco_0000beef"
    )
    factory = _FailingInsertFactory()
    provisioner = TenantProvisioner(repository, factory, registry, "auditdna.com", password_hasher=_fake_hash)

    with pytest.raises(StorageError):
        await provisioner.create_tenant(_request())

    assert await repository.list_all() == []
    assert factory.namespaces() == []
    with pytest.raises(TenantNotFoundError):
        await resolver.resolve("localhost", "acmelendingco_0000beef")


@pytest.mark.asyncio
async def test_invalid_plan_rejected_before_any_storage(provisioner, factory):
    with pytest.raises(DomainValidationError):
        await provisioner.create_tenant(_request(plan="platinum"))
    assert factory.open_count == 0


@pytest.mark.asyncio
async def test_suspend_blocks_resolution_until_reactivated(provisioner, resolver):
    tenant_id = (await provisioner.create_tenant(_request()))["tenantId"]
    await resolver.resolve("localhost", tenant_id)

    suspended = await provisioner.suspend_tenant(tenant_id, "Unpaid invoice")
    assert suspended.suspension_reason == "Unpaid invoice"
    with pytest.raises(TenantInactiveError):
        await resolver.resolve("localhost", tenant_id)

    await provisioner.reactivate_tenant(tenant_id)
    context = await resolver.resolve("localhost", tenant_id)
    assert context.config.suspended is False
    assert context.config.suspension_reason is None


@pytest.mark.asyncio
async def test_suspend_default_reason_and_unknown_tenant(provisioner):
    tenant_id = (await provisioner.create_tenant(_request()))["tenantId"]
    tenant = await provisioner.suspend_tenant(tenant_id)
    assert tenant.suspension_reason == "Suspended by platform administrator"
    with pytest.raises(TenantNotFoundError):
        await provisioner.suspend_tenant("ghost_00000000")


@pytest.mark.asyncio
async def test_deactivate_is_soft(provisioner, repository, resolver):
    tenant_id = (await provisioner.create_tenant(_request()))["tenantId"]
    await provisioner.deactivate_tenant(tenant_id)
    assert (await repository.get(tenant_id)).active is False
    with pytest.raises(TenantInactiveError):
        await resolver.resolve("localhost", tenant_id)


@pytest.mark.asyncio
async def test_update_tenant_merges_groups(provisioner):
    tenant_id = (await provisioner.create_tenant(_request()))["tenantId"]
    tenant = await provisioner.update_tenant(
        tenant_id, branding={"primaryColor": "#111111"}, features={"customDomain": True}
    )
    assert tenant.branding.primary_color == "#111111"
    assert tenant.branding.secondary_color == "#10B981"
    assert tenant.features.custom_domain is True
    with pytest.raises(DomainValidationError):
        await provisioner.update_tenant(tenant_id)


@pytest.mark.asyncio
async def test_configure_saml(provisioner):
    tenant_id = (await provisioner.create_tenant(_request()))["tenantId"]
    config = SSOConfigRequest.model_validate({"entryPoint": "https://idp.acme.com/sso", "certificate": "MIIC..."})
    tenant = await provisioner.configure_sso(tenant_id, "SAML", config)
    assert tenant.saml.enabled is True
    assert tenant.saml.issuer == f"auditdna-{tenant_id}"
    assert tenant.features.sso is True
    assert sso_login_url(tenant, "saml", "/dashboard") == (
        f"https://{tenant.domain}/auth/saml/login?returnUrl=%2Fdashboard"
    )


@pytest.mark.asyncio
async def test_configure_sso_validates_fields(provisioner):
    tenant_id = (await provisioner.create_tenant(_request()))["tenantId"]
    with pytest.raises(DomainValidationError, match="certificate"):
        await provisioner.configure_sso(tenant_id, "saml", SSOConfigRequest(entryPoint="https://idp"))
    with pytest.raises(DomainValidationError, match="Unsupported SSO provider"):
        await provisioner.configure_sso(tenant_id, "kerberos", SSOConfigRequest())


@pytest.mark.asyncio
async def test_oidc_secret_stored_encrypted(provisioner, repository):
    tenant_id = (await provisioner.create_tenant(_request()))["tenantId"]
    config = SSOConfigRequest.model_validate(
        {
            "clientId": "acme-client",
            "clientSecret": "top-secret-value",
            "authorizationURL": "https://idp.acme.com/authorize",
            "tokenURL": "https://idp.acme.com/token",
        }
    )
    await provisioner.configure_sso(tenant_id, "oidc", config)

    stored = await repository.get(tenant_id)
    assert stored.oidc.client_secret != "top-secret-value"
    assert EncryptionService(ENCRYPTION_KEY).decrypt(stored.oidc.client_secret) == "top-secret-value"
    assert stored.to_dict()["integrations"]["sso"]["oidc"]["clientSecret"] == "***"


@pytest.mark.asyncio
async def test_oidc_requires_encryption_key(repository, factory, registry):
    provisioner = TenantProvisioner(repository, factory, registry, "auditdna.com", password_hasher=_fake_hash)
    tenant_id = (await provisioner.create_tenant(_request()))["tenantId"]
    config = SSOConfigRequest(clientId="c", clientSecret="s", authorizationURL="https://a", tokenURL="https://t")
    with pytest.raises(DomainValidationError, match="encryption key"):
        await provisioner.configure_sso(tenant_id, "oidc", config)


@pytest.mark.asyncio
async def test_list_users_never_exposes_password(provisioner, registry):
    tenant_id = (await provisioner.create_tenant(_request()))["tenantId"]
    users = await provisioner.list_users(await registry.get_storage(tenant_id))
    assert users[0]["email"] == "ops@acme.com"
    assert users[0]["firstName"] == "Ada"
    assert all("password" not in key.lower() for key in users[0])
