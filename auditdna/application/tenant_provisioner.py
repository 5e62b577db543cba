"""
Tenant provisioning and platform admin operations.

create_tenant order: validate, reject a taken domain, open the namespace
and create indexes, insert the administrator, publish the tenant record.
The tenant record is written last so resolution never sees a tenant whose
namespace is incomplete; any failure after the namespace is opened drops it.
"""

import asyncio
import logging
import re
import secrets
from typing import Any, Callable, Dict, List, Mapping, Optional
from urllib.parse import quote

from auditdna.application.exceptions import StorageError
from auditdna.application.tenant_registry import TenantRegistry
from auditdna.application.tenant_repository import (
    STANDARD_INDEXES,
    TenantRepository,
    TenantStorage,
    TenantStorageFactory,
)
from auditdna.domain.exceptions import DomainValidationError, TenantConflictError, TenantNotFoundError
from auditdna.domain.models.tenant import (
    OidcConfig,
    SamlConfig,
    SSOProvider,
    Tenant,
    build_tenant,
    build_tenant_admin,
)
from auditdna.domain.schemas.tenant import SSOConfigRequest, TenantCreateRequest
from auditdna.security.encryption import EncryptionService
from auditdna.security.passwords import hash_password

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 20
USERS_COLLECTION = "users"

_NON_SLUG = re.compile(r"[^a-z0-9]")


def slugify_company(company_name: str) -> str:
    """Lower-case, keep [a-z0-9], truncate."""
    return _NON_SLUG.sub("", company_name.lower())[:SLUG_MAX_LENGTH]


def generate_tenant_id(company_name: str) -> str:
    slug = slugify_company(company_name)
    if not slug:
        raise DomainValidationError("Company name must contain at least one letter or digit")
    return f"{slug}_{secrets.token_hex(4)}"


def public_user(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Users-collection document as returned by the API; credentials are never exposed."""
    return {
        "userId": document.get("user_id"),
        "email": document.get("email"),
        "role": document.get("role"),
        "firstName": document.get("first_name"),
        "lastName": document.get("last_name"),
        "permissions": document.get("permissions", []),
        "active": document.get("active", True),
        "createdAt": document.get("created_at"),
    }


class TenantProvisioner:
    def __init__(
        self,
        repository: TenantRepository,
        storage_factory: TenantStorageFactory,
        registry: TenantRegistry,
        base_domain: str,
        encryption: Optional[EncryptionService] = None,
        password_hasher: Callable[[str], str] = hash_password,
    ) -> None:
        self._repository = repository
        self._storage_factory = storage_factory
        self._registry = registry
        self._base_domain = base_domain
        self._encryption = encryption
        self._hash_password = password_hasher
        # Domain uniqueness is check-then-publish; creations are serialized.
        self._create_lock = asyncio.Lock()

    async def create_tenant(self, request: TenantCreateRequest) -> Dict[str, Any]:
        company_name = request.company_name.strip()
        if not company_name:
            raise DomainValidationError("Company name is required")
        tenant_id = generate_tenant_id(company_name)
        tenant = build_tenant(
            tenant_id=tenant_id,
            company_name=company_name,
            base_domain=self._base_domain,
            domain=(request.domain or "").strip().lower() or None,
            plan=request.plan,
            branding=request.branding,
            features=request.features,
            limits=request.limits,
            settings=request.settings,
            billing=request.billing,
        )
        admin_request = request.admin_user
        password_hash = await asyncio.to_thread(self._hash_password, admin_request.password)
        admin = build_tenant_admin(
            tenant_id=tenant_id,
            email=admin_request.email,
            password_hash=password_hash,
            first_name=admin_request.first_name,
            last_name=admin_request.last_name,
        )

        async with self._create_lock:
            if await self._repository.get_by_domain(tenant.domain) is not None:
                raise TenantConflictError("Domain already exists")

            storage: Optional[TenantStorage] = None
            try:
                storage = await self._storage_factory.open(tenant_id)
                await storage.ensure_indexes(STANDARD_INDEXES)
                await storage.insert_one(USERS_COLLECTION, admin.to_document())
                await self._repository.save(tenant)
            except Exception as e:
                await self._discard_namespace(tenant_id, storage)
                logger.error(
                    "tenant_provisioning_failed",
                    extra={"new_tenant_id": tenant_id, "error": getattr(e, "message", str(e))},
                )
                if isinstance(e, StorageError):
                    raise
                raise StorageError(f"Tenant provisioning failed: {e}") from e

        self._registry.adopt_storage(tenant_id, storage)
        logger.info(
            "tenant_created",
            extra={"new_tenant_id": tenant_id, "domain": tenant.domain, "plan": tenant.plan.value},
        )
        return {
            "tenantId": tenant_id,
            "domain": tenant.domain,
            "adminLoginUrl": f"https://{tenant.domain}/admin",
        }

    async def _discard_namespace(self, tenant_id: str, storage: Optional[TenantStorage]) -> None:
        if storage is None:
            return
        for step in (storage.drop, storage.close):
            try:
                await step()
            except Exception as e:
                logger.error(
                    "tenant_namespace_cleanup_failed",
                    extra={"new_tenant_id": tenant_id, "step": step.__name__, "error": str(e)},
                )

    # --- admin operations ---

    async def get_tenant(self, tenant_id: str) -> Tenant:
        tenant = await self._repository.get(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(f"Tenant '{tenant_id}' not found")
        return tenant

    async def _save(self, tenant: Tenant, event: str, **log_fields: Any) -> Tenant:
        saved = await self._repository.save(tenant)
        self._registry.invalidate(tenant.tenant_id)
        logger.info(event, extra={"target_tenant_id": tenant.tenant_id, **log_fields})
        return saved

    async def suspend_tenant(self, tenant_id: str, reason: Optional[str] = None) -> Tenant:
        tenant = await self.get_tenant(tenant_id)
        reason = (reason or "").strip() or "Suspended by platform administrator"
        return await self._save(
            tenant.touched(suspended=True, suspension_reason=reason), "tenant_suspended", reason=reason
        )

    async def reactivate_tenant(self, tenant_id: str) -> Tenant:
        tenant = await self.get_tenant(tenant_id)
        return await self._save(
            tenant.touched(active=True, suspended=False, suspension_reason=None), "tenant_reactivated"
        )

    async def deactivate_tenant(self, tenant_id: str) -> Tenant:
        """Soft delete: the record and namespace are kept, resolution stops."""
        tenant = await self.get_tenant(tenant_id)
        return await self._save(tenant.touched(active=False), "tenant_deactivated")

    async def update_tenant(
        self,
        tenant_id: str,
        branding: Optional[Mapping[str, Any]] = None,
        settings: Optional[Mapping[str, Any]] = None,
        features: Optional[Mapping[str, Any]] = None,
    ) -> Tenant:
        tenant = await self.get_tenant(tenant_id)
        if branding is None and settings is None and features is None:
            raise DomainValidationError("Nothing to update: provide branding, settings or features")
        updated = tenant.touched(
            branding=tenant.branding.merged(branding),
            settings=tenant.settings.merged(settings),
            features=tenant.features.merged(features),
        )
        groups = {"branding": branding, "settings": settings, "features": features}
        changed = [name for name, value in groups.items() if value is not None]
        return await self._save(updated, "tenant_updated", groups=changed)

    async def configure_sso(self, tenant_id: str, provider: str, config: SSOConfigRequest) -> Tenant:
        tenant = await self.get_tenant(tenant_id)
        try:
            kind = SSOProvider(provider.lower())
        except ValueError:
            raise DomainValidationError(
                f"Unsupported SSO provider '{provider}'; expected one of {', '.join(p.value for p in SSOProvider)}"
            ) from None

        if kind is SSOProvider.SAML:
            _require_fields(config, ("entry_point", "certificate"), "SAML")
            saml = SamlConfig(
                enabled=True,
                entry_point=config.entry_point,
                issuer=config.issuer or f"auditdna-{tenant_id}",
                certificate=config.certificate,
                identifier_format=config.identifier_format or SamlConfig().identifier_format,
            )
            updated = tenant.touched(saml=saml, features=tenant.features.merged({"sso": True}))
        else:
            _require_fields(config, ("client_id", "client_secret", "authorization_url", "token_url"), "OIDC")
            if self._encryption is None:
                raise DomainValidationError("OIDC configuration requires an encryption key")
            oidc = OidcConfig(
                enabled=True,
                issuer=config.issuer,
                client_id=config.client_id,
                client_secret=self._encryption.encrypt(config.client_secret),
                authorization_url=config.authorization_url,
                token_url=config.token_url,
                user_info_url=config.user_info_url,
                scope=config.scope or OidcConfig().scope,
            )
            updated = tenant.touched(oidc=oidc, features=tenant.features.merged({"sso": True}))
        return await self._save(updated, "tenant_sso_configured", provider=kind.value)

    async def list_users(self, storage: TenantStorage, limit: int = 100) -> List[Dict[str, Any]]:
        return [public_user(doc) for doc in await storage.find(USERS_COLLECTION, limit=limit)]


def _require_fields(config: SSOConfigRequest, names: tuple, label: str) -> None:
    missing = [name for name in names if not getattr(config, name)]
    if missing:
        aliases = {
            name: (SSOConfigRequest.model_fields[name].alias or name) for name in missing
        }
        raise DomainValidationError(
            f"{label} configuration requires: {', '.join(aliases[m] for m in missing)}"
        )


def sso_login_url(tenant: Tenant, provider: str, return_url: str = "/") -> str:
    """Where the browser starts an SSO login for this tenant."""
    return f"https://{tenant.domain}/auth/{provider}/login?returnUrl={quote(return_url, safe='')}"
