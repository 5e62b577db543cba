"""
Per-request tenant resolution.

Priority: host subdomain under the platform base domain, then the
X-Tenant-ID header, then the tenantId claim of a bearer token. Unknown and
unusable tenants fail with the same message so callers cannot probe which
tenant ids exist.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from auditdna.application.tenant_registry import TenantRegistry
from auditdna.application.tenant_repository import TenantStorage
from auditdna.core.context import tenant_id_ctx
from auditdna.domain.exceptions import TenantInactiveError, TenantNotFoundError, TenantRequiredError
from auditdna.domain.models.tenant import Tenant
from auditdna.security.exceptions import InvalidTokenError
from auditdna.security.tenant_context import TenantIsolation
from auditdna.security.tokens import TokenService

logger = logging.getLogger(__name__)

TENANT_REQUIRED_MESSAGE = "Tenant identification required"
TENANT_UNAVAILABLE_MESSAGE = "Tenant not found or inactive"

# Subdomain labels that belong to the platform itself.
RESERVED_SUBDOMAINS = frozenset({"www", "api"})


@dataclass(frozen=True)
class TenantContext:
    tenant_id: str
    config: Tenant
    storage: TenantStorage


class TenantResolver:
    def __init__(self, registry: TenantRegistry, tokens: TokenService, base_domain: str) -> None:
        self._registry = registry
        self._tokens = tokens
        self._base_domain = base_domain.lower().strip(".")

    def subdomain_tenant(self, host: Optional[str]) -> Optional[str]:
        if not host:
            return None
        hostname = host.split(":", 1)[0].lower().strip(".")
        suffix = f".{self._base_domain}"
        if not hostname.endswith(suffix):
            return None
        label = hostname[: -len(suffix)].split(".")[0]
        if not label or label in RESERVED_SUBDOMAINS:
            return None
        return label

    def token_tenant(self, authorization: Optional[str]) -> Optional[str]:
        if not authorization:
            return None
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        try:
            return self._tokens.tenant_claim(token.strip())
        except InvalidTokenError as e:
            # A bad token is not a tenant hint; resolution falls through to TenantRequired.
            logger.info("tenant_token_ignored", extra={"reason": e.message})
            return None

    def extract_tenant_id(
        self,
        host: Optional[str],
        tenant_header: Optional[str],
        authorization: Optional[str],
    ) -> Optional[str]:
        return (
            self.subdomain_tenant(host)
            or (tenant_header or "").strip()
            or self.token_tenant(authorization)
        )

    async def resolve(
        self,
        host: Optional[str],
        tenant_header: Optional[str] = None,
        authorization: Optional[str] = None,
    ) -> TenantContext:
        tenant_id = self.extract_tenant_id(host, tenant_header, authorization)
        if not tenant_id:
            raise TenantRequiredError(TENANT_REQUIRED_MESSAGE)

        config = await self._registry.get_config(tenant_id)
        if config is None:
            logger.info("tenant_resolution_failed", extra={"requested_tenant_id": tenant_id, "reason": "unknown"})
            raise TenantNotFoundError(TENANT_UNAVAILABLE_MESSAGE)
        if not config.is_usable:
            logger.info("tenant_resolution_failed", extra={"requested_tenant_id": tenant_id, "reason": "inactive"})
            raise TenantInactiveError(TENANT_UNAVAILABLE_MESSAGE)

        storage = await self._registry.get_storage(tenant_id)
        TenantIsolation.validate_access(storage.tenant_id, tenant_id)
        tenant_id_ctx.set(tenant_id)
        return TenantContext(tenant_id=tenant_id, config=config, storage=storage)
