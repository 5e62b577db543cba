"""Tenant isolation for storage namespaces. No FastAPI."""

from typing import Optional

from auditdna.security.exceptions import TenantIsolationError


class TenantIsolation:
    """A storage handle may only serve the tenant it was opened for."""

    @staticmethod
    def validate_access(owner_tenant: Optional[str], request_tenant: Optional[str]) -> None:
        if not owner_tenant or not request_tenant:
            raise TenantIsolationError("Tenant isolation: both the namespace owner and request tenant are required")
        if owner_tenant != request_tenant:
            raise TenantIsolationError(
                f"Tenant isolation: access denied to namespace of '{owner_tenant}' "
                f"for request tenant '{request_tenant}'"
            )
