"""Tenant persistence protocols: the tenant directory and the per-tenant storage namespace."""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from auditdna.domain.models.tenant import Tenant


@dataclass(frozen=True)
class IndexSpec:
    """Index on one collection of a tenant namespace. Keys are (field, direction) pairs."""

    collection: str
    keys: Tuple[Tuple[str, int], ...]
    unique: bool = False

    @property
    def name(self) -> str:
        return f"{self.collection}__" + "__".join(f"{f}_{d}" for f, d in self.keys)


ASC = 1
DESC = -1

# Collections every tenant namespace is provisioned with.
TENANT_COLLECTIONS = ("users", "loan_applications", "audits", "lenders", "documents")

STANDARD_INDEXES: Tuple[IndexSpec, ...] = tuple(
    [IndexSpec(c, (("created_at", DESC),)) for c in TENANT_COLLECTIONS]
    + [IndexSpec(c, (("updated_at", DESC),)) for c in TENANT_COLLECTIONS]
    + [
        IndexSpec("users", (("email", ASC),), unique=True),
        IndexSpec("users", (("user_id", ASC),), unique=True),
        IndexSpec("loan_applications", (("application_id", ASC),), unique=True),
        IndexSpec("loan_applications", (("user_id", ASC), ("status", ASC))),
        IndexSpec("audits", (("audit_id", ASC),), unique=True),
        IndexSpec("audits", (("user_id", ASC), ("audit_type", ASC))),
    ]
)


class TenantRepository(Protocol):
    """Directory of tenant records. Tenants are never physically deleted."""

    async def get(self, tenant_id: str) -> Optional[Tenant]:
        ...

    async def get_by_domain(self, domain: str) -> Optional[Tenant]:
        ...

    async def save(self, tenant: Tenant) -> Tenant:
        """Insert or replace the tenant record (publishing it to resolution)."""
        ...

    async def list_all(self) -> List[Tenant]:
        ...


class TenantStorage(Protocol):
    """Handle on one tenant's isolated storage namespace."""

    tenant_id: str

    async def ensure_indexes(self, indexes: Sequence[IndexSpec]) -> None:
        ...

    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> None:
        """Raises StorageError on a unique-index violation."""
        ...

    async def find(
        self, collection: str, criteria: Optional[Mapping[str, Any]] = None, limit: int = 100
    ) -> List[Dict[str, Any]]:
        """Exact-match criteria; empty criteria returns everything up to limit."""
        ...

    async def drop(self) -> None:
        """Remove the namespace and all of its collections."""
        ...

    async def close(self) -> None:
        ...


class TenantStorageFactory(Protocol):
    """Opens storage handles. One handle per tenant id is kept by TenantRegistry."""

    async def open(self, tenant_id: str) -> TenantStorage:
        ...
