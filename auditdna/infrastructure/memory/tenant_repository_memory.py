"""In-memory tenant directory and per-tenant storage namespaces."""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from auditdna.application.exceptions import StorageError
from auditdna.application.tenant_repository import IndexSpec
from auditdna.domain.models.tenant import Tenant


class InMemoryTenantRepository:
    """Implements TenantRepository."""

    def __init__(self) -> None:
        self._tenants: Dict[str, Tenant] = {}

    async def get(self, tenant_id: str) -> Optional[Tenant]:
        return self._tenants.get(tenant_id)

    async def get_by_domain(self, domain: str) -> Optional[Tenant]:
        domain = domain.lower()
        return next((t for t in self._tenants.values() if t.domain.lower() == domain), None)

    async def save(self, tenant: Tenant) -> Tenant:
        existing = await self.get_by_domain(tenant.domain)
        if existing is not None and existing.tenant_id != tenant.tenant_id:
            raise StorageError(f"Domain '{tenant.domain}' already belongs to another tenant")
        self._tenants[tenant.tenant_id] = tenant
        return tenant

    async def list_all(self) -> List[Tenant]:
        return list(self._tenants.values())


@dataclass
class _Namespace:
    collections: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    indexes: Dict[str, IndexSpec] = field(default_factory=dict)


def _index_key(index: IndexSpec, document: Mapping[str, Any]) -> Tuple[Any, ...]:
    return tuple(document.get(name) for name, _ in index.keys)


class InMemoryTenantStorage:
    """
    Handle on one tenant namespace. Unique indexes are enforced on insert.
    A closed handle rejects further use; the namespace outlives it.
    """

    def __init__(self, tenant_id: str, namespace: _Namespace, factory: "InMemoryTenantStorageFactory") -> None:
        self.tenant_id = tenant_id
        self._ns = namespace
        self._factory = factory
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError(f"Storage handle for tenant '{self.tenant_id}' is closed")

    @property
    def index_names(self) -> Set[str]:
        return set(self._ns.indexes)

    @property
    def closed(self) -> bool:
        return self._closed

    async def ensure_indexes(self, indexes: Sequence[IndexSpec]) -> None:
        self._check_open()
        for index in indexes:
            self._ns.indexes[index.name] = index
            self._ns.collections.setdefault(index.collection, [])

    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> None:
        self._check_open()
        docs = self._ns.collections.setdefault(collection, [])
        for index in self._ns.indexes.values():
            if index.collection != collection or not index.unique:
                continue
            key = _index_key(index, document)
            if any(_index_key(index, existing) == key for existing in docs):
                raise StorageError(f"Duplicate key for unique index {index.name}")
        docs.append(copy.deepcopy(dict(document)))

    async def find(
        self, collection: str, criteria: Optional[Mapping[str, Any]] = None, limit: int = 100
    ) -> List[Dict[str, Any]]:
        self._check_open()
        criteria = criteria or {}
        matches = [
            copy.deepcopy(doc)
            for doc in self._ns.collections.get(collection, ())
            if all(doc.get(k) == v for k, v in criteria.items())
        ]
        return matches[:limit]

    async def drop(self) -> None:
        self._ns.collections.clear()
        self._ns.indexes.clear()
        self._factory.forget(self.tenant_id)

    async def close(self) -> None:
        self._closed = True


class InMemoryTenantStorageFactory:
    """Implements TenantStorageFactory. Namespaces persist across handles until dropped."""

    def __init__(self) -> None:
        self.open_count = 0
        self._namespaces: Dict[str, _Namespace] = {}

    async def open(self, tenant_id: str) -> InMemoryTenantStorage:
        self.open_count += 1
        namespace = self._namespaces.setdefault(tenant_id, _Namespace())
        return InMemoryTenantStorage(tenant_id, namespace, self)

    def forget(self, tenant_id: str) -> None:
        self._namespaces.pop(tenant_id, None)

    def namespaces(self) -> List[str]:
        return list(self._namespaces)
