"""Process-scoped cache of tenant configuration and storage handles."""

import logging
from typing import Dict, List, Optional

from auditdna.application.tenant_repository import TenantRepository, TenantStorage, TenantStorageFactory
from auditdna.domain.models.tenant import Tenant
from auditdna.scalability.single_flight import SingleFlight

logger = logging.getLogger(__name__)


class TenantRegistry:
    """
    Lazily populated on first resolution of a tenant id. Concurrent first
    lookups share one load, so there is never more than one storage handle
    per tenant id. Admin operations call invalidate() after every mutation.
    Constructed at startup and closed at shutdown.
    """

    def __init__(self, repository: TenantRepository, storage_factory: TenantStorageFactory) -> None:
        self._repository = repository
        self._storage_factory = storage_factory
        self._configs: Dict[str, Tenant] = {}
        self._storages: Dict[str, TenantStorage] = {}
        self._config_loads: SingleFlight[Optional[Tenant]] = SingleFlight()
        # Bumped by invalidate(); a load that started under an older generation is not cached.
        self._generations: Dict[str, int] = {}
        self._storage_opens: SingleFlight[TenantStorage] = SingleFlight()

    async def get_config(self, tenant_id: str) -> Optional[Tenant]:
        """Cached tenant record, or None when no tenant has this id. Misses are not cached."""
        cached = self._configs.get(tenant_id)
        if cached is not None:
            return cached
        return await self._config_loads.do(tenant_id, lambda: self._load_config(tenant_id))

    async def _load_config(self, tenant_id: str) -> Optional[Tenant]:
        generation = self._generations.get(tenant_id, 0)
        tenant = await self._repository.get(tenant_id)
        if tenant is not None and self._generations.get(tenant_id, 0) == generation:
            self._configs[tenant_id] = tenant
            logger.info("tenant_config_cached", extra={"cached_tenant_id": tenant_id})
        return tenant

    async def get_storage(self, tenant_id: str) -> TenantStorage:
        cached = self._storages.get(tenant_id)
        if cached is not None:
            return cached
        return await self._storage_opens.do(tenant_id, lambda: self._open_storage(tenant_id))

    async def _open_storage(self, tenant_id: str) -> TenantStorage:
        storage = await self._storage_factory.open(tenant_id)
        self._storages[tenant_id] = storage
        logger.info("tenant_storage_opened", extra={"cached_tenant_id": tenant_id})
        return storage

    def adopt_storage(self, tenant_id: str, storage: TenantStorage) -> None:
        """Take ownership of a handle opened during provisioning."""
        if tenant_id not in self._storages:
            self._storages[tenant_id] = storage

    def invalidate(self, tenant_id: str) -> None:
        """Drop the cached configuration, including any load still in flight; the next resolution reloads it."""
        self._generations[tenant_id] = self._generations.get(tenant_id, 0) + 1
        self._configs.pop(tenant_id, None)
        self._config_loads.forget(tenant_id)

    def cached_tenant_ids(self) -> List[str]:
        return list(self._configs)

    def open_storage_count(self) -> int:
        return len(self._storages)

    async def close(self) -> None:
        storages = list(self._storages.items())
        self._storages.clear()
        self._configs.clear()
        for tenant_id, storage in storages:
            try:
                await storage.close()
            except Exception as e:
                logger.error(
                    "tenant_storage_close_failed",
                    extra={"cached_tenant_id": tenant_id, "error": str(e)},
                )
