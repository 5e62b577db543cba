# Application layer: services that orchestrate domain and infrastructure.

from auditdna.application.engine_repository import EngineRepository
from auditdna.application.exceptions import ApplicationError, NotificationError, StorageError
from auditdna.application.notifications import NotificationService
from auditdna.application.tenant_provisioner import TenantProvisioner
from auditdna.application.tenant_registry import TenantRegistry
from auditdna.application.tenant_repository import TenantRepository, TenantStorage, TenantStorageFactory
from auditdna.application.tenant_resolver import TenantContext, TenantResolver

__all__ = [
    "EngineRepository",
    "ApplicationError",
    "NotificationError",
    "StorageError",
    "NotificationService",
    "TenantProvisioner",
    "TenantRegistry",
    "TenantRepository",
    "TenantStorage",
    "TenantStorageFactory",
    "TenantContext",
    "TenantResolver",
]
