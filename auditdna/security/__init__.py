"""Security: bearer tokens, password hashing, secret encryption, tenant isolation. No FastAPI."""

from auditdna.security.encryption import EncryptionService
from auditdna.security.passwords import hash_password, verify_password
from auditdna.security.tenant_context import TenantIsolation
from auditdna.security.tokens import TokenService

__all__ = [
    "EncryptionService",
    "hash_password",
    "verify_password",
    "TenantIsolation",
    "TokenService",
]
