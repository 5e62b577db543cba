"""Fernet encryption for tenant secrets at rest (OIDC client secrets). Key is injected; fail if missing."""

import base64
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from auditdna.security.exceptions import EncryptionError

# Fernet needs a 32-byte urlsafe key; derive it from the configured secret.
DEFAULT_SALT = b"auditdna_tenant_secrets_v1"
KDF_ITERATIONS = 480000


def _derive_key(secret: str, salt: bytes = DEFAULT_SALT) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))


class EncryptionService:
    """
    Symmetric encryption for secrets stored in tenant configuration.
    key: raw secret (settings.encryption_key). If None/empty, ENCRYPTION_KEY
    from the environment is used; with neither, construction fails.
    """

    def __init__(self, key: Optional[str] = None) -> None:
        raw = key or os.environ.get("ENCRYPTION_KEY")
        if not raw or not raw.strip():
            raise EncryptionError(
                "Encryption key is required. Set ENCRYPTION_KEY in environment."
            )
        self._fernet = Fernet(_derive_key(raw.strip()))

    def encrypt(self, data: str) -> str:
        """Return the Fernet token as text. Tokens are already urlsafe base64."""
        try:
            return self._fernet.encrypt(data.encode("utf-8")).decode("ascii")
        except Exception as e:
            raise EncryptionError(f"Encryption failed: {e}") from e

    def decrypt(self, token: str) -> str:
        """Raises EncryptionError on a wrong key or a corrupt token."""
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken as e:
            raise EncryptionError("Decryption failed: invalid or wrong key") from e
        except Exception as e:
            raise EncryptionError(f"Decryption failed: {e}") from e
