"""Security-layer exceptions. Typed, no HTTP."""


class SecurityError(Exception):
    """Base for all security-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TenantIsolationError(SecurityError):
    """Raised when a storage handle or resource belongs to a different tenant than the request."""


class EncryptionError(SecurityError):
    """Raised when encryption/decryption fails (e.g. missing key, wrong key)."""


class InvalidTokenError(SecurityError):
    """Raised when a bearer token is malformed, expired or signed with another key."""
