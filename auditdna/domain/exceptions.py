"""Domain-specific exceptions. Pure domain layer, no infrastructure."""

from typing import Sequence


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DomainValidationError(DomainError):
    """Raised when a request field is missing or malformed."""


class InvalidStatusTransitionError(DomainError):
    """Raised when a report status transition is not allowed."""


class NotFoundError(DomainError):
    """Base for unknown engine or tenant lookups."""


class EngineNotFoundError(NotFoundError):
    """Raised when no engine is registered under the requested name."""

    def __init__(self, engine_name: str, available: Sequence[str]) -> None:
        self.engine_name = engine_name
        self.available = list(available)
        super().__init__(f"Engine '{engine_name}' not found")


class EngineAlreadyRegisteredError(DomainError):
    """Raised when registering a second engine under an existing name."""


class CapabilityNotImplementedError(DomainError, NotImplementedError):
    """Raised when an engine does not implement a capability hook. Signals a configuration bug."""

    def __init__(self, engine_name: str, capability: str) -> None:
        self.engine_name = engine_name
        self.capability = capability
        super().__init__(f"{capability} must be implemented by {engine_name} engine")


class TenantResolutionError(DomainError):
    """Base for missing or unusable tenant identity on a request."""


class TenantRequiredError(TenantResolutionError):
    """Raised when a request carries no tenant hint at all."""


class TenantNotFoundError(TenantResolutionError, NotFoundError):
    """Raised when the resolved tenant id has no configuration."""


class TenantInactiveError(TenantResolutionError):
    """Raised when the tenant exists but is deactivated or suspended."""


class TenantConflictError(DomainError):
    """Raised when a tenant domain is already taken."""
