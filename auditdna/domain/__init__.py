"""Domain layer: models, schemas, validators, exceptions. Pure business logic only."""

from auditdna.domain.exceptions import (
    CapabilityNotImplementedError,
    DomainError,
    DomainValidationError,
    EngineAlreadyRegisteredError,
    EngineNotFoundError,
    InvalidStatusTransitionError,
    NotFoundError,
    TenantConflictError,
    TenantInactiveError,
    TenantNotFoundError,
    TenantRequiredError,
    TenantResolutionError,
)

__all__ = [
    "CapabilityNotImplementedError",
    "DomainError",
    "DomainValidationError",
    "EngineAlreadyRegisteredError",
    "EngineNotFoundError",
    "InvalidStatusTransitionError",
    "NotFoundError",
    "TenantConflictError",
    "TenantInactiveError",
    "TenantNotFoundError",
    "TenantRequiredError",
    "TenantResolutionError",
]
