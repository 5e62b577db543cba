"""Domain schemas. Request bodies and validation."""

from auditdna.domain.schemas.engine import (
    ComplianceValidateRequest,
    PriceAnalysisRequest,
    ReportCreateRequest,
)
from auditdna.domain.schemas.tenant import (
    AdminUserRequest,
    SSOConfigRequest,
    TenantCreateRequest,
    TenantSuspendRequest,
    TenantUpdateRequest,
)

__all__ = [
    "AdminUserRequest",
    "ComplianceValidateRequest",
    "PriceAnalysisRequest",
    "ReportCreateRequest",
    "SSOConfigRequest",
    "TenantCreateRequest",
    "TenantSuspendRequest",
    "TenantUpdateRequest",
]
