"""Domain models. Pure business entities."""

from auditdna.domain.models.audit import AuditAction, AuditLogEntry, AuditStatus
from auditdna.domain.models.engine import (
    ComplianceStatus,
    ComplianceValidation,
    EngineDescriptor,
    EngineRecord,
    EngineStatus,
    FileMetadata,
    RiskFactor,
    RuleResult,
    SearchOptions,
    SearchResult,
    Severity,
    UploadRecord,
)
from auditdna.domain.models.report import Report, ReportOptions, ReportStatus, ReportType
from auditdna.domain.models.tenant import Tenant, TenantAdmin, TenantPlan

__all__ = [
    "AuditAction",
    "AuditLogEntry",
    "AuditStatus",
    "ComplianceStatus",
    "ComplianceValidation",
    "EngineDescriptor",
    "EngineRecord",
    "EngineStatus",
    "FileMetadata",
    "Report",
    "ReportOptions",
    "ReportStatus",
    "ReportType",
    "RiskFactor",
    "RuleResult",
    "SearchOptions",
    "SearchResult",
    "Severity",
    "Tenant",
    "TenantAdmin",
    "TenantPlan",
    "UploadRecord",
]
