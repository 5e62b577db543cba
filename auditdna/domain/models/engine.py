"""Domain models for engines: descriptor, record, upload, search and compliance results. No ORM or infrastructure."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class EngineStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non-compliant"
    PENDING = "pending"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class UploadStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


class RuleStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class EngineDescriptor:
    """Static description of an engine. Immutable after registration."""

    name: str
    display_name: str
    capabilities: Tuple[str, ...]
    data_types: Tuple[str, ...]
    unit: str = "units"
    status: EngineStatus = EngineStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.display_name,
            "capabilities": list(self.capabilities),
            "dataTypes": list(self.data_types),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class RiskFactor:
    factor: str
    severity: Severity
    impact: float

    def to_dict(self) -> Dict[str, Any]:
        return {"factor": self.factor, "severity": self.severity.value, "impact": self.impact}


@dataclass
class EngineRecord:
    """
    One domain entity held by an engine. Structurally uniform across engines;
    domain extras (e.g. USDA grade and volume) live in attributes.
    """

    record_id: str
    engine: str
    name: str
    value: float
    unit: str
    recorded_at: datetime
    location: str
    compliance_status: ComplianceStatus = ComplianceStatus.PENDING
    risk_factors: List[RiskFactor] = field(default_factory=list)
    data_source: Optional[str] = None
    score: Optional[float] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self, timestamp_key: str = "testDate") -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.record_id,
            "engine": self.engine,
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            timestamp_key: self.recorded_at.isoformat(),
            "location": self.location,
            "complianceStatus": self.compliance_status.value,
            "riskFactors": [rf.to_dict() for rf in self.risk_factors],
            "dataSource": self.data_source,
            "score": self.score,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
        out.update(self.attributes)
        return out


def build_engine_record(
    *,
    engine: str,
    name: str,
    value: float,
    unit: str,
    recorded_at: datetime,
    location: str,
    record_id: Optional[str] = None,
    compliance_status: ComplianceStatus = ComplianceStatus.PENDING,
    risk_factors: Optional[List[RiskFactor]] = None,
    data_source: Optional[str] = None,
    score: Optional[float] = None,
    attributes: Optional[Dict[str, Any]] = None,
    created_at: Optional[datetime] = None,
) -> EngineRecord:
    """Single place where record defaults are applied."""
    now = datetime.now(timezone.utc)
    created = created_at or now
    return EngineRecord(
        record_id=record_id or uuid.uuid4().hex,
        engine=engine,
        name=name,
        value=float(value),
        unit=unit,
        recorded_at=recorded_at,
        location=location,
        compliance_status=compliance_status,
        risk_factors=list(risk_factors or []),
        data_source=data_source or engine,
        score=score,
        attributes=dict(attributes or {}),
        created_at=created,
        updated_at=created,
    )


@dataclass(frozen=True)
class FileMetadata:
    """Transport-level description of an uploaded file. Content is never read by engines."""

    filename: str
    original_name: str
    mimetype: str
    size: int
    path: str


@dataclass(frozen=True)
class UploadRecord:
    upload_id: str
    engine: str
    filename: str
    original_name: str
    mimetype: str
    size: int
    path: str
    metadata: Dict[str, Any]
    uploaded_at: datetime
    status: UploadStatus = UploadStatus.UPLOADED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.upload_id,
            "engine": self.engine,
            "filename": self.filename,
            "originalName": self.original_name,
            "mimetype": self.mimetype,
            "size": self.size,
            "path": self.path,
            "metadata": self.metadata,
            "uploadedAt": self.uploaded_at.isoformat(),
            "status": self.status.value,
        }


def build_upload_record(
    engine: str, file_metadata: FileMetadata, metadata: Optional[Mapping[str, Any]] = None
) -> UploadRecord:
    return UploadRecord(
        upload_id=uuid.uuid4().hex,
        engine=engine,
        filename=file_metadata.filename,
        original_name=file_metadata.original_name,
        mimetype=file_metadata.mimetype,
        size=file_metadata.size,
        path=file_metadata.path,
        metadata=dict(metadata or {}),
        uploaded_at=datetime.now(timezone.utc),
        status=UploadStatus.UPLOADED,
    )


@dataclass(frozen=True)
class SearchOptions:
    page: int = 1
    limit: int = 10
    sort_by: Optional[str] = None  # None -> engine default
    sort_order: SortOrder = SortOrder.DESC

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class SearchResult:
    engine: str
    query: Optional[str]
    filters: Dict[str, Any]
    results: List[Dict[str, Any]]
    page: int
    limit: int
    total: int
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "engine": self.engine,
            "query": self.query,
            "filters": self.filters,
            "results": self.results,
            "pagination": {"page": self.page, "limit": self.limit, "total": self.total},
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class RuleResult:
    rule: str
    status: RuleStatus
    message: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule,
            "status": self.status.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ComplianceValidation:
    engine: str
    data: Dict[str, Any]
    rules: List[Dict[str, Any]]
    results: List[RuleResult]
    overall_status: ComplianceStatus
    validated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "engine": self.engine,
            "data": self.data,
            "rules": self.rules,
            "results": [r.to_dict() for r in self.results],
            "overallStatus": self.overall_status.value,
            "validatedAt": self.validated_at.isoformat(),
        }
