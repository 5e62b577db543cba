"""Domain model for engine reports. Frozen records; lifecycle changes produce a new instance."""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional

from auditdna.domain.exceptions import DomainValidationError, InvalidStatusTransitionError


class ReportType(str, Enum):
    PRICE_ANALYSIS = "price_analysis"
    RISK_ASSESSMENT = "risk_assessment"
    COMPLIANCE_CHECK = "compliance_check"
    MARKET_TRENDS = "market_trends"


class ReportStatus(str, Enum):
    """Lifecycle status for reports. Transitions are validated."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class ReportFormat(str, Enum):
    PDF = "pdf"
    JSON = "json"
    CSV = "csv"


# Allowed status transitions: from_status -> set of valid next statuses
_STATUS_TRANSITIONS: Dict[ReportStatus, FrozenSet[ReportStatus]] = {
    ReportStatus.PENDING: frozenset({ReportStatus.GENERATING, ReportStatus.FAILED}),
    ReportStatus.GENERATING: frozenset({ReportStatus.COMPLETED, ReportStatus.FAILED}),
    ReportStatus.COMPLETED: frozenset(),
    ReportStatus.FAILED: frozenset(),
}


def _validate_transition(current: ReportStatus, new: ReportStatus) -> None:
    allowed = _STATUS_TRANSITIONS.get(current, frozenset())
    if new not in allowed:
        raise InvalidStatusTransitionError(
            f"Invalid report status transition from {current.value} to {new.value}"
        )


@dataclass(frozen=True)
class ReportOptions:
    format: ReportFormat = ReportFormat.JSON
    include_charts: bool = True
    include_raw_data: bool = False

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]]) -> "ReportOptions":
        """Accept camelCase or snake_case keys from the wire; unknown keys are ignored."""
        options = options or {}
        raw_format = options.get("format", ReportFormat.JSON.value)
        try:
            fmt = ReportFormat(str(raw_format).lower())
        except ValueError:
            raise DomainValidationError(
                f"Unsupported report format '{raw_format}'; expected one of "
                f"{', '.join(f.value for f in ReportFormat)}"
            ) from None
        include_charts = options.get("includeCharts", options.get("include_charts", True))
        include_raw = options.get("includeRawData", options.get("include_raw_data", False))
        return cls(format=fmt, include_charts=bool(include_charts), include_raw_data=bool(include_raw))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": self.format.value,
            "includeCharts": self.include_charts,
            "includeRawData": self.include_raw_data,
        }


def parse_report_type(value: Any) -> ReportType:
    if not value or not isinstance(value, str):
        raise DomainValidationError("Report type is required")
    try:
        return ReportType(value)
    except ValueError:
        raise DomainValidationError(
            f"Unsupported report type '{value}'; expected one of "
            f"{', '.join(t.value for t in ReportType)}"
        ) from None


@dataclass(frozen=True)
class Report:
    """Generated report. Immutable once completed; use transition_to for lifecycle changes."""

    report_id: str
    engine: str
    report_type: ReportType
    data: Dict[str, Any]
    generated_at: datetime
    options: ReportOptions
    status: ReportStatus = ReportStatus.PENDING
    title: Optional[str] = None

    def transition_to(self, new_status: ReportStatus) -> "Report":
        """Return a copy in new_status. Raises InvalidStatusTransitionError if not allowed."""
        _validate_transition(self.status, new_status)
        return replace(self, status=new_status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reportId": self.report_id,
            "engine": self.engine,
            "type": self.report_type.value,
            "title": self.title,
            "data": self.data,
            "generatedAt": self.generated_at.isoformat(),
            "status": self.status.value,
            "options": self.options.to_dict(),
        }


def build_report(
    *,
    report_id: str,
    engine: str,
    report_type: ReportType,
    data: Optional[Mapping[str, Any]],
    options: ReportOptions,
    title: Optional[str] = None,
) -> Report:
    return Report(
        report_id=report_id,
        engine=engine,
        report_type=report_type,
        data=dict(data or {}),
        generated_at=datetime.now(timezone.utc),
        options=options,
        status=ReportStatus.PENDING,
        title=title,
    )
