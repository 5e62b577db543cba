"""Append-only engine audit entries."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class AuditAction(str, Enum):
    SEARCH = "search"
    UPLOAD = "upload"
    REPORT_GENERATE = "report_generate"
    COMPLIANCE_CHECK = "compliance_check"
    DATA_UPDATE = "data_update"
    PRICE_ANALYSIS = "price_analysis"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"


@dataclass(frozen=True)
class AuditLogEntry:
    """
    Immutable engine audit entry: which engine, what action, who, when (UTC), outcome.
    """

    entry_id: str
    engine: str
    action: AuditAction
    data: Dict[str, Any]
    actor_id: Optional[str]
    timestamp: datetime
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    status: AuditStatus = AuditStatus.SUCCESS
    error: Optional[str] = None
    duration_ms: Optional[float] = None
    correlation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for JSON logging and storage."""
        return {
            "id": self.entry_id,
            "engine": self.engine,
            "action": self.action.value,
            "data": self.data,
            "userId": self.actor_id,
            "timestamp": self.timestamp.isoformat(),
            "ip": self.ip,
            "userAgent": self.user_agent,
            "status": self.status.value,
            "error": self.error,
            "duration": self.duration_ms,
            "correlationId": self.correlation_id,
        }


def build_audit_entry(
    *,
    engine: str,
    action: AuditAction,
    data: Optional[Mapping[str, Any]],
    actor_id: Optional[str],
    status: AuditStatus = AuditStatus.SUCCESS,
    error: Optional[str] = None,
    duration_ms: Optional[float] = None,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> AuditLogEntry:
    payload = dict(data or {})
    return AuditLogEntry(
        entry_id=uuid.uuid4().hex,
        engine=engine,
        action=action,
        data=payload,
        actor_id=actor_id,
        timestamp=datetime.now(timezone.utc),
        ip=ip if ip is not None else payload.get("ip"),
        user_agent=user_agent if user_agent is not None else payload.get("userAgent"),
        status=status,
        error=error,
        duration_ms=duration_ms,
        correlation_id=correlation_id,
    )
