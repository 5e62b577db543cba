"""Engine repository protocol. Engines depend on this; infrastructure implements it."""

from typing import List, Optional, Protocol, Sequence

from auditdna.domain.models.audit import AuditLogEntry
from auditdna.domain.models.engine import EngineRecord, UploadRecord
from auditdna.domain.models.report import Report


class EngineRepository(Protocol):
    """
    Per-engine persistence for records, uploads, reports and audit entries.
    Every collection is keyed by engine name; no engine sees another engine's rows.
    """

    async def list_records(self, engine: str) -> List[EngineRecord]:
        """Return every record held by engine, in insertion order."""
        ...

    async def save_records(self, engine: str, records: Sequence[EngineRecord]) -> None:
        """Append records for engine (used for seeding and ingestion)."""
        ...

    async def save_upload(self, upload: UploadRecord) -> UploadRecord:
        """Persist exactly one upload record."""
        ...

    async def save_report(self, report: Report) -> Report:
        """Persist a report. Raises StorageError if the report id already exists for the engine."""
        ...

    async def get_report(self, engine: str, report_id: str) -> Optional[Report]:
        ...

    async def save_audit_log(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Append an audit entry. Entries are never updated or deleted."""
        ...

    async def list_audit_logs(self, engine: str, limit: int = 100) -> List[AuditLogEntry]:
        """Most recent entries first."""
        ...
