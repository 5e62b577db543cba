"""In-memory engine repository. Default backend and test double; state lives for the process."""

from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from auditdna.application.exceptions import StorageError
from auditdna.domain.models.audit import AuditLogEntry
from auditdna.domain.models.engine import EngineRecord, UploadRecord
from auditdna.domain.models.report import Report


class InMemoryEngineRepository:
    """Implements EngineRepository. Every collection is partitioned by engine name."""

    def __init__(self) -> None:
        self._records: Dict[str, List[EngineRecord]] = defaultdict(list)
        self._uploads: Dict[str, List[UploadRecord]] = defaultdict(list)
        self._reports: Dict[str, Dict[str, Report]] = defaultdict(dict)
        self._audit_logs: Dict[str, List[AuditLogEntry]] = defaultdict(list)

    async def list_records(self, engine: str) -> List[EngineRecord]:
        return list(self._records.get(engine, ()))

    async def save_records(self, engine: str, records: Sequence[EngineRecord]) -> None:
        self._records[engine].extend(records)

    async def save_upload(self, upload: UploadRecord) -> UploadRecord:
        self._uploads[upload.engine].append(upload)
        return upload

    async def list_uploads(self, engine: str) -> List[UploadRecord]:
        return list(self._uploads.get(engine, ()))

    async def save_report(self, report: Report) -> Report:
        reports = self._reports[report.engine]
        if report.report_id in reports:
            raise StorageError(f"Report '{report.report_id}' already exists")
        reports[report.report_id] = report
        return report

    async def get_report(self, engine: str, report_id: str) -> Optional[Report]:
        return self._reports.get(engine, {}).get(report_id)

    async def save_audit_log(self, entry: AuditLogEntry) -> AuditLogEntry:
        self._audit_logs[entry.engine].append(entry)
        return entry

    async def list_audit_logs(self, engine: str, limit: int = 100) -> List[AuditLogEntry]:
        return list(reversed(self._audit_logs.get(engine, ())))[:limit]
