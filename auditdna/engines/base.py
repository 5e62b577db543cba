"""
Engine capability contract.

BaseEngine implements the public operations (search, upload, report,
audit log, compliance validation, demo data) once, in terms of a handful
of persistence and query hooks. A subclass that forgets a hook fails with
CapabilityNotImplementedError naming the engine and the hook.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from auditdna.core.context import correlation_id_ctx
from auditdna.domain.exceptions import CapabilityNotImplementedError
from auditdna.domain.models.audit import AuditAction, AuditLogEntry, AuditStatus, build_audit_entry
from auditdna.domain.models.engine import (
    ComplianceValidation,
    EngineDescriptor,
    EngineRecord,
    FileMetadata,
    SearchOptions,
    SearchResult,
    UploadRecord,
    build_upload_record,
)
from auditdna.domain.models.report import (
    Report,
    ReportOptions,
    ReportStatus,
    build_report,
    parse_report_type,
)
from auditdna.domain.validators.compliance_rules import evaluate_rules, resolve_rules
from auditdna.domain.validators.search_validator import validate_sort_field

logger = logging.getLogger(__name__)

DEMO_SAMPLE_SIZE = 3


class Engine(Protocol):
    """What the registry and the API need from an engine."""

    descriptor: EngineDescriptor

    @property
    def name(self) -> str: ...

    async def search(
        self, query: Optional[str], filters: Mapping[str, Any], options: SearchOptions
    ) -> SearchResult: ...

    async def upload(
        self, file_metadata: FileMetadata, metadata: Optional[Mapping[str, Any]] = None
    ) -> UploadRecord: ...

    async def generate_report(
        self, report_type: Any, data: Optional[Mapping[str, Any]], options: Optional[Mapping[str, Any]] = None
    ) -> Report: ...

    async def create_audit_log(
        self, action: AuditAction, data: Optional[Mapping[str, Any]], actor_id: Optional[str] = None, **kwargs: Any
    ) -> Optional[AuditLogEntry]: ...

    async def validate_compliance(
        self, data: Mapping[str, Any], rules: Optional[Sequence[Mapping[str, Any]]] = None
    ) -> ComplianceValidation: ...

    async def demo_data(self) -> Dict[str, Any]: ...


class BaseEngine:
    """
    Template for all engines. Subclasses supply the hooks:
    _perform_search, _search_count, _save_upload, _save_report,
    _save_audit_log and _default_rules.
    """

    # Wire-level field names used for rule defaults and record serialization.
    value_field = "value"
    timestamp_field = "testDate"
    default_sort_by = "createdAt"
    sortable_fields: Sequence[str] = ("createdAt",)

    def __init__(self, descriptor: EngineDescriptor) -> None:
        self.descriptor = descriptor
        self._last_report_ms = 0

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def capabilities(self) -> Sequence[str]:
        return self.descriptor.capabilities

    def has_capability(self, capability: str) -> bool:
        return capability in self.descriptor.capabilities

    # --- public contract ---

    async def search(
        self,
        query: Optional[str],
        filters: Optional[Mapping[str, Any]] = None,
        options: Optional[SearchOptions] = None,
    ) -> SearchResult:
        """Read-only. total is the full filtered count; results is the requested page."""
        filters = dict(filters or {})
        options = options or SearchOptions()
        sort_by = options.sort_by or self.default_sort_by
        validate_sort_field(sort_by, self.sortable_fields)
        options = SearchOptions(
            page=options.page, limit=options.limit, sort_by=sort_by, sort_order=options.sort_order
        )
        query = (query or "").strip() or None

        records = await self._perform_search(query, filters, options)
        total = await self._search_count(query, filters)
        return SearchResult(
            engine=self.name,
            query=query,
            filters=filters,
            results=[self.serialize_record(r) for r in records],
            page=options.page,
            limit=options.limit,
            total=total,
            timestamp=datetime.now(timezone.utc),
        )

    async def upload(
        self, file_metadata: FileMetadata, metadata: Optional[Mapping[str, Any]] = None
    ) -> UploadRecord:
        """Persist one upload record. File content is never read here."""
        record = build_upload_record(self.name, file_metadata, metadata)
        saved = await self._save_upload(record)
        logger.info(
            "engine_upload_saved",
            extra={"upload_id": saved.upload_id, "stored_filename": saved.filename, "size": saved.size},
        )
        return saved

    async def generate_report(
        self,
        report_type: Any,
        data: Optional[Mapping[str, Any]],
        options: Optional[Mapping[str, Any]] = None,
    ) -> Report:
        """Build, store and return a completed report. Id is {ENGINE}-{epoch_ms}, unique per engine."""
        kind = parse_report_type(report_type)
        report_options = ReportOptions.from_mapping(options)
        payload = await self._prepare_report_data(kind.value, dict(data or {}))
        report = build_report(
            report_id=self._next_report_id(),
            engine=self.name,
            report_type=kind,
            data=payload,
            options=report_options,
            title=self._report_title(kind.value, payload),
        )
        report = report.transition_to(ReportStatus.GENERATING).transition_to(ReportStatus.COMPLETED)
        await self._save_report(report)
        logger.info(
            "engine_report_generated",
            extra={"report_id": report.report_id, "report_type": kind.value},
        )
        return report

    async def create_audit_log(
        self,
        action: AuditAction,
        data: Optional[Mapping[str, Any]],
        actor_id: Optional[str] = None,
        *,
        status: AuditStatus = AuditStatus.SUCCESS,
        error: Optional[str] = None,
        duration_ms: Optional[float] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[AuditLogEntry]:
        """Append an audit entry. Never raises: a failed write is logged and None is returned."""
        entry = build_audit_entry(
            engine=self.name,
            action=AuditAction(action),
            data=data,
            actor_id=actor_id,
            status=status,
            error=error,
            duration_ms=duration_ms,
            ip=ip,
            user_agent=user_agent,
            correlation_id=correlation_id_ctx.get(),
        )
        try:
            return await self._save_audit_log(entry)
        except Exception as e:
            logger.error(
                "audit_log_write_failed",
                extra={"action": entry.action.value, "entry_id": entry.entry_id, "error": str(e)},
            )
            return None

    async def validate_compliance(
        self,
        data: Mapping[str, Any],
        rules: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> ComplianceValidation:
        """Evaluate every rule; overall status is compliant only when all pass."""
        applicable = resolve_rules(rules, self._default_rules())
        results, overall = evaluate_rules(
            data,
            applicable,
            value_field=self.value_field,
            timestamp_field=self.timestamp_field,
        )
        return ComplianceValidation(
            engine=self.name,
            data=dict(data),
            rules=applicable,
            results=results,
            overall_status=overall,
            validated_at=datetime.now(timezone.utc),
        )

    async def demo_data(self) -> Dict[str, Any]:
        sample = await self._perform_search(
            None, {}, SearchOptions(page=1, limit=DEMO_SAMPLE_SIZE, sort_by=self.default_sort_by)
        )
        return {
            "engine": self.name,
            "name": self.descriptor.display_name,
            "sampleSearchResults": [self.serialize_record(r) for r in sample],
            "sampleUploadData": {
                "filename": f"sample_{self.name}_upload.pdf",
                "size": 2048576,
                "type": "application/pdf",
                "status": "processed",
            },
            "capabilities": list(self.descriptor.capabilities),
            "dataTypes": list(self.descriptor.data_types),
        }

    def serialize_record(self, record: EngineRecord) -> Dict[str, Any]:
        return record.to_dict(timestamp_key=self.timestamp_field)

    # --- helpers ---

    def _next_report_id(self) -> str:
        now_ms = int(time.time() * 1000)
        # Two reports in the same millisecond must not collide.
        stamp = max(now_ms, self._last_report_ms + 1)
        self._last_report_ms = stamp
        return f"{self.name.upper()}-{stamp}"

    def _report_title(self, report_type: str, data: Mapping[str, Any]) -> str:
        return f"{self.descriptor.display_name} {report_type.replace('_', ' ').title()} Report"

    async def _prepare_report_data(self, report_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return data

    # --- hooks ---

    async def _perform_search(
        self, query: Optional[str], filters: Mapping[str, Any], options: SearchOptions
    ) -> List[EngineRecord]:
        raise CapabilityNotImplementedError(self.name, "performSearch")

    async def _search_count(self, query: Optional[str], filters: Mapping[str, Any]) -> int:
        raise CapabilityNotImplementedError(self.name, "getSearchCount")

    async def _save_upload(self, upload: UploadRecord) -> UploadRecord:
        raise CapabilityNotImplementedError(self.name, "saveUploadRecord")

    async def _save_report(self, report: Report) -> Report:
        raise CapabilityNotImplementedError(self.name, "saveReport")

    async def _save_audit_log(self, entry: AuditLogEntry) -> AuditLogEntry:
        raise CapabilityNotImplementedError(self.name, "saveAuditLog")

    def _default_rules(self) -> List[Dict[str, Any]]:
        raise CapabilityNotImplementedError(self.name, "performComplianceValidation")
