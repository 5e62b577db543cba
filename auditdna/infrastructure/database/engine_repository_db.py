"""DB-backed engine repository. Persists records, uploads, reports and audit entries to PostgreSQL."""

from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from auditdna.application.exceptions import StorageError
from auditdna.domain.models.audit import AuditAction, AuditLogEntry, AuditStatus
from auditdna.domain.models.engine import ComplianceStatus, EngineRecord, RiskFactor, Severity, UploadRecord
from auditdna.domain.models.report import Report, ReportOptions, ReportStatus, ReportType
from auditdna.infrastructure.database.models import (
    EngineAuditLogRow,
    EngineRecordRow,
    EngineReportRow,
    EngineUploadRow,
)


def _record_to_row(record: EngineRecord) -> EngineRecordRow:
    return EngineRecordRow(
        record_id=record.record_id,
        engine=record.engine,
        name=record.name,
        value=record.value,
        unit=record.unit,
        recorded_at=record.recorded_at,
        location=record.location,
        compliance_status=record.compliance_status.value,
        risk_factors=[rf.to_dict() for rf in record.risk_factors],
        data_source=record.data_source,
        score=record.score,
        attributes=record.attributes,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _row_to_record(row: EngineRecordRow) -> EngineRecord:
    return EngineRecord(
        record_id=row.record_id,
        engine=row.engine,
        name=row.name,
        value=row.value,
        unit=row.unit,
        recorded_at=row.recorded_at,
        location=row.location,
        compliance_status=ComplianceStatus(row.compliance_status),
        risk_factors=[
            RiskFactor(factor=rf["factor"], severity=Severity(rf["severity"]), impact=rf["impact"])
            for rf in row.risk_factors or []
        ],
        data_source=row.data_source,
        score=row.score,
        attributes=dict(row.attributes or {}),
        created_at=row.created_at,
        updated_at=row.updated_at or row.created_at,
    )


def _payload_to_report(payload: Mapping[str, Any]) -> Report:
    return Report(
        report_id=payload["reportId"],
        engine=payload["engine"],
        report_type=ReportType(payload["type"]),
        data=payload.get("data") or {},
        generated_at=datetime.fromisoformat(payload["generatedAt"]),
        options=ReportOptions.from_mapping(payload.get("options")),
        status=ReportStatus(payload["status"]),
        title=payload.get("title"),
    )


def _payload_to_audit_entry(payload: Mapping[str, Any]) -> AuditLogEntry:
    return AuditLogEntry(
        entry_id=payload["id"],
        engine=payload["engine"],
        action=AuditAction(payload["action"]),
        data=payload.get("data") or {},
        actor_id=payload.get("userId"),
        timestamp=datetime.fromisoformat(payload["timestamp"]),
        ip=payload.get("ip"),
        user_agent=payload.get("userAgent"),
        status=AuditStatus(payload.get("status", AuditStatus.SUCCESS.value)),
        error=payload.get("error"),
        duration_ms=payload.get("duration"),
        correlation_id=payload.get("correlationId"),
    )


class DbEngineRepository:
    """Implements EngineRepository over the shared engine_* tables. One session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _add(self, *rows: Any) -> None:
        async with self._session_factory() as session:
            session.add_all(rows)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise StorageError(f"Duplicate key: {e.orig}") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(f"Database write failed: {e}") from e

    async def list_records(self, engine: str) -> List[EngineRecord]:
        async with self._session_factory() as session:
            stmt = select(EngineRecordRow).where(EngineRecordRow.engine == engine)
            result = await session.execute(stmt)
            return [_row_to_record(row) for row in result.scalars().all()]

    async def save_records(self, engine: str, records: Sequence[EngineRecord]) -> None:
        await self._add(*(_record_to_row(r) for r in records))

    async def save_upload(self, upload: UploadRecord) -> UploadRecord:
        await self._add(
            EngineUploadRow(upload_id=upload.upload_id, engine=upload.engine, payload=upload.to_dict())
        )
        return upload

    async def save_report(self, report: Report) -> Report:
        await self._add(
            EngineReportRow(
                report_id=report.report_id,
                engine=report.engine,
                status=report.status.value,
                payload=report.to_dict(),
            )
        )
        return report

    async def get_report(self, engine: str, report_id: str) -> Optional[Report]:
        async with self._session_factory() as session:
            stmt = select(EngineReportRow).where(
                EngineReportRow.engine == engine,
                EngineReportRow.report_id == report_id,
            )
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _payload_to_report(row.payload) if row is not None else None

    async def save_audit_log(self, entry: AuditLogEntry) -> AuditLogEntry:
        await self._add(
            EngineAuditLogRow(
                entry_id=entry.entry_id,
                engine=entry.engine,
                action=entry.action.value,
                timestamp=entry.timestamp,
                payload=entry.to_dict(),
            )
        )
        return entry

    async def list_audit_logs(self, engine: str, limit: int = 100) -> List[AuditLogEntry]:
        async with self._session_factory() as session:
            stmt = (
                select(EngineAuditLogRow)
                .where(EngineAuditLogRow.engine == engine)
                .order_by(EngineAuditLogRow.timestamp.desc())
                .limit(limit)
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [_payload_to_audit_entry(row.payload) for row in rows]