# auditdna/infrastructure/database/models.py

from sqlalchemy import Boolean, Column, DateTime, Float, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from auditdna.infrastructure.database.session import Base


class TimestampedModel(Base):
    __abstract__ = True

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class EngineRecordRow(TimestampedModel):
    """One engine record. Domain extras live in attributes."""

    __tablename__ = "engine_records"

    record_id = Column(String, primary_key=True)
    engine = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    value = Column(Float, nullable=False)
    unit = Column(String, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False, index=True)
    location = Column(String, nullable=False)
    compliance_status = Column(String, nullable=False, default="pending")
    risk_factors = Column(JSONB, nullable=False, default=list)
    data_source = Column(String, nullable=True)
    score = Column(Float, nullable=True)
    attributes = Column(JSONB, nullable=False, default=dict)


class EngineUploadRow(TimestampedModel):
    __tablename__ = "engine_uploads"

    upload_id = Column(String, primary_key=True)
    engine = Column(String, nullable=False, index=True)
    payload = Column(JSONB, nullable=False)


class EngineReportRow(TimestampedModel):
    __tablename__ = "engine_reports"

    report_id = Column(String, primary_key=True)
    engine = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False)
    payload = Column(JSONB, nullable=False)


class EngineAuditLogRow(Base):
    """Append-only; no updated_at."""

    __tablename__ = "engine_audit_logs"

    entry_id = Column(String, primary_key=True)
    engine = Column(String, nullable=False, index=True)
    action = Column(String, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    payload = Column(JSONB, nullable=False)


class TenantRow(TimestampedModel):
    """Tenant directory. payload holds Tenant.to_dict(include_secrets=True)."""

    __tablename__ = "tenants"

    tenant_id = Column(String, primary_key=True)
    domain = Column(String, nullable=False, unique=True)
    active = Column(Boolean, nullable=False, default=True)
    suspended = Column(Boolean, nullable=False, default=False)
    payload = Column(JSONB, nullable=False)
