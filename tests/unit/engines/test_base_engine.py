"""BaseEngine contract: hooks, search paging, reports, audit log and compliance."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from auditdna.core.context import correlation_id_ctx
from auditdna.domain.exceptions import CapabilityNotImplementedError, DomainValidationError
from auditdna.domain.models.audit import AuditAction, AuditStatus
from auditdna.domain.models.engine import ComplianceStatus, FileMetadata
from auditdna.domain.models.report import ReportStatus
from auditdna.domain.validators.search_validator import build_search_options
from auditdna.engines.base import BaseEngine
from auditdna.engines.basic import BASIC_ENGINE_DESCRIPTORS, BasicEngine
from auditdna.engines.mock_data import generate_generic_records
from auditdna.infrastructure.memory.engine_repository_memory import InMemoryEngineRepository

WATER = BASIC_ENGINE_DESCRIPTORS[0]


@pytest.fixture
def repository():
    return InMemoryEngineRepository()


@pytest.fixture
async def engine(repository):
    await repository.save_records(WATER.name, generate_generic_records(WATER, 25, seed=1))
    return BasicEngine(WATER, repository)


@pytest.mark.asyncio
async def test_bare_engine_names_missing_hook():
    bare = BaseEngine(WATER)
    with pytest.raises(CapabilityNotImplementedError) as exc_info:
        await bare.search(None)
    assert exc_info.value.message == "performSearch must be implemented by water_tech engine"
    assert isinstance(exc_info.value, NotImplementedError)

    with pytest.raises(CapabilityNotImplementedError, match="performComplianceValidation"):
        await bare.validate_compliance({"value": 1})


@pytest.mark.asyncio
async def test_search_total_is_full_count(engine):
    result = await engine.search(None, {}, build_search_options(page=2, limit=10))
    assert result.total == 25
    assert len(result.results) == 10
    assert result.to_dict()["pagination"] == {"page": 2, "limit": 10, "total": 25}


@pytest.mark.asyncio
async def test_second_page_is_records_eleven_to_twenty(engine):
    full = await engine.search(None, {}, build_search_options(page=1, limit=25, sort_by="value", sort_order="asc"))
    page = await engine.search(None, {}, build_search_options(page=2, limit=10, sort_by="value", sort_order="asc"))
    assert [r["id"] for r in page.results] == [r["id"] for r in full.results[10:20]]


@pytest.mark.asyncio
async def test_search_last_page_is_partial(engine):
    result = await engine.search(None, {}, build_search_options(page=3, limit=10))
    assert len(result.results) == 5
    assert result.total == 25


@pytest.mark.asyncio
async def test_search_sorts_by_requested_field(engine):
    result = await engine.search(None, {}, build_search_options(limit=25, sort_by="value", sort_order="asc"))
    values = [r["value"] for r in result.results]
    assert values == sorted(values)


@pytest.mark.asyncio
async def test_search_default_sort_is_newest_first(engine):
    result = await engine.search(None, {}, build_search_options(limit=25))
    created = [r["createdAt"] for r in result.results]
    assert created == sorted(created, reverse=True)


@pytest.mark.asyncio
async def test_search_rejects_unknown_sort_field(engine):
    with pytest.raises(DomainValidationError, match="Cannot sort by 'color'"):
        await engine.search(None, {}, build_search_options(sort_by="color"))


@pytest.mark.asyncio
async def test_search_query_and_filters(engine):
    result = await engine.search("sample 1", {"valueMin": "0"}, build_search_options(limit=100))
    names = {r["name"] for r in result.results}
    assert names
    assert all("sample 1" in n.lower() for n in names)
    assert result.total == len(result.results)

    none = await engine.search(None, {"valueMin": "1000"})
    assert none.total == 0
    assert none.results == []


@pytest.mark.asyncio
async def test_search_compliance_status_filter(engine):
    result = await engine.search(None, {"complianceStatus": "COMPLIANT"}, build_search_options(limit=100))
    assert all(r["complianceStatus"] == "compliant" for r in result.results)


@pytest.mark.asyncio
async def test_report_ids_unique_within_one_millisecond(engine, repository):
    reports = [await engine.generate_report("risk_assessment", {"site": i}) for i in range(50)]
    ids = [r.report_id for r in reports]
    assert len(set(ids)) == 50
    assert all(i.startswith("WATER_TECH-") for i in ids)
    assert all(r.status == ReportStatus.COMPLETED for r in reports)
    assert await repository.get_report(WATER.name, ids[0]) is not None


@pytest.mark.asyncio
async def test_report_title_and_options(engine):
    report = await engine.generate_report("compliance_check", {"site": "A"}, {"format": "csv"})
    body = report.to_dict()
    assert body["title"] == "Water Tech Upload/Analysis Compliance Check Report"
    assert body["options"]["format"] == "csv"
    assert body["data"] == {"site": "A"}


@pytest.mark.asyncio
async def test_report_requires_type(engine):
    with pytest.raises(DomainValidationError, match="Report type is required"):
        await engine.generate_report("", {})


@pytest.mark.asyncio
async def test_upload_persists_record(engine, repository):
    meta = FileMetadata(
        filename="f1", original_name="samples.csv", mimetype="text/csv", size=128, path="/tmp/f1"
    )
    upload = await engine.upload(meta, {"uploadedBy": "u-1", "description": "April"})
    assert upload.engine == "water_tech"
    assert upload.status.value == "uploaded"
    assert upload.metadata["description"] == "April"
    assert await repository.list_uploads("water_tech") == [upload]


@pytest.mark.asyncio
async def test_audit_log_written_with_correlation_id(engine, repository):
    token = correlation_id_ctx.set("corr-42")
    try:
        entry = await engine.create_audit_log(
            AuditAction.SEARCH, {"query": "x"}, "user-1", duration_ms=3.5, ip="10.0.0.1"
        )
    finally:
        correlation_id_ctx.reset(token)
    assert entry.correlation_id == "corr-42"
    assert entry.status == AuditStatus.SUCCESS
    logs = await repository.list_audit_logs("water_tech")
    assert logs[0].to_dict()["userId"] == "user-1"
    assert logs[0].ip == "10.0.0.1"


@pytest.mark.asyncio
async def test_audit_log_failure_is_swallowed(engine, repository):
    repository.save_audit_log = AsyncMock(side_effect=RuntimeError("disk full"))
    entry = await engine.create_audit_log(AuditAction.UPLOAD, {"uploadId": "u"})
    assert entry is None


@pytest.mark.asyncio
async def test_validate_compliance_with_defaults(engine):
    good = {
        "name": "Well 7",
        "value": 12.5,
        "location": "Chicago, IL",
        "testDate": (datetime.now(timezone.utc) - timedelta(days=3)).isoformat(),
    }
    validation = await engine.validate_compliance(good)
    assert validation.overall_status == ComplianceStatus.COMPLIANT
    assert [r.rule for r in validation.results] == ["data_completeness", "value_range", "date_validity"]

    bad = {**good, "value": 5000}
    validation = await engine.validate_compliance(bad)
    assert validation.overall_status == ComplianceStatus.NON_COMPLIANT
    assert validation.to_dict()["overallStatus"] == "non-compliant"


@pytest.mark.asyncio
async def test_validate_compliance_with_caller_rules(engine):
    validation = await engine.validate_compliance({"value": 3}, [{"name": "small", "max": 5}])
    assert len(validation.results) == 1
    assert validation.overall_status == ComplianceStatus.COMPLIANT


@pytest.mark.asyncio
async def test_demo_data_shape(engine):
    demo = await engine.demo_data()
    assert demo["engine"] == "water_tech"
    assert demo["name"] == "Water Tech Upload/Analysis"
    assert len(demo["sampleSearchResults"]) == 3
    assert demo["capabilities"] == list(WATER.capabilities)
    assert demo["sampleUploadData"]["type"] == "application/pdf"
