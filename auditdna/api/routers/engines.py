"""
Engine routes under /api/engines.

Registry-wide routes (/, /demo, /search) are declared before the
/{engineName} routes so their paths are never taken as engine names.
Every engine action appends an audit entry before responding.
"""

import asyncio
import logging
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.datastructures import UploadFile

from auditdna.api.audit import audited
from auditdna.api.dependencies import get_actor_id, get_engine, get_engine_registry, get_notifications
from auditdna.application.notifications import NotificationService
from auditdna.domain.exceptions import DomainValidationError
from auditdna.domain.models.audit import AuditAction
from auditdna.domain.models.engine import FileMetadata
from auditdna.domain.schemas.engine import ComplianceValidateRequest, PriceAnalysisRequest, ReportCreateRequest
from auditdna.domain.validators.search_validator import build_search_options, split_filters
from auditdna.engines.base import Engine
from auditdna.engines.registry import EngineRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

PRICING_CAPABILITY = "pricing_analysis"

EngineDep = Annotated[Engine, Depends(get_engine)]
RegistryDep = Annotated[EngineRegistry, Depends(get_engine_registry)]


def _search_params(
    request: Request,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
) -> Dict[str, Any]:
    return {
        "query": request.query_params.get("query"),
        "filters": split_filters(dict(request.query_params)),
        "options": build_search_options(page, limit, sort_by, sort_order),
    }


SearchParams = Annotated[Dict[str, Any], Depends(_search_params)]


# --- registry-wide ---


@router.get("")
@router.get("/", include_in_schema=False)
async def engines_status(registry: RegistryDep):
    return {"success": True, **registry.system_status()}


@router.get("/demo")
async def engines_demo(registry: RegistryDep):
    return {"success": True, "demo": await registry.demo_data()}


@router.get("/search")
async def search_all_engines(registry: RegistryDep, params: SearchParams):
    results = await registry.dispatch_all(params["query"], params["filters"], params["options"])
    return {"success": True, **results}


# --- single engine ---


@router.get("/{engineName}")
async def engine_info(engine: EngineDep):
    return {
        "success": True,
        "engine": engine.name,
        "config": engine.descriptor.to_dict(),
        "demo": await engine.demo_data(),
    }


@router.get("/{engineName}/search")
async def engine_search(
    request: Request,
    engine: EngineDep,
    params: SearchParams,
    actor_id: Annotated[Optional[str], Depends(get_actor_id)],
):
    options = params["options"]
    audit_data = {
        "query": params["query"],
        "filters": params["filters"],
        "page": options.page,
        "limit": options.limit,
    }
    async with audited(engine, AuditAction.SEARCH, request, audit_data, actor_id) as data:
        result = await engine.search(params["query"], params["filters"], options)
        data["total"] = result.total
    return {"success": True, **result.to_dict()}


def _store_file(upload: UploadFile, target: Path) -> int:
    target.parent.mkdir(parents=True, exist_ok=True)
    upload.file.seek(0)
    with target.open("wb") as out:
        shutil.copyfileobj(upload.file, out)
    return target.stat().st_size


@router.post("/{engineName}/upload")
async def engine_upload(
    request: Request,
    engine: EngineDep,
    notifications: Annotated[NotificationService, Depends(get_notifications)],
    actor_id: Annotated[Optional[str], Depends(get_actor_id)],
):
    form = await request.form()
    upload = form.get("file")
    if not isinstance(upload, UploadFile):
        raise DomainValidationError("No file provided")

    fields = {key: value for key, value in form.items() if not isinstance(value, UploadFile)}
    user_id = fields.get("userId") or actor_id
    metadata = {
        **fields,
        "uploadedBy": user_id or "anonymous",
        "engineName": engine.name,
        "uploadDate": datetime.now(timezone.utc).isoformat(),
    }
    stored_name = uuid.uuid4().hex
    target = Path(request.app.state.settings.upload_dir) / engine.name / stored_name

    audit_data = {"originalName": upload.filename}
    async with audited(engine, AuditAction.UPLOAD, request, audit_data, user_id) as data:
        try:
            size = await asyncio.to_thread(_store_file, upload, target)
            file_metadata = FileMetadata(
                filename=stored_name,
                original_name=upload.filename or stored_name,
                mimetype=upload.content_type or "application/octet-stream",
                size=size,
                path=str(target),
            )
            record = await engine.upload(file_metadata, metadata)
        except Exception:
            # No upload record, no stored file.
            await asyncio.to_thread(target.unlink, missing_ok=True)
            raise
        data.update({"uploadId": record.upload_id, "size": record.size})

    payload = record.to_dict()
    await notifications.upload_created(engine.name, payload)
    return {"success": True, "engine": engine.name, "upload": payload}


@router.post("/{engineName}/report")
async def engine_report(
    request: Request,
    engine: EngineDep,
    body: ReportCreateRequest,
    actor_id: Annotated[Optional[str], Depends(get_actor_id)],
):
    audit_data = {"reportType": body.report_type, "options": body.options}
    async with audited(engine, AuditAction.REPORT_GENERATE, request, audit_data, actor_id) as data:
        report = await engine.generate_report(body.report_type, body.data, body.options)
        data["reportId"] = report.report_id
    return {"success": True, "engine": engine.name, "report": report.to_dict()}


@router.post("/{engineName}/validate")
async def engine_validate(
    request: Request,
    engine: EngineDep,
    body: ComplianceValidateRequest,
    actor_id: Annotated[Optional[str], Depends(get_actor_id)],
):
    audit_data = {"ruleCount": len(body.rules)}
    async with audited(engine, AuditAction.COMPLIANCE_CHECK, request, audit_data, actor_id) as data:
        validation = await engine.validate_compliance(body.data, body.rules)
        data["overallStatus"] = validation.overall_status.value
    return {"success": True, "engine": engine.name, "validation": validation.to_dict()}


@router.get("/{engineName}/demo")
async def engine_demo(engine: EngineDep):
    return {"success": True, "engine": engine.name, "demo": await engine.demo_data()}


@router.post("/{engineName}/analyze")
async def engine_analyze(
    request: Request,
    engine: EngineDep,
    body: PriceAnalysisRequest,
    actor_id: Annotated[Optional[str], Depends(get_actor_id)],
):
    if PRICING_CAPABILITY not in engine.descriptor.capabilities:
        raise DomainValidationError(f"Engine '{engine.name}' does not support price analysis")
    audit_data = {"commodity": body.commodity, "timeframe": body.timeframe}
    async with audited(engine, AuditAction.PRICE_ANALYSIS, request, audit_data, actor_id) as data:
        analysis = await engine.analyze_price_trends(body.commodity, body.timeframe)
        data["trend"] = analysis.get("trend")
    return {"success": True, "engine": engine.name, "analysis": analysis}
