"""Route-level engine audit: one entry per engine action, written before the response."""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Request

from auditdna.domain.models.audit import AuditAction, AuditStatus
from auditdna.engines.base import Engine


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@asynccontextmanager
async def audited(
    engine: Engine,
    action: AuditAction,
    request: Request,
    data: Dict[str, Any],
    actor_id: Optional[str] = None,
) -> AsyncIterator[Dict[str, Any]]:
    """
    Wrap an engine call. The yielded dict can be extended with result ids
    before the entry is written. The entry records failure and re-raises;
    audit write errors never reach the caller.
    """
    started = time.perf_counter()
    try:
        yield data
    except Exception as e:
        await engine.create_audit_log(
            action,
            data,
            actor_id,
            status=AuditStatus.FAILURE,
            error=getattr(e, "message", None) or str(e),
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
            ip=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
        raise
    await engine.create_audit_log(
        action,
        data,
        actor_id,
        status=AuditStatus.SUCCESS,
        duration_ms=round((time.perf_counter() - started) * 1000, 3),
        ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
