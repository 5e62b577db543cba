"""NotificationService: best-effort publishing bounded by a timeout."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from auditdna.application.notifications import (
    EXCHANGE_ENGINE_EVENTS,
    ROUTING_UPLOAD_CREATED,
    NotificationService,
)

UPLOAD = {"id": "up-1", "originalName": "prices.csv", "size": 512}


@pytest.fixture
def publisher():
    p = AsyncMock()
    p.publish = AsyncMock(return_value=None)
    return p


@pytest.mark.asyncio
async def test_disabled_service_is_a_no_op():
    service = NotificationService(None, timeout_seconds=1.0)
    assert service.enabled is False
    assert await service.upload_created("usda_pricing", UPLOAD) is False


@pytest.mark.asyncio
async def test_upload_created_publishes_to_engine_exchange(publisher):
    service = NotificationService(publisher, timeout_seconds=1.0)
    assert await service.upload_created("usda_pricing", UPLOAD) is True

    publisher.publish.assert_awaited_once()
    exchange, routing_key, message, idempotency_key = publisher.publish.await_args.args
    assert exchange == EXCHANGE_ENGINE_EVENTS
    assert routing_key == ROUTING_UPLOAD_CREATED
    assert message["engine"] == "usda_pricing"
    assert message["upload_id"] == "up-1"
    assert message["filename"] == "prices.csv"
    assert idempotency_key == "up-1"


@pytest.mark.asyncio
async def test_publish_failure_is_swallowed(publisher):
    publisher.publish = AsyncMock(side_effect=ConnectionError("broker down"))
    service = NotificationService(publisher, timeout_seconds=1.0)
    assert await service.upload_created("water_tech", UPLOAD) is False


@pytest.mark.asyncio
async def test_slow_broker_is_bounded(publisher):
    async def hang(*args, **kwargs):
        await asyncio.sleep(5)

    publisher.publish = hang
    service = NotificationService(publisher, timeout_seconds=0.05)
    assert await asyncio.wait_for(service.upload_created("water_tech", UPLOAD), timeout=2) is False
