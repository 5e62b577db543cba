# scripts/check_rabbit.py
import sys
from pathlib import Path

# Ensure project root is on the path when running this script directly
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncio

from auditdna.application.notifications import ROUTING_UPLOAD_CREATED, NotificationService
from auditdna.config.settings import get_settings
from auditdna.infrastructure.messaging.rabbitmq_publisher import RabbitMQPublisher


async def check():
    settings = get_settings()
    publisher = RabbitMQPublisher(settings.rabbitmq_url)
    notifications = NotificationService(publisher, settings.external_call_timeout_seconds)
    try:
        published = await notifications.notify(
            ROUTING_UPLOAD_CREATED,
            {"event_type": ROUTING_UPLOAD_CREATED, "engine": "water_tech", "upload_id": "check"},
            idempotency_key="check-rabbit",
        )
        print("Published" if published else "Publish failed, see log")
    finally:
        await publisher.close()


asyncio.run(check())
