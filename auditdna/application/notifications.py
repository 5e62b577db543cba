"""Best-effort domain notifications. Publishing is bounded by a timeout and never fails the request."""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

from auditdna.application.exceptions import NotificationError

logger = logging.getLogger(__name__)

EXCHANGE_ENGINE_EVENTS = "engine_events"
ROUTING_UPLOAD_CREATED = "engine.upload.created"


class MessagePublisher(Protocol):
    async def publish(
        self,
        exchange_name: str,
        routing_key: str,
        message: Dict[str, Any],
        idempotency_key: str,
    ) -> None: ...


class NotificationService:
    """
    Wraps a MessagePublisher. With no publisher configured (notifications
    disabled) every notify is a logged no-op.
    """

    def __init__(self, publisher: Optional[MessagePublisher], timeout_seconds: float) -> None:
        self._publisher = publisher
        self._timeout = timeout_seconds

    @property
    def enabled(self) -> bool:
        return self._publisher is not None

    async def _publish(self, routing_key: str, message: Dict[str, Any], idempotency_key: str) -> None:
        try:
            await asyncio.wait_for(
                self._publisher.publish(EXCHANGE_ENGINE_EVENTS, routing_key, message, idempotency_key),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise NotificationError(f"Publish timed out after {self._timeout:g}s") from e
        except Exception as e:
            raise NotificationError(f"Publish failed: {e}") from e

    async def notify(self, routing_key: str, message: Dict[str, Any], idempotency_key: str) -> bool:
        """Returns True when the message was published. Failures are logged, never raised."""
        if self._publisher is None:
            logger.debug("notification_skipped", extra={"routing_key": routing_key})
            return False
        try:
            await self._publish(routing_key, message, idempotency_key)
        except NotificationError as e:
            logger.error(
                "notification_failed",
                extra={"routing_key": routing_key, "idempotency_key": idempotency_key, "error": e.message},
            )
            return False
        logger.info("notification_published", extra={"routing_key": routing_key, "idempotency_key": idempotency_key})
        return True

    async def upload_created(self, engine: str, upload: Dict[str, Any]) -> bool:
        message = {
            "event_type": ROUTING_UPLOAD_CREATED,
            "engine": engine,
            "upload_id": upload.get("id"),
            "filename": upload.get("originalName"),
            "size": upload.get("size"),
        }
        return await self.notify(ROUTING_UPLOAD_CREATED, message, idempotency_key=str(upload.get("id")))
