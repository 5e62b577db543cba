# auditdna/infrastructure/messaging/rabbitmq_publisher.py

import json
from typing import Any, Dict, Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractRobustConnection


class RabbitMQPublisher:
    """Topic-exchange publisher. Connects lazily on first publish; exchanges are declared durable."""

    def __init__(self, url: str) -> None:
        self._url = url
        self._connection: Optional[AbstractRobustConnection] = None
        self._channel: Optional[AbstractChannel] = None

    async def connect(self) -> None:
        self._connection = await aio_pika.connect_robust(self._url)
        self._channel = await self._connection.channel()
        await self._channel.set_qos(prefetch_count=10)

    async def publish(
        self,
        exchange_name: str,
        routing_key: str,
        message: Dict[str, Any],
        idempotency_key: str,
    ) -> None:
        if not self._channel:
            await self.connect()

        exchange = await self._channel.declare_exchange(
            exchange_name,
            aio_pika.ExchangeType.TOPIC,
            durable=True,
        )

        msg = aio_pika.Message(
            body=json.dumps(message, default=str).encode(),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            headers={
                "idempotency_key": idempotency_key,
            },
        )

        await exchange.publish(msg, routing_key=routing_key)

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
        self._connection = None
        self._channel = None
