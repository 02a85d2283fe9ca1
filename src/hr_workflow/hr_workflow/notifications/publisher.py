from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Protocol

import aio_pika
from aio_pika import DeliveryMode, ExchangeType, Message

logger = logging.getLogger(__name__)


class Publisher(Protocol):
    """Fire-and-forget publish interface to the message broker."""

    def publish(self, event: dict, routing_key: str, *, exchange: str = "") -> None:
        raise NotImplementedError


class RabbitMQPublisher(Publisher):
    """Publishes JSON events to RabbitMQ.

    Each call opens a short-lived connection, publishes one persistent message
    and closes it, bounded by ``timeout`` seconds. There is no retry: delivery
    is at-most-once.

    With ``exchange=""`` the message goes through the default exchange to the
    durable queue named by ``routing_key``; otherwise a durable topic exchange is
    declared and the message is routed by key.
    """

    def __init__(self, url: str, *, timeout: float = 5.0):
        self._url = url
        self._timeout = float(timeout)

    def publish(self, event: dict, routing_key: str, *, exchange: str = "") -> None:
        asyncio.run(asyncio.wait_for(self._publish(event, routing_key, exchange), timeout=self._timeout))
        logger.info("Published event", extra={"routing_key": routing_key})

    async def _publish(self, event: dict, routing_key: str, exchange_name: str) -> None:
        connection = await aio_pika.connect(self._url)
        async with connection:
            channel = await connection.channel()
            if exchange_name:
                exchange = await channel.declare_exchange(exchange_name, ExchangeType.TOPIC, durable=True)
            else:
                await channel.declare_queue(routing_key, durable=True)
                exchange = channel.default_exchange

            message = Message(
                body=json.dumps(event, default=str).encode("utf-8"),
                content_type="application/json",
                delivery_mode=DeliveryMode.PERSISTENT,
                timestamp=datetime.now(timezone.utc),
            )
            await exchange.publish(message, routing_key=routing_key)


class NullPublisher(Publisher):
    """Used when notifications are disabled in settings; events are only logged."""

    def publish(self, event: dict, routing_key: str, *, exchange: str = "") -> None:
        logger.info("Notifications disabled, dropping event", extra={"routing_key": routing_key})
