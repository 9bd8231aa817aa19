"""
Event publisher
Sends envelopes to the task events exchange as persistent messages
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Optional

import aio_pika
import aiormq

from task_events.core.errors import BrokerConnectionError, PublishError
from task_events.core.logger import logger
from task_events.events.envelope import EventEnvelope
from task_events.messaging.connection import RabbitMQConnection
from task_events.messaging.topology import TopologyHandle


@dataclass(frozen=True)
class PublishAck:
    """Broker accepted the message"""

    exchange: str
    routing_key: str
    message_id: str
    event_type: str
    correlation_id: str


@dataclass(frozen=True)
class PublishResult:
    """Outcome of a best-effort publish; never raised, always returned"""

    ack: Optional[PublishAck] = None
    error: Optional[PublishError] = None

    @property
    def published(self) -> bool:
        return self.ack is not None


class EventPublisher:
    """
    Publishes envelopes on the shared channel.

    Sends are serialised with a lock because concurrent requests share one
    channel. Nothing is retried: a failed publish is reported to the caller.
    """

    def __init__(self, connection: RabbitMQConnection, topology: TopologyHandle):
        self.connection = connection
        self.topology = topology
        self._lock = asyncio.Lock()

    @staticmethod
    def build_message(envelope: EventEnvelope) -> aio_pika.Message:
        return aio_pika.Message(
            body=envelope.encode(),
            content_type="application/json",
            content_encoding="utf-8",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            message_id=str(uuid.uuid4()),
            correlation_id=envelope.correlation_id,
            timestamp=envelope.emitted_at,
            type=envelope.event_type,
        )

    async def publish(self, routing_key: str, envelope: EventEnvelope) -> PublishAck:
        """
        Publish one envelope

        Raises:
            PublishError: channel unusable, send failed, or the broker nacked
        """
        try:
            self.connection.require_channel()
        except BrokerConnectionError as e:
            raise PublishError(f"Channel unusable: {e}") from e

        message = self.build_message(envelope)
        exchange_name = self.topology.exchange.name

        async with self._lock:
            try:
                confirmation = await self.topology.exchange.publish(
                    message,
                    routing_key=routing_key,
                    mandatory=False,
                )
            except Exception as e:
                raise PublishError(f"Failed to publish {envelope.event_type}: {e}") from e

        if isinstance(confirmation, aiormq.spec.Basic.Nack):
            raise PublishError(f"Broker did not accept {envelope.event_type} message")

        logger.info(
            f"Published {envelope.event_type} event",
            metadata={
                "event": "event_published",
                "taskId": envelope.correlation_id,
                "exchange": exchange_name,
                "routingKey": routing_key,
                "messageId": message.message_id,
            }
        )

        return PublishAck(
            exchange=exchange_name,
            routing_key=routing_key,
            message_id=message.message_id,
            event_type=envelope.event_type,
            correlation_id=envelope.correlation_id,
        )

    async def try_publish(self, routing_key: str, envelope: EventEnvelope) -> PublishResult:
        """Publish without raising; the failure comes back in the result"""
        try:
            ack = await self.publish(routing_key, envelope)
        except PublishError as e:
            logger.error(
                f"Failed to publish {envelope.event_type} event",
                error=e,
                metadata={
                    "event": "event_publish_failed",
                    "taskId": envelope.correlation_id,
                    "routingKey": routing_key,
                }
            )
            return PublishResult(error=e)
        return PublishResult(ack=ack)
