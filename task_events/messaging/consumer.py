"""
Consumer loop
Subscribes to a queue and resolves every delivery to an ack or a reject.

Per message:
    received -> decoded -> dispatched -> ack      (handler succeeded)
                                      -> ack      (no handler for the event type)
                                      -> reject   (handler raised)
             -> reject                            (body is not a valid envelope)

Rejects never requeue, so a poison message cannot spin. Messages are handled
one at a time in delivery order.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from aio_pika.abc import AbstractIncomingMessage, AbstractQueue

from task_events.core.errors import BrokerConnectionError, BrokerError, DecodeError, HandlerError, TopologyError
from task_events.core.logger import logger
from task_events.events.envelope import EventEnvelope
from task_events.handlers.registry import HandlerRegistry
from task_events.messaging.connection import RabbitMQConnection

PREFETCH_COUNT = 1


class Disposition(str, Enum):
    ACK = "ack"
    REJECT = "reject"


@dataclass(frozen=True)
class MessageOutcome:
    """How a delivery was resolved"""

    disposition: Disposition
    event_type: Optional[str] = None
    handled: bool = False
    error: Optional[BrokerError] = None


class ConsumerLoop:
    """Long-lived subscription to one queue"""

    def __init__(self, connection: RabbitMQConnection, queue_name: str, registry: HandlerRegistry):
        self.connection = connection
        self.queue_name = queue_name
        self.registry = registry
        self._lock = asyncio.Lock()
        self._queue: Optional[AbstractQueue] = None
        self._consumer_tag: Optional[str] = None
        self._stop_requested = asyncio.Event()
        self._stopping = False
        self._running = False
        self.stats: Dict[str, int] = {
            "received": 0,
            "acknowledged": 0,
            "rejected": 0,
            "unhandled": 0,
            "settle_failures": 0,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    async def dispatch(self, body: bytes) -> MessageOutcome:
        """Decode a body and run its handler; decides the disposition, touches no broker state"""
        try:
            envelope = EventEnvelope.decode(body)
        except DecodeError as e:
            logger.error(
                "Rejecting malformed message",
                error=e,
                metadata={"event": "message_decode_failed", "queue": self.queue_name}
            )
            return MessageOutcome(Disposition.REJECT, error=e)

        event_type = envelope.event_type
        handler = self.registry.get(event_type)

        if handler is None:
            logger.warning(
                f"No handler registered for event type: {event_type}",
                metadata={"event": "message_unhandled", "eventType": event_type}
            )
            return MessageOutcome(Disposition.ACK, event_type=event_type)

        logger.info(
            f"Received event: {event_type}",
            metadata={"event": "message_received", "eventType": event_type, "taskId": envelope.correlation_id}
        )

        try:
            await handler(envelope)
        except Exception as e:
            error = HandlerError(f"Handler for {event_type} failed: {e}", event_type=event_type)
            error.__cause__ = e
            logger.error(
                f"Error processing {event_type} event",
                error=e,
                metadata={"event": "message_handler_failed", "taskId": envelope.correlation_id}
            )
            return MessageOutcome(Disposition.REJECT, event_type=event_type, handled=True, error=error)

        return MessageOutcome(Disposition.ACK, event_type=event_type, handled=True)

    async def process_message(self, message: AbstractIncomingMessage) -> MessageOutcome:
        """Dispatch one delivery and settle it with the broker"""
        self.stats["received"] += 1
        outcome = await self.dispatch(message.body)
        await self._settle(message, outcome)
        return outcome

    async def _settle(self, message: AbstractIncomingMessage, outcome: MessageOutcome) -> None:
        try:
            if outcome.disposition is Disposition.ACK:
                await message.ack()
            else:
                await message.nack(requeue=False)
        except Exception as e:
            # A failed ack must not kill the subscription; a closed channel ends run() instead
            self.stats["settle_failures"] += 1
            logger.error(
                f"Failed to {outcome.disposition.value} message",
                error=e,
                metadata={"event": "message_settle_failed", "eventType": outcome.event_type}
            )
            return

        if outcome.disposition is Disposition.ACK:
            self.stats["acknowledged"] += 1
            if not outcome.handled:
                self.stats["unhandled"] += 1
            logger.debug(f"Message acknowledged ({outcome.event_type})")
        else:
            self.stats["rejected"] += 1
            logger.warning(
                "Message rejected without requeue",
                metadata={"event": "message_rejected", "eventType": outcome.event_type}
            )

    async def _on_message(self, message: AbstractIncomingMessage) -> None:
        async with self._lock:
            if self._stopping:
                # Left unacked; the broker redelivers it once the channel closes
                return
            await self.process_message(message)

    async def run(self) -> None:
        """
        Consume until stop() is called

        Raises:
            BrokerConnectionError: not connected, or the channel closed while consuming
            TopologyError: the queue has not been declared
        """
        if self._stopping:
            # stop() won the race with the task that runs this loop
            return

        channel = self.connection.require_channel()

        try:
            await channel.set_qos(prefetch_count=PREFETCH_COUNT)
            self._queue = await channel.declare_queue(self.queue_name, passive=True)
        except Exception as e:
            raise TopologyError(f"Queue '{self.queue_name}' is not available: {e}", step="queue") from e

        try:
            self._consumer_tag = await self._queue.consume(self._on_message, no_ack=False)
        except Exception as e:
            raise BrokerConnectionError(f"Failed to start consuming from '{self.queue_name}': {e}") from e

        if self._stopping:
            await self._cancel_consumer()
            return

        self._running = True
        logger.info(
            f"Message consumer started - listening for events on queue: {self.queue_name}",
            metadata={"event": "consumer_started", "eventTypes": self.registry.event_types}
        )

        stop_waiter = asyncio.ensure_future(self._stop_requested.wait())
        lost_waiter = asyncio.ensure_future(self.connection.wait_closed())
        try:
            await asyncio.wait({stop_waiter, lost_waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_waiter.cancel()
            lost_waiter.cancel()
            self._running = False

        if not self._stop_requested.is_set():
            logger.error(
                "RabbitMQ channel closed while consuming",
                metadata={"event": "consumer_channel_lost", "queue": self.queue_name}
            )
            raise BrokerConnectionError(f"Channel closed while consuming from '{self.queue_name}'")

        logger.info("Message consumer stopped", metadata={"event": "consumer_stopped"})

    async def stop(self) -> None:
        """
        Stop accepting deliveries and wait for the in-flight handler.
        The owner closes the channel and connection afterwards.
        """
        if self._stopping:
            return
        self._stopping = True
        logger.info("Stopping message consumer...")

        await self._cancel_consumer()

        # Acquiring the lock waits out the handler currently running
        async with self._lock:
            pass

        self._stop_requested.set()

    async def _cancel_consumer(self) -> None:
        consumer_tag, self._consumer_tag = self._consumer_tag, None
        if self._queue is None or consumer_tag is None or not self.connection.is_connected():
            return
        try:
            await self._queue.cancel(consumer_tag)
        except Exception as e:
            logger.warning(f"Error cancelling consumer: {e}")

    async def get_stats(self) -> Dict[str, Any]:
        """Consumer counters plus queue depth when connected"""
        stats: Dict[str, Any] = {
            "queue": self.queue_name,
            "running": self._running,
            "connected": self.connection.is_connected(),
            **self.stats,
        }

        if not self.connection.is_connected():
            return stats

        try:
            queue = await self.connection.require_channel().declare_queue(self.queue_name, passive=True)
            stats["message_count"] = queue.declaration_result.message_count
            stats["consumer_count"] = queue.declaration_result.consumer_count
        except Exception as e:
            logger.error("Error getting queue stats", error=e)
            stats["error"] = str(e)

        return stats
