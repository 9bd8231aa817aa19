"""
Broker topology: exchange, queue and binding declarations.

Every step is a declaration, so asserting the same topology again on a
fresh channel is a no-op on the broker side.
"""

from dataclasses import dataclass
from typing import Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractQueue

from task_events.core.errors import TopologyError
from task_events.core.logger import logger
from task_events.events.task import TASK_CREATED

TASK_EVENTS_EXCHANGE = "task.events"
NOTIFICATION_QUEUE = "notification.task.events"
TASK_CREATED_ROUTING_KEY = TASK_CREATED


@dataclass(frozen=True)
class TopologyHandle:
    """Declared exchange and, for consumers, the bound queue"""

    exchange: AbstractExchange
    queue: Optional[AbstractQueue] = None
    routing_key: Optional[str] = None


async def ensure_topology(
    channel: AbstractChannel,
    exchange_name: str = TASK_EVENTS_EXCHANGE,
    queue_name: Optional[str] = NOTIFICATION_QUEUE,
    routing_key: str = TASK_CREATED_ROUTING_KEY,
) -> TopologyHandle:
    """
    Declare a durable topic exchange, a durable queue, and the binding between them

    Args:
        channel: Open channel to declare on
        exchange_name: Topic exchange name
        queue_name: Queue to declare and bind; None declares the exchange only
        routing_key: Binding key, equal to the event type

    Raises:
        TopologyError: any declaration failed (e.g. exchange exists with another type)
    """
    step = "exchange"
    try:
        exchange = await channel.declare_exchange(
            exchange_name,
            aio_pika.ExchangeType.TOPIC,
            durable=True,
        )
        logger.info(f"Exchange '{exchange_name}' ready", metadata={"event": "exchange_declared"})

        if queue_name is None:
            return TopologyHandle(exchange=exchange)

        step = "queue"
        queue = await channel.declare_queue(queue_name, durable=True)
        logger.info(f"Queue '{queue_name}' ready", metadata={"event": "queue_declared"})

        step = "binding"
        await queue.bind(exchange, routing_key=routing_key)
        logger.info(
            f"Queue '{queue_name}' bound to '{exchange_name}' for '{routing_key}' events",
            metadata={"event": "queue_bound"}
        )
    except Exception as e:
        logger.error(
            f"Failed to declare {step} topology",
            error=e,
            metadata={
                "event": "topology_error",
                "exchange": exchange_name,
                "queue": queue_name,
                "routingKey": routing_key,
            }
        )
        raise TopologyError(f"Failed to declare {step}: {e}", step=step) from e

    return TopologyHandle(exchange=exchange, queue=queue, routing_key=routing_key)
