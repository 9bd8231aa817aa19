"""
Messaging module
RabbitMQ connection, topology, publishing and consuming for task events
"""

from .connection import RabbitMQConnection, connect
from .topology import (
    NOTIFICATION_QUEUE,
    TASK_CREATED_ROUTING_KEY,
    TASK_EVENTS_EXCHANGE,
    TopologyHandle,
    ensure_topology,
)
from .publisher import EventPublisher, PublishAck, PublishResult
from .consumer import ConsumerLoop, Disposition, MessageOutcome

__all__ = [
    "RabbitMQConnection",
    "connect",
    "TopologyHandle",
    "ensure_topology",
    "TASK_EVENTS_EXCHANGE",
    "NOTIFICATION_QUEUE",
    "TASK_CREATED_ROUTING_KEY",
    "EventPublisher",
    "PublishAck",
    "PublishResult",
    "ConsumerLoop",
    "Disposition",
    "MessageOutcome",
]
