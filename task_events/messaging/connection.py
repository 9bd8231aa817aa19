"""
RabbitMQ connection supervisor
Owns the broker connection and its single channel, tracks connectivity
"""

import asyncio
from typing import Any, Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractConnection

from task_events.core.errors import BrokerConnectionError
from task_events.core.logger import logger


class RabbitMQConnection:
    """
    One transport connection plus one channel, shared by topology,
    publishing and consuming.

    Connection-level errors and closures only flip the connectivity flag.
    Nothing reconnects automatically: after a loss the next caller of
    require_channel() gets a BrokerConnectionError.
    """

    def __init__(self, rabbitmq_url: str):
        """
        Args:
            rabbitmq_url: RabbitMQ connection URL
        """
        self.rabbitmq_url = rabbitmq_url
        self.connection: Optional[AbstractConnection] = None
        self.channel: Optional[AbstractChannel] = None
        self._is_connected = False
        self._closing = False
        self._closed: Optional[asyncio.Event] = None

    async def connect(self) -> "RabbitMQConnection":
        """
        Open the connection and its channel

        Raises:
            BrokerConnectionError: the broker is unreachable or refused the channel
        """
        logger.info("Connecting to RabbitMQ...", metadata={"event": "broker_connecting"})

        self._closing = False
        self._closed = asyncio.Event()

        try:
            self.connection = await aio_pika.connect(self.rabbitmq_url)
            self.connection.close_callbacks.add(self._on_connection_closed)
            logger.info("RabbitMQ connection established", metadata={"event": "broker_connected"})

            # Publisher confirms make publish report broker acceptance
            self.channel = await self.connection.channel(publisher_confirms=True)
            self.channel.close_callbacks.add(self._on_channel_closed)
            logger.info("RabbitMQ channel created", metadata={"event": "broker_channel_ready"})
        except Exception as e:
            logger.error(
                "Failed to connect to RabbitMQ",
                error=e,
                metadata={"event": "broker_error"}
            )
            await self.close()
            raise BrokerConnectionError(f"Failed to connect to RabbitMQ: {e}") from e

        self._is_connected = True
        return self

    def _on_connection_closed(self, sender: Any, exc: Optional[BaseException] = None) -> None:
        self._mark_disconnected("connection", exc)

    def _on_channel_closed(self, sender: Any, exc: Optional[BaseException] = None) -> None:
        self._mark_disconnected("channel", exc)

    def _mark_disconnected(self, what: str, exc: Optional[BaseException]) -> None:
        was_connected = self._is_connected
        self._is_connected = False
        if self._closed is not None:
            self._closed.set()

        if self._closing:
            return

        if exc is not None:
            logger.error(
                f"RabbitMQ {what} error",
                error=exc if isinstance(exc, Exception) else str(exc),
                metadata={"event": "broker_error", "wasConnected": was_connected}
            )
        logger.warning(f"RabbitMQ {what} closed", metadata={"event": "broker_closed"})

    def is_connected(self) -> bool:
        """Connectivity flag, read by health checks"""
        return self._is_connected

    def require_channel(self) -> AbstractChannel:
        """
        Return the live channel

        Raises:
            BrokerConnectionError: never connected, closed, or lost
        """
        if not self._is_connected or self.channel is None:
            raise BrokerConnectionError("Not connected to RabbitMQ")
        return self.channel

    async def wait_closed(self) -> None:
        """Resolve once the channel or connection has gone away"""
        if self._closed is None:
            return
        await self._closed.wait()

    async def close(self) -> None:
        """
        Close the channel, then the connection.
        Safe to call repeatedly and when connect() never succeeded.
        """
        self._closing = True
        self._is_connected = False

        channel, self.channel = self.channel, None
        connection, self.connection = self.connection, None

        if channel is None and connection is None:
            return

        logger.info("Stopping RabbitMQ connection...", metadata={"event": "broker_closing"})

        if channel is not None and not channel.is_closed:
            try:
                await channel.close()
                logger.info("RabbitMQ channel closed")
            except Exception as e:
                logger.warning(f"Error closing RabbitMQ channel: {e}")

        if connection is not None and not connection.is_closed:
            try:
                await connection.close()
                logger.info("RabbitMQ connection closed", metadata={"event": "broker_closed"})
            except Exception as e:
                logger.warning(f"Error closing RabbitMQ connection: {e}")

        if self._closed is not None:
            self._closed.set()


async def connect(rabbitmq_url: str) -> RabbitMQConnection:
    """Open a connection handle for the given broker URL"""
    return await RabbitMQConnection(rabbitmq_url).connect()
