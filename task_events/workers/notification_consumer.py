"""
Notification consumer worker
Runs the consumer loop in the background of the notification service
and shuts it down in order: stop consuming, drain, close channel, close connection.
"""

import asyncio
import contextlib
from typing import Optional

from task_events.core.errors import BrokerError
from task_events.core.logger import logger
from task_events.messaging.connection import RabbitMQConnection
from task_events.messaging.consumer import ConsumerLoop


class NotificationConsumer:
    """Owns the background task that runs a consumer loop"""

    def __init__(self, broker: RabbitMQConnection, consumer: ConsumerLoop):
        self.broker = broker
        self.consumer = consumer
        self._task: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        """Start consuming in a background task"""
        self._task = asyncio.create_task(self._run())
        return self._task

    async def _run(self) -> None:
        try:
            await self.consumer.run()
        except BrokerError as e:
            # Surfaced through the health endpoint, which reports the consumer as stopped
            logger.critical(
                "Notification consumer terminated",
                error=e,
                metadata={"event": "consumer_terminated", "queue": self.consumer.queue_name}
            )

    async def stop(self, grace_period: float) -> None:
        """
        Stop consuming, give the in-flight handler up to grace_period seconds,
        then close the channel and the connection
        """
        logger.info("Stopping Notification Consumer...")

        stopped = True
        try:
            await asyncio.wait_for(self.consumer.stop(), timeout=grace_period)
        except asyncio.TimeoutError:
            stopped = False
            logger.warning(
                "In-flight message did not finish within the shutdown grace period",
                metadata={"event": "consumer_drain_timeout", "gracePeriod": grace_period}
            )

        if self._task is not None:
            if not stopped:
                self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

        await self.broker.close()
        logger.info("Notification Consumer stopped")
