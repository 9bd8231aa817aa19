"""Unit tests for the event publisher"""
import asyncio
import json

import aio_pika
import aiormq
import pytest
from unittest.mock import AsyncMock, MagicMock

from task_events.core.errors import PublishError
from task_events.messaging.publisher import EventPublisher
from task_events.messaging.topology import TASK_CREATED_ROUTING_KEY, TopologyHandle


@pytest.fixture
def exchange():
    exchange = MagicMock()
    exchange.name = "task.events"
    exchange.publish = AsyncMock(return_value=aiormq.spec.Basic.Ack(delivery_tag=1))
    return exchange


@pytest.fixture
def publisher(connected_broker, exchange):
    return EventPublisher(connected_broker, TopologyHandle(exchange=exchange))


class TestPublish:
    """Publishing envelopes to the exchange"""

    @pytest.mark.asyncio
    async def test_publish_sends_persistent_json_message(self, publisher, exchange, task_created_envelope):
        # Act
        ack = await publisher.publish(TASK_CREATED_ROUTING_KEY, task_created_envelope)

        # Assert
        exchange.publish.assert_awaited_once()
        message = exchange.publish.await_args.args[0]
        kwargs = exchange.publish.await_args.kwargs
        assert kwargs["routing_key"] == "task.created"
        assert kwargs["mandatory"] is False
        assert message.delivery_mode == aio_pika.DeliveryMode.PERSISTENT
        assert message.content_type == "application/json"
        assert message.correlation_id == "t1"
        assert message.type == "task.created"
        assert message.body == task_created_envelope.encode()
        assert json.loads(message.body)["taskId"] == "t1"

        assert ack.exchange == "task.events"
        assert ack.routing_key == "task.created"
        assert ack.message_id == message.message_id
        assert ack.correlation_id == "t1"

    @pytest.mark.asyncio
    async def test_each_message_gets_its_own_id(self, publisher, exchange, task_created_envelope):
        first = await publisher.publish(TASK_CREATED_ROUTING_KEY, task_created_envelope)
        second = await publisher.publish(TASK_CREATED_ROUTING_KEY, task_created_envelope)

        assert first.message_id != second.message_id

    @pytest.mark.asyncio
    async def test_broker_nack_raises_publish_error(self, publisher, exchange, task_created_envelope):
        exchange.publish.return_value = aiormq.spec.Basic.Nack(delivery_tag=1)

        with pytest.raises(PublishError):
            await publisher.publish(TASK_CREATED_ROUTING_KEY, task_created_envelope)

    @pytest.mark.asyncio
    async def test_send_failure_raises_publish_error(self, publisher, exchange, task_created_envelope):
        exchange.publish.side_effect = RuntimeError("channel is closed")

        with pytest.raises(PublishError) as exc_info:
            await publisher.publish(TASK_CREATED_ROUTING_KEY, task_created_envelope)

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_disconnected_channel_fails_without_sending(self, disconnected_broker, exchange, task_created_envelope):
        # Arrange
        publisher = EventPublisher(disconnected_broker, TopologyHandle(exchange=exchange))

        # Act
        with pytest.raises(PublishError):
            await publisher.publish(TASK_CREATED_ROUTING_KEY, task_created_envelope)

        # Assert
        exchange.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_publishes_are_serialised(self, publisher, exchange, task_created_envelope):
        # Arrange
        active = 0
        peak = 0

        async def slow_publish(message, routing_key, mandatory):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return aiormq.spec.Basic.Ack(delivery_tag=1)

        exchange.publish.side_effect = slow_publish

        # Act
        await asyncio.gather(*[
            publisher.publish(TASK_CREATED_ROUTING_KEY, task_created_envelope) for _ in range(3)
        ])

        # Assert
        assert exchange.publish.await_count == 3
        assert peak == 1


class TestTryPublish:
    """Best-effort publishing"""

    @pytest.mark.asyncio
    async def test_success_returns_ack(self, publisher, task_created_envelope):
        result = await publisher.try_publish(TASK_CREATED_ROUTING_KEY, task_created_envelope)

        assert result.published is True
        assert result.error is None

    @pytest.mark.asyncio
    async def test_failure_is_returned_not_raised(self, disconnected_broker, exchange, task_created_envelope):
        publisher = EventPublisher(disconnected_broker, TopologyHandle(exchange=exchange))

        result = await publisher.try_publish(TASK_CREATED_ROUTING_KEY, task_created_envelope)

        assert result.published is False
        assert isinstance(result.error, PublishError)
