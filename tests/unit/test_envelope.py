"""Unit tests for the event envelope wire format"""
import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from task_events.core.errors import DecodeError
from task_events.events.envelope import EventEnvelope, format_timestamp
from task_events.events.task import TASK_CREATED, build_task_created


class TestEncode:
    """Envelope -> bytes"""

    def test_task_created_wire_bytes(self, task_created_envelope, task_created_body):
        assert task_created_envelope.encode() == task_created_body

    def test_attributes_are_flattened_next_to_reserved_keys(self, task_created_envelope):
        document = json.loads(task_created_envelope.encode())

        assert document == {
            "type": "task.created",
            "taskId": "t1",
            "userId": "u1",
            "title": "Buy milk",
            "timestamp": "2024-01-01T00:00:00Z",
        }

    def test_equal_envelopes_encode_to_equal_bytes(self, emitted_at):
        first = EventEnvelope.create("task.created", "t1", {"b": 1, "a": "x"}, emitted_at=emitted_at)
        second = EventEnvelope.create("task.created", "t1", {"a": "x", "b": 1}, emitted_at=emitted_at)

        assert first == second
        assert first.encode() == second.encode()

    def test_non_ascii_is_utf8(self, emitted_at):
        envelope = EventEnvelope.create("task.created", "t1", {"title": "Café"}, emitted_at=emitted_at)

        assert "Café".encode("utf-8") in envelope.encode()

    def test_sub_second_precision_is_kept(self):
        emitted_at = datetime(2024, 1, 1, 12, 30, 5, 123000, tzinfo=timezone.utc)

        assert format_timestamp(emitted_at) == "2024-01-01T12:30:05.123000Z"

    def test_offset_timestamp_is_rendered_in_utc(self):
        emitted_at = datetime(2024, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        envelope = EventEnvelope.create("task.created", "t1", emitted_at=emitted_at)

        assert envelope.to_wire()["timestamp"] == "2024-01-01T00:00:00Z"

    def test_naive_timestamp_is_treated_as_utc(self):
        envelope = EventEnvelope.create("task.created", "t1", emitted_at=datetime(2024, 1, 1))

        assert envelope.emitted_at.tzinfo == timezone.utc
        assert envelope.to_wire()["timestamp"] == "2024-01-01T00:00:00Z"

    def test_create_stamps_current_time(self):
        before = datetime.now(timezone.utc)
        envelope = EventEnvelope.create("task.created", "t1")
        after = datetime.now(timezone.utc)

        assert before <= envelope.emitted_at <= after


class TestDecode:
    """bytes -> Envelope"""

    def test_decode_wire_bytes(self, task_created_body, task_created_envelope):
        assert EventEnvelope.decode(task_created_body) == task_created_envelope

    def test_decode_inverts_encode(self, task_created_envelope):
        assert EventEnvelope.decode(task_created_envelope.encode()) == task_created_envelope

    def test_decode_accepts_millisecond_z_timestamps(self):
        body = b'{"type":"task.created","taskId":"t1","timestamp":"2024-05-01T10:00:00.123Z"}'

        envelope = EventEnvelope.decode(body)

        assert envelope.emitted_at == datetime(2024, 5, 1, 10, 0, 0, 123000, tzinfo=timezone.utc)

    def test_decode_normalises_offset_timestamps_to_utc(self):
        body = b'{"type":"task.created","taskId":"t1","timestamp":"2024-01-01T02:00:00+02:00"}'

        envelope = EventEnvelope.decode(body)

        assert envelope.emitted_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert envelope.to_wire()["timestamp"] == "2024-01-01T00:00:00Z"

    def test_decode_preserves_scalar_attribute_types(self):
        body = (
            b'{"type":"task.updated","taskId":"t1","timestamp":"2024-01-01T00:00:00Z",'
            b'"done":true,"priority":3,"estimate":1.5}'
        )

        attributes = EventEnvelope.decode(body).attributes

        assert attributes["done"] is True
        assert attributes["priority"] == 3 and isinstance(attributes["priority"], int)
        assert attributes["estimate"] == 1.5

    def test_decode_tolerates_unknown_event_type(self):
        body = b'{"type":"task.archived","taskId":"t9","timestamp":"2024-01-01T00:00:00Z"}'

        assert EventEnvelope.decode(body).event_type == "task.archived"

    @pytest.mark.parametrize("body", [
        b"not json",
        b"\xff\xfe\x00",
        b"[1, 2, 3]",
        b'"task.created"',
        b'{"taskId":"t1","timestamp":"2024-01-01T00:00:00Z"}',
        b'{"type":"task.created","timestamp":"2024-01-01T00:00:00Z"}',
        b'{"type":"task.created","taskId":"t1"}',
        b'{"type":"","taskId":"t1","timestamp":"2024-01-01T00:00:00Z"}',
        b'{"type":"task.created","taskId":"t1","timestamp":"yesterday"}',
        b'{"type":"task.created","taskId":"t1","timestamp":1704067200}',
        b'{"type":"task.created","taskId":"t1","timestamp":"1704067200"}',
        b'{"type":"task.created","taskId":"t1","timestamp":"2024-01-01"}',
        b'{"type":"task.created","taskId":"t1","timestamp":"2024-13-01T00:00:00Z"}',
        b'{"type":"task.created","taskId":"t1","timestamp":"2024-01-01T00:00:00Z","nested":{"a":1}}',
    ])
    def test_malformed_bodies_raise_decode_error(self, body):
        with pytest.raises(DecodeError):
            EventEnvelope.decode(body)


class TestConstruction:
    """Invariants enforced when building an envelope"""

    def test_envelope_is_immutable(self, task_created_envelope):
        with pytest.raises(ValidationError):
            task_created_envelope.event_type = "task.deleted"

    def test_attributes_are_read_only(self, task_created_envelope):
        with pytest.raises(TypeError):
            task_created_envelope.attributes["title"] = "Changed"

    def test_caller_mapping_is_copied(self, emitted_at):
        attributes = {"title": "Buy milk"}
        envelope = EventEnvelope.create("task.created", "t1", attributes, emitted_at=emitted_at)

        attributes["title"] = "Changed"

        assert envelope.attributes["title"] == "Buy milk"

    @pytest.mark.parametrize("reserved", ["type", "taskId", "timestamp"])
    def test_reserved_attribute_keys_are_rejected(self, reserved, emitted_at):
        with pytest.raises(ValidationError):
            EventEnvelope.create("task.created", "t1", {reserved: "x"}, emitted_at=emitted_at)

    def test_empty_event_type_is_rejected(self, emitted_at):
        with pytest.raises(ValidationError):
            EventEnvelope.create("", "t1", emitted_at=emitted_at)

    def test_non_finite_numbers_are_rejected(self, emitted_at):
        with pytest.raises(ValidationError):
            EventEnvelope.create("task.created", "t1", {"estimate": float("nan")}, emitted_at=emitted_at)


class TestTaskCreated:
    """task.created event builder"""

    def test_build_task_created(self, emitted_at):
        envelope = build_task_created("t1", "u1", "Buy milk", emitted_at=emitted_at)

        assert envelope.event_type == TASK_CREATED
        assert envelope.correlation_id == "t1"
        assert dict(envelope.attributes) == {"userId": "u1", "title": "Buy milk"}
