"""
Event envelope: the wire representation of a domain event.

Wire shape (UTF-8 JSON, keys sorted, compact separators):

    {"taskId": "...", "timestamp": "2024-01-01T00:00:00Z",
     "title": "...", "type": "task.created", "userId": "..."}

The event-specific attributes are flattened next to the three reserved
keys. The encoding is deterministic: equal envelopes encode to equal bytes.
"""

import json
import math
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from task_events.core.errors import DecodeError

TYPE_KEY = "type"
CORRELATION_KEY = "taskId"
TIMESTAMP_KEY = "timestamp"
RESERVED_KEYS = frozenset({TYPE_KEY, CORRELATION_KEY, TIMESTAMP_KEY})

AttributeValue = Union[str, bool, int, float]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z, keeping sub-second precision"""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a wire timestamp: an ISO-8601 date-time string, Z or offset suffix

    Raises:
        DecodeError: not a string, date-only, or not ISO-8601
    """
    if not isinstance(value, str) or "T" not in value:
        raise DecodeError(f"Timestamp must be an ISO-8601 date-time string, got {value!r}")

    text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise DecodeError(f"Timestamp is not ISO-8601: {value!r}") from e


class EventEnvelope(BaseModel):
    """Immutable domain event as it travels over the broker"""

    model_config = ConfigDict(frozen=True)

    event_type: str = Field(min_length=1)
    correlation_id: str
    attributes: Mapping[str, AttributeValue] = Field(default_factory=dict)
    emitted_at: datetime

    @field_validator("emitted_at")
    @classmethod
    def _normalise_to_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_validator("attributes")
    @classmethod
    def _flat_attributes(cls, value: Mapping[str, AttributeValue]) -> Mapping[str, AttributeValue]:
        clashing = RESERVED_KEYS.intersection(value)
        if clashing:
            raise ValueError(f"attribute keys clash with reserved keys: {sorted(clashing)}")
        for key, item in value.items():
            if isinstance(item, float) and not math.isfinite(item):
                raise ValueError(f"attribute '{key}' must be a finite number")
        return MappingProxyType(dict(value))

    @classmethod
    def create(
        cls,
        event_type: str,
        correlation_id: str,
        attributes: Optional[Mapping[str, AttributeValue]] = None,
        emitted_at: Optional[datetime] = None,
    ) -> "EventEnvelope":
        """Build an envelope, stamping the emission time when not given"""
        return cls(
            event_type=event_type,
            correlation_id=correlation_id,
            attributes=attributes or {},
            emitted_at=emitted_at or utc_now(),
        )

    def to_wire(self) -> Dict[str, Any]:
        document: Dict[str, Any] = dict(self.attributes)
        document[TYPE_KEY] = self.event_type
        document[CORRELATION_KEY] = self.correlation_id
        document[TIMESTAMP_KEY] = format_timestamp(self.emitted_at)
        return document

    def encode(self) -> bytes:
        return json.dumps(
            self.to_wire(),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")

    @classmethod
    def decode(cls, body: Union[bytes, str]) -> "EventEnvelope":
        """
        Parse a message body into an envelope

        Raises:
            DecodeError: body is not UTF-8 JSON or does not describe a valid envelope
        """
        try:
            text = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
            document = json.loads(text)
        except (UnicodeDecodeError, ValueError) as e:
            raise DecodeError(f"Message body is not valid UTF-8 JSON: {e}") from e

        if not isinstance(document, dict):
            raise DecodeError("Message body must be a JSON object")

        missing = [key for key in (TYPE_KEY, CORRELATION_KEY, TIMESTAMP_KEY) if key not in document]
        if missing:
            raise DecodeError(f"Message body is missing required keys: {missing}")

        emitted_at = parse_timestamp(document[TIMESTAMP_KEY])
        attributes = {k: v for k, v in document.items() if k not in RESERVED_KEYS}

        try:
            return cls(
                event_type=document[TYPE_KEY],
                correlation_id=document[CORRELATION_KEY],
                attributes=attributes,
                emitted_at=emitted_at,
            )
        except ValidationError as e:
            raise DecodeError(f"Message body is not a valid event envelope: {e}") from e
