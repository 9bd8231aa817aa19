"""
Handler Registry - Maps event types to their handler coroutines
"""

from typing import Awaitable, Callable, Dict, Optional

from task_events.core.logger import logger
from task_events.events.envelope import EventEnvelope

EventHandler = Callable[[EventEnvelope], Awaitable[None]]


class HandlerRegistry:
    """Event type -> handler lookup used by the consumer loop"""

    def __init__(self):
        self._handlers: Dict[str, EventHandler] = {}

    def register(self, event_type: str, handler: EventHandler) -> None:
        """Register the handler for an event type, replacing any previous one"""
        self._handlers[event_type] = handler
        logger.debug(f"Registered event handler for: {event_type}")

    def get(self, event_type: str) -> Optional[EventHandler]:
        """
        Get handler for given event type

        Returns:
            Handler coroutine function or None if no handler registered
        """
        return self._handlers.get(event_type)

    @property
    def event_types(self):
        return sorted(self._handlers)
