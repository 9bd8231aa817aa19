"""
Task domain events
"""

from datetime import datetime
from typing import Optional

from task_events.events.envelope import EventEnvelope

TASK_CREATED = "task.created"


def build_task_created(
    task_id: str,
    user_id: str,
    title: str,
    emitted_at: Optional[datetime] = None,
) -> EventEnvelope:
    """Envelope for a freshly created task"""
    return EventEnvelope.create(
        TASK_CREATED,
        task_id,
        {"userId": user_id, "title": title},
        emitted_at=emitted_at,
    )
