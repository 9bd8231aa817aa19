"""
Event envelope and domain event definitions
"""

from .envelope import EventEnvelope, format_timestamp
from .task import TASK_CREATED, build_task_created

__all__ = [
    "EventEnvelope",
    "format_timestamp",
    "TASK_CREATED",
    "build_task_created",
]
