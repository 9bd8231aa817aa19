"""
Dependencies module initialization
"""

from .services import get_broker, get_consumer, get_notification_service, get_task_service

__all__ = [
    "get_broker",
    "get_consumer",
    "get_notification_service",
    "get_task_service",
]
