"""
Domain models
"""

from .notification import Notification, NotificationCreate, NotificationType
from .task import Task, TaskCreate, TaskStatus

__all__ = [
    "Task",
    "TaskCreate",
    "TaskStatus",
    "Notification",
    "NotificationCreate",
    "NotificationType",
]
