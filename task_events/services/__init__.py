"""
Service layer
"""

from .notification import NotificationService
from .task import TaskCreated, TaskService

__all__ = ["TaskService", "TaskCreated", "NotificationService"]
