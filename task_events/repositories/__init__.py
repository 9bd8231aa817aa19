"""
Repository layer
"""

from .bounded import BoundedUserStore
from .notification import NotificationRepository
from .task import TaskRepository

__all__ = ["BoundedUserStore", "TaskRepository", "NotificationRepository"]
