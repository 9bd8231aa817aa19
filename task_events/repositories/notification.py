"""
In-process notification repository
"""

from typing import List

from task_events.core.config import config
from task_events.models.notification import Notification
from task_events.repositories.bounded import BoundedUserStore


class NotificationRepository:
    """Repository for notification data access, capped per user and overall"""

    def __init__(
        self,
        max_records: int = config.store_max_records,
        max_per_user: int = config.store_max_records_per_user,
    ):
        self._notifications: BoundedUserStore[Notification] = BoundedUserStore(max_records, max_per_user)

    async def save(self, notification: Notification) -> Notification:
        return self._notifications.put(notification)

    async def get_by_user(self, user_id: str, limit: int = 50) -> List[Notification]:
        """Most recent notifications first"""
        return self._notifications.newest_for_user(user_id, limit)

    async def mark_as_read(self, notification_id: str) -> bool:
        """
        Returns:
            True if the notification exists, False otherwise
        """
        notification = self._notifications.get(notification_id)
        if notification is None:
            return False
        if not notification.read:
            self._notifications.put(notification.model_copy(update={"read": True}))
        return True

    async def count_unread(self, user_id: str) -> int:
        return sum(1 for n in self._notifications.for_user(user_id) if not n.read)

    def get_stats(self) -> dict:
        return {
            "totalNotifications": len(self._notifications),
            "totalUsers": self._notifications.user_count,
        }
