"""
Notification service
Creates notifications for users in response to task events
"""

import uuid
from typing import List

from task_events.core.logger import logger
from task_events.events.envelope import EventEnvelope
from task_events.events.task import TASK_CREATED
from task_events.handlers.registry import HandlerRegistry
from task_events.models.notification import Notification, NotificationCreate
from task_events.repositories.notification import NotificationRepository


class NotificationService:
    """Service layer for notification business logic"""

    def __init__(self, repository: NotificationRepository):
        self.repository = repository

    def register_handlers(self, registry: HandlerRegistry) -> HandlerRegistry:
        """Wire this service's event handlers into a registry"""
        registry.register(TASK_CREATED, self.handle_task_created)
        return registry

    async def create_notification(self, data: NotificationCreate) -> Notification:
        notification = Notification(
            id=str(uuid.uuid4()),
            user_id=data.user_id,
            type=data.type,
            title=data.title,
            message=data.message,
        )
        await self.repository.save(notification)

        logger.info(
            f"Created notification for user {data.user_id}: {data.title}",
            user_id=data.user_id,
            metadata={"event": "create_notification", "notificationId": notification.id}
        )
        return notification

    async def handle_task_created(self, event: EventEnvelope) -> Notification:
        """
        Handle task.created event

        Raises:
            ValueError: the event carries no userId or title
        """
        user_id = event.attributes.get("userId")
        title = event.attributes.get("title")
        if not isinstance(user_id, str) or not user_id:
            raise ValueError(f"task.created event for task {event.correlation_id} has no userId")
        if not isinstance(title, str):
            raise ValueError(f"task.created event for task {event.correlation_id} has no title")

        return await self.create_notification(NotificationCreate(
            user_id=user_id,
            type="task_created",
            title="New Task Created",
            message=f'Your task "{title}" has been created successfully.',
        ))

    async def get_user_notifications(self, user_id: str, limit: int = 50) -> List[Notification]:
        return await self.repository.get_by_user(user_id, limit)

    async def mark_as_read(self, notification_id: str) -> bool:
        return await self.repository.mark_as_read(notification_id)

    async def get_unread_count(self, user_id: str) -> int:
        return await self.repository.count_unread(user_id)

    def get_stats(self) -> dict:
        return self.repository.get_stats()
