"""
Task service containing business logic layer
"""

import uuid
from dataclasses import dataclass
from typing import List, Optional

from task_events.core.logger import logger
from task_events.events.task import build_task_created
from task_events.messaging.publisher import EventPublisher, PublishResult
from task_events.messaging.topology import TASK_CREATED_ROUTING_KEY
from task_events.models.task import Task, TaskCreate
from task_events.repositories.task import TaskRepository


@dataclass(frozen=True)
class TaskCreated:
    """A stored task plus what happened to its event"""

    task: Task
    delivery: PublishResult


class TaskService:
    """Service layer for task business logic"""

    def __init__(self, repository: TaskRepository, publisher: EventPublisher):
        self.repository = repository
        self.publisher = publisher
        self.events_published = 0
        self.events_failed = 0

    async def create_task(self, data: TaskCreate) -> TaskCreated:
        """
        Store a task and emit task.created.

        The task is created whether or not the event reaches the broker;
        a failed publish is only reported through the returned delivery result.
        """
        task = Task(
            id=str(uuid.uuid4()),
            title=data.title,
            description=data.description,
            user_id=str(data.user_id),
        )
        await self.repository.save(task)

        envelope = build_task_created(task.id, task.user_id, task.title)
        delivery = await self.publisher.try_publish(TASK_CREATED_ROUTING_KEY, envelope)

        if delivery.published:
            self.events_published += 1
        else:
            self.events_failed += 1
            logger.warning(
                f"Event not published for task {task.id}, but task was created",
                user_id=task.user_id,
                metadata={"event": "create_task_degraded", "taskId": task.id}
            )

        logger.info(
            f"Task created: {task.id}",
            user_id=task.user_id,
            metadata={"event": "create_task", "taskId": task.id, "eventPublished": delivery.published}
        )

        return TaskCreated(task=task, delivery=delivery)

    async def get_task(self, task_id: str) -> Optional[Task]:
        return await self.repository.get_by_id(task_id)

    async def get_user_tasks(self, user_id: str, limit: int = 20) -> List[Task]:
        return await self.repository.get_by_user(user_id, limit)

    def get_stats(self) -> dict:
        return {
            **self.repository.get_stats(),
            "eventsPublished": self.events_published,
            "eventsFailed": self.events_failed,
        }
