"""
In-process task repository

Holds a capped number of tasks in memory for the lifetime of the process.
Not persistent.
"""

from typing import List, Optional

from task_events.core.config import config
from task_events.models.task import Task
from task_events.repositories.bounded import BoundedUserStore


class TaskRepository:
    """Repository for task data access"""

    def __init__(
        self,
        max_records: int = config.store_max_records,
        max_per_user: int = config.store_max_records_per_user,
    ):
        self._tasks: BoundedUserStore[Task] = BoundedUserStore(max_records, max_per_user)

    async def save(self, task: Task) -> Task:
        return self._tasks.put(task)

    async def get_by_id(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    async def get_by_user(self, user_id: str, limit: int = 20) -> List[Task]:
        """Most recent tasks first"""
        return self._tasks.newest_for_user(user_id, limit)

    def get_stats(self) -> dict:
        return {
            "totalTasks": len(self._tasks),
            "totalUsers": self._tasks.user_count,
        }
