"""
Notification models
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from task_events.models.task import utc_now

NotificationType = Literal["task_created", "task_completed", "task_cancelled"]


class NotificationCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    type: NotificationType
    title: str
    message: str


class Notification(BaseModel):
    """Notification delivered to a user"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(..., alias="userId")
    type: NotificationType
    title: str
    message: str
    read: bool = False
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
