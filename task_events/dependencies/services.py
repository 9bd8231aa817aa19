"""
Dependency injection for services held on the application state

Services are built once in the application lifespan around the single
broker connection and stored on app.state.
"""

from fastapi import Request

from task_events.messaging.connection import RabbitMQConnection
from task_events.messaging.consumer import ConsumerLoop
from task_events.services.notification import NotificationService
from task_events.services.task import TaskService


def get_task_service(request: Request) -> TaskService:
    """Get task service instance"""
    return request.app.state.task_service


def get_notification_service(request: Request) -> NotificationService:
    """Get notification service instance"""
    return request.app.state.notification_service


def get_broker(request: Request) -> RabbitMQConnection:
    """Get the broker connection handle"""
    return request.app.state.broker


def get_consumer(request: Request) -> ConsumerLoop:
    """Get the notification consumer loop"""
    return request.app.state.consumer
