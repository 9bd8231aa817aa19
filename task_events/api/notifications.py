"""
Notification API endpoints
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from task_events.core.config import config
from task_events.core.errors import ErrorResponse, ErrorResponseModel
from task_events.dependencies.services import get_broker, get_consumer, get_notification_service
from task_events.messaging.connection import RabbitMQConnection
from task_events.messaging.consumer import ConsumerLoop
from task_events.services.notification import NotificationService

router = APIRouter()


@router.get("/users/{user_id}/notifications")
async def get_user_notifications(
    user_id: str,
    limit: int = Query(50, ge=1, le=200),
    service: NotificationService = Depends(get_notification_service),
):
    """Most recent notifications for a user"""
    notifications = await service.get_user_notifications(user_id, limit)
    return {
        "success": True,
        "data": [n.model_dump(by_alias=True, mode="json") for n in notifications],
    }


@router.get("/users/{user_id}/notifications/unread-count")
async def get_unread_count(
    user_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    count = await service.get_unread_count(user_id)
    return {"success": True, "data": {"count": count}}


@router.patch(
    "/notifications/{notification_id}/read",
    responses={404: {"model": ErrorResponseModel}},
)
async def mark_as_read(
    notification_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    """Mark a notification as read"""
    updated = await service.mark_as_read(notification_id)
    if not updated:
        raise ErrorResponse("Notification not found", status_code=404)

    return {"success": True, "message": "Notification marked as read"}


@router.get("/notifications/health")
async def health_check(
    broker: RabbitMQConnection = Depends(get_broker),
    consumer: ConsumerLoop = Depends(get_consumer),
):
    """
    Health check including broker connectivity and consumer state.
    Returns 503 once the consumer has stopped, so the orchestrator can restart the process.
    """
    healthy = broker.is_connected() and consumer.is_running
    content = {
        "status": "ok" if healthy else "unavailable",
        "service": config.service_name,
        "broker": "connected" if broker.is_connected() else "disconnected",
        "consumer": "running" if consumer.is_running else "stopped",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if not healthy:
        return JSONResponse(status_code=503, content=content)
    return content


@router.get("/notifications/stats")
async def get_stats(
    service: NotificationService = Depends(get_notification_service),
    consumer: ConsumerLoop = Depends(get_consumer),
):
    """Notification counts and consumer outcome counters"""
    return {
        "service": config.service_name,
        **service.get_stats(),
        "consumer": await consumer.get_stats(),
    }
