"""
Task API endpoints
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, status

from task_events.core.config import config
from task_events.core.errors import ErrorResponse, ErrorResponseModel
from task_events.dependencies.services import get_broker, get_task_service
from task_events.messaging.connection import RabbitMQConnection
from task_events.models.task import TaskCreate
from task_events.services.task import TaskService

router = APIRouter()


@router.post(
    "/tasks",
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponseModel}},
)
async def create_task(
    body: TaskCreate,
    service: TaskService = Depends(get_task_service),
):
    """
    Create a task and emit task.created.
    Succeeds even when the broker is unavailable; eventPublished reports the delivery.
    """
    result = await service.create_task(body)
    return {
        "success": True,
        "data": result.task.model_dump(by_alias=True, mode="json"),
        "eventPublished": result.delivery.published,
    }


# Registered before /tasks/{task_id} so the literal paths win
@router.get("/tasks/health")
async def health_check(broker: RabbitMQConnection = Depends(get_broker)):
    """Health check including broker connectivity"""
    return {
        "status": "ok",
        "service": config.service_name,
        "broker": "connected" if broker.is_connected() else "disconnected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/tasks/stats")
async def get_stats(service: TaskService = Depends(get_task_service)):
    """Task counts and publish outcome counters"""
    return {
        "service": config.service_name,
        **service.get_stats(),
    }


@router.get(
    "/tasks/{task_id}",
    responses={404: {"model": ErrorResponseModel}},
)
async def get_task(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    """Get a task by its ID"""
    task = await service.get_task(task_id)
    if task is None:
        raise ErrorResponse("Task not found", status_code=404)

    return {"success": True, "data": task.model_dump(by_alias=True, mode="json")}


@router.get("/users/{user_id}/tasks")
async def get_user_tasks(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    service: TaskService = Depends(get_task_service),
):
    """Most recent tasks for a user"""
    tasks = await service.get_user_tasks(user_id, limit)
    return {
        "success": True,
        "data": [task.model_dump(by_alias=True, mode="json") for task in tasks],
    }
