"""
FastAPI Application - Task Service
Creates tasks and emits task.created events to RabbitMQ
"""

# Load environment variables from .env file FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from task_events.api import tasks
from task_events.core.config import config
from task_events.core.errors import ErrorResponse, error_response_handler, http_exception_handler
from task_events.core.logger import logger
from task_events.core.telemetry import instrument_app
from task_events.messaging.connection import RabbitMQConnection
from task_events.messaging.publisher import EventPublisher
from task_events.messaging.topology import (
    NOTIFICATION_QUEUE,
    TASK_CREATED_ROUTING_KEY,
    TASK_EVENTS_EXCHANGE,
    ensure_topology,
)
from task_events.middleware import CorrelationIdMiddleware
from task_events.repositories.task import TaskRepository
from task_events.services.task import TaskService


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup: broker connection and topology failures abort the process
    logger.info("Starting Task Service...")
    broker = RabbitMQConnection(config.rabbitmq_url)
    await broker.connect()

    try:
        # The queue is declared here too so events published before the
        # notification service first starts are kept
        topology = await ensure_topology(
            broker.require_channel(),
            TASK_EVENTS_EXCHANGE,
            NOTIFICATION_QUEUE,
            TASK_CREATED_ROUTING_KEY,
        )
    except Exception:
        await broker.close()
        raise

    app.state.broker = broker
    app.state.task_service = TaskService(TaskRepository(), EventPublisher(broker, topology))

    logger.info(
        "Task Service started successfully",
        metadata={
            "service_name": config.service_name,
            "version": config.service_version,
            "environment": config.environment,
            "port": config.port
        }
    )

    yield

    # Shutdown
    logger.info("Shutting down Task Service...")
    await broker.close()


app = FastAPI(
    title="Task Service",
    description="Creates tasks and publishes task events",
    version=config.service_version,
    lifespan=lifespan
)

instrument_app(app)

app.add_exception_handler(ErrorResponse, error_response_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, lambda request, exc: JSONResponse(
    status_code=422,
    content={"success": False, "error": "Validation error", "details": jsonable_encoder(exc.errors())}
))

app.add_middleware(CorrelationIdMiddleware)

app.include_router(tasks.router, tags=["tasks"])


if __name__ == "__main__":
    import uvicorn

    logger.info(
        f"Starting {config.service_name} on port {config.port}",
        metadata={
            "service_name": config.service_name,
            "version": config.service_version,
            "environment": config.environment,
            "port": config.port
        }
    )

    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.is_development
    )
