"""
FastAPI Application - Notification Service
Consumes task events from RabbitMQ and notifies users
"""

# Load environment variables from .env file FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from task_events.api import notifications
from task_events.core.config import config
from task_events.core.errors import ErrorResponse, error_response_handler, http_exception_handler
from task_events.core.logger import logger
from task_events.core.telemetry import instrument_app
from task_events.handlers.registry import HandlerRegistry
from task_events.messaging.connection import RabbitMQConnection
from task_events.messaging.consumer import ConsumerLoop
from task_events.messaging.topology import (
    NOTIFICATION_QUEUE,
    TASK_CREATED_ROUTING_KEY,
    TASK_EVENTS_EXCHANGE,
    ensure_topology,
)
from task_events.middleware import CorrelationIdMiddleware
from task_events.repositories.notification import NotificationRepository
from task_events.services.notification import NotificationService
from task_events.workers.notification_consumer import NotificationConsumer


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup: broker connection and topology failures abort the process
    logger.info("Starting Notification Service...")
    broker = RabbitMQConnection(config.rabbitmq_url)
    await broker.connect()

    try:
        await ensure_topology(
            broker.require_channel(),
            TASK_EVENTS_EXCHANGE,
            NOTIFICATION_QUEUE,
            TASK_CREATED_ROUTING_KEY,
        )
    except Exception:
        await broker.close()
        raise

    notification_service = NotificationService(NotificationRepository())
    registry = notification_service.register_handlers(HandlerRegistry())
    consumer = ConsumerLoop(broker, NOTIFICATION_QUEUE, registry)
    worker = NotificationConsumer(broker, consumer)

    app.state.broker = broker
    app.state.consumer = consumer
    app.state.notification_service = notification_service

    worker.start()

    logger.info(
        "Notification Service started successfully",
        metadata={
            "service_name": config.service_name,
            "version": config.service_version,
            "environment": config.environment,
            "port": config.notification_port
        }
    )

    yield

    # Shutdown: stop consuming, drain, then close channel and connection
    logger.info("Shutting down Notification Service...")
    await worker.stop(config.shutdown_grace_period)


app = FastAPI(
    title="Notification Service",
    description="Consumes task events and notifies users",
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

app.include_router(notifications.router, tags=["notifications"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "notification_main:app",
        host=config.host,
        port=config.notification_port,
        reload=config.is_development
    )
