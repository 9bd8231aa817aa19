"""
Error types and FastAPI error handlers.

Two families live here:
- ErrorResponse: request-level errors rendered as JSON by the API layer
- BrokerError and subclasses: message broker failures. Startup failures
  (BrokerConnectionError, TopologyError) abort the process; steady-state
  failures (PublishError, DecodeError, HandlerError) are contained and logged.
"""

import traceback
from typing import Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from task_events.core.config import config
from task_events.core.logger import logger


class ErrorResponse(Exception):
    """Custom exception for application errors"""

    def __init__(self, message: str, status_code: int = 400, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ErrorResponseModel(BaseModel):
    """Pydantic model for error responses"""
    success: bool = False
    error: str
    details: Optional[dict] = None


class BrokerError(Exception):
    """Base class for message broker failures"""


class BrokerConnectionError(BrokerError):
    """Cannot establish, or has lost, the broker connection"""


class TopologyError(BrokerError):
    """Exchange, queue or binding declaration failed"""

    def __init__(self, message: str, step: Optional[str] = None):
        self.step = step
        super().__init__(message)


class PublishError(BrokerError):
    """Message was not accepted by the broker or the channel is unusable"""


class DecodeError(BrokerError):
    """Message body is not a valid event envelope"""


class HandlerError(BrokerError):
    """Handler failed on a well-formed message"""

    def __init__(self, message: str, event_type: Optional[str] = None):
        self.event_type = event_type
        super().__init__(message)


async def error_response_handler(request: Request, exc: ErrorResponse):
    """Handler for custom ErrorResponse exceptions"""
    metadata = {
        "event": "error_response",
        "status_code": exc.status_code,
        "url": str(request.url),
        "method": request.method,
        **exc.details,
    }

    if config.is_development:
        metadata["traceback"] = traceback.format_exc()

    logger.error(
        f"Error: {exc.message}",
        metadata=metadata
    )

    content = {"success": False, "error": exc.message}
    if exc.details:
        content["details"] = exc.details

    return JSONResponse(status_code=exc.status_code, content=content)


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handler for FastAPI HTTPException"""
    logger.error(
        f"HTTPException: {exc.detail}",
        metadata={
            "event": "http_exception",
            "status_code": exc.status_code,
            "url": str(request.url),
            "method": request.method,
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail}
    )
