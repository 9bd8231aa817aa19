"""
Core module initialization
"""

from .config import config
from .logger import logger
from .errors import (
    BrokerConnectionError,
    BrokerError,
    DecodeError,
    ErrorResponse,
    ErrorResponseModel,
    HandlerError,
    PublishError,
    TopologyError,
)

__all__ = [
    "config",
    "logger",
    "BrokerError",
    "BrokerConnectionError",
    "TopologyError",
    "PublishError",
    "DecodeError",
    "HandlerError",
    "ErrorResponse",
    "ErrorResponseModel",
]
