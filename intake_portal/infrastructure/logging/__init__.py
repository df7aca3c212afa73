"""Logging infrastructure."""

from .service import (
    StructuredFormatter, LoggingService, ActionLogger,
    logging_service, action_logger, get_logger
)

__all__ = [
    "StructuredFormatter",
    "LoggingService",
    "ActionLogger",
    "logging_service",
    "action_logger",
    "get_logger",
]
