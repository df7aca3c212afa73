"""Structured JSON logging and the action audit logger."""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any
from uuid import uuid4

from ...config.settings import settings
from ...core.exceptions import IntakePortalError


ROOT_LOGGER_NAME = "intake_portal"

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName'
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": getattr(record, 'module', None),
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        # Extra fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class LoggingService:
    """Builds component loggers under the ``intake_portal`` namespace."""

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        log_level: str = "INFO",
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ):
        self.log_dir = log_dir
        self.log_level = getattr(logging, log_level.upper(), logging.INFO)
        self.max_file_size = max_file_size
        self.backup_count = backup_count
        self.session_id = uuid4()

        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.app_logger = self._create_logger(ROOT_LOGGER_NAME, "application.log")
        self.error_logger = self._create_logger(
            f"{ROOT_LOGGER_NAME}.errors", "errors.log", level=logging.ERROR
        )

    def _create_logger(self, name: str, file_name: str, level: Optional[int] = None) -> logging.Logger:
        """Create a logger with a console handler and, when configured, a rotating JSON file."""
        logger = logging.getLogger(name)
        logger.setLevel(level or self.log_level)

        # Remove existing handlers to avoid duplicates
        logger.handlers.clear()

        if self.log_dir:
            file_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / file_name,
                maxBytes=self.max_file_size,
                backupCount=self.backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(StructuredFormatter())
            logger.addHandler(file_handler)

        if name == ROOT_LOGGER_NAME:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
            logger.addHandler(console_handler)

        return logger

    def get_logger(self, component: str) -> logging.Logger:
        """Child logger for one component; records flow to the application handlers."""
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")

    def set_level(self, level: str):
        """Change the application log level at runtime."""
        self.log_level = getattr(logging, level.upper(), logging.INFO)
        self.app_logger.setLevel(self.log_level)

    def log_error(
        self,
        error: Exception,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """Log error with full context and stack trace."""
        extra = {
            "component": component,
            "operation": operation,
            "error_type": type(error).__name__,
            "context": context or {},
            "session_id": str(self.session_id),
        }

        if isinstance(error, IntakePortalError):
            extra.update({
                "error_code": error.error_code,
                "error_context": error.context,
                "error_cause": str(error.cause) if error.cause else None
            })

        message = f"Error in {component or 'unknown'}"
        if operation:
            message += f" during {operation}"
        message += f": {error}"

        self.error_logger.error(message, exc_info=error, extra=extra)


class ActionLogger:
    """Audit trail of export and admin actions."""

    def __init__(self, logging_service: LoggingService):
        self.logger = logging_service.get_logger("audit")

    def log_action(
        self,
        client_id: Optional[str],
        module_name: str,
        action: str,
        result: str,
        details: Optional[dict] = None
    ):
        """Log one action. ``result`` is ``success``, ``error`` or anything else (warning)."""
        msg = f"[{module_name}] client={client_id} | action={action} | result={result}"
        extra = {"client_id": client_id, "module_name": module_name, "action": action,
                 "result": result, "details": details or {}}
        if result == "success":
            self.logger.info(msg, extra=extra)
        elif result == "error":
            self.logger.error(msg, extra=extra)
        else:
            self.logger.warning(msg, extra=extra)


logging_service = LoggingService(
    log_dir=settings.logging.log_dir,
    log_level=settings.logging.level,
    max_file_size=settings.logging.max_file_size,
    backup_count=settings.logging.backup_count
)

# Singleton instance
action_logger = ActionLogger(logging_service)


def get_logger(component: str) -> logging.Logger:
    return logging_service.get_logger(component)
