"""Shared status models."""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field


class FetchStatus(str, Enum):
    """Outcome of one document fetch during resolution."""
    FOUND = "found"
    NOT_FOUND = "not found"
    ERROR = "error"


class SystemHealth(BaseModel):
    """Health of the admin API and its backends."""

    is_healthy: bool = True
    status: str = "healthy"  # healthy, degraded
    banner: Optional[str] = None
    checks: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    last_check: datetime = Field(default_factory=datetime.now)

    def add_check(self, name: str, passed: bool, message: str, metadata: Optional[Dict[str, Any]] = None):
        self.checks[name] = {
            "passed": passed,
            "message": message,
            "metadata": metadata or {},
        }
        if not passed:
            self.is_healthy = False
            self.status = "degraded"
            self.banner = self.banner or message
