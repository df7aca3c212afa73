"""
Process-wide document store connection flag.

Flipped to disconnected when the store reports unavailability or quota
exhaustion; drivers show a persistent banner until a manual refresh resets it.
There is no automatic retry.
"""

import threading
from datetime import datetime
from typing import Any, Dict, Optional


class ConnectionMonitor:
    """Thread-safe singleton holding the "connected" flag."""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._connected = True
        self._last_error: Optional[str] = None
        self._changed_at = datetime.now()
        self._initialized = True

    @property
    def is_connected(self) -> bool:
        return self._connected

    def mark_disconnected(self, reason: str):
        with self._lock:
            self._connected = False
            self._last_error = reason
            self._changed_at = datetime.now()

    def reset(self):
        """Manual refresh: clear the banner."""
        with self._lock:
            self._connected = True
            self._last_error = None
            self._changed_at = datetime.now()

    def get_state(self) -> Dict[str, Any]:
        return {
            "connected": self._connected,
            "last_error": self._last_error,
            "changed_at": self._changed_at.isoformat(),
            "banner": None if self._connected else
            "Connection to database lost. Please refresh the page to reconnect.",
        }


connection_monitor = ConnectionMonitor()
