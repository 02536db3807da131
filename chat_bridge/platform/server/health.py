"""
HTTP health check state and process metadata.
"""

import datetime
import os
import platform
import socket
import threading
import time

from chat_bridge.platform.constants import SERVICE_NAME, SERVICE_VERSION

__all__ = ["HealthCheck", "MetadataManager", "metadata"]


class HealthCheck:
    """Thread-safe health check state manager.

    Uses a threading.Event to manage health check state, allowing
    the service to be gracefully drained during shutdown.
    """

    _health_check_enabled = threading.Event()

    @staticmethod
    def enable() -> None:
        """Enable health checks (mark service as healthy)."""
        HealthCheck._health_check_enabled.set()

    @staticmethod
    def disable() -> None:
        """Disable health checks (mark service as unhealthy for graceful shutdown)."""
        HealthCheck._health_check_enabled.clear()

    @staticmethod
    def status() -> bool:
        """Check if health checks are currently enabled.

        Returns:
            True if the service is marked as healthy, False otherwise
        """
        return HealthCheck._health_check_enabled.is_set()


class MetadataManager:
    """
    Process metadata for the /info endpoint. One is created on import; add
    any other useful (static) data to its ``metadata`` dictionary.
    """

    # keys to read from the environment
    ENV_INFO_KEYS = [
        "BUILD_DATE",
        "BUILD_VERSION",
        "GIT_COMMIT",
        "IMAGE_NAME",
        "PYTHON_VERSION",
    ]
    HOSTNAME_KEY = "HOSTNAME"
    OS_VERSION_KEY = "OS_VERSION"
    SERVICE_NAME_KEY = "SERVICE_NAME"
    SERVICE_VERSION_KEY = "SERVICE_VERSION"

    def __init__(self):
        self._started_at = datetime.datetime.now(tz=datetime.UTC).isoformat()
        self._started_ts = time.monotonic()

        metadata = {key: os.environ.get(key) for key in self.ENV_INFO_KEYS}
        metadata[self.HOSTNAME_KEY] = socket.gethostname()
        metadata[self.OS_VERSION_KEY] = platform.platform()
        metadata[self.SERVICE_NAME_KEY] = os.environ.get(self.SERVICE_NAME_KEY) or SERVICE_NAME
        metadata[self.SERVICE_VERSION_KEY] = SERVICE_VERSION
        self.metadata = {key.lower(): value for key, value in metadata.items()}

    def info(self):
        """
        Return metadata about the process and some basic stats
        """
        return {
            **self.metadata,
            "started": self._started_at,
            "uptime_seconds": round(time.monotonic() - self._started_ts, 3),
        }


metadata = MetadataManager()
