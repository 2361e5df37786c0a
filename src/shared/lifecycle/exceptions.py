"""
Shutdown-related exceptions.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class ShutdownError(Exception):
    """Base exception for shutdown errors."""

    pass


class AlreadyShuttingDown(ShutdownError):
    """Raised when a cleanup task is registered after shutdown began."""

    def __init__(self, name: str):
        """
        Initialize AlreadyShuttingDown.

        Args:
            name: Name of the cleanup task that was rejected
        """
        super().__init__(
            f"Cannot register cleanup task '{name}': shutdown already in progress"
        )
        self.name = name


class ListenerCloseError(ShutdownError):
    """Raised when the listening socket fails to close."""

    def __init__(self, cause: BaseException):
        """
        Initialize ListenerCloseError.

        Args:
            cause: Underlying exception raised by the listener
        """
        super().__init__(f"Listener failed to close: {cause}")
        self.cause = cause


class CleanupTaskError(ShutdownError):
    """Raised (and aggregated) when an individual cleanup task fails."""

    def __init__(self, name: str, cause: BaseException):
        """
        Initialize CleanupTaskError.

        Args:
            name: Name of the failed cleanup task
            cause: Exception raised by the task
        """
        super().__init__(f"Cleanup task '{name}' failed: {cause!r}")
        self.name = name
        self.cause = cause


class ShutdownTimeout(ShutdownError):
    """Raised when the hard deadline fires before shutdown completes."""

    def __init__(self, timeout: float):
        """
        Initialize ShutdownTimeout.

        Args:
            timeout: Hard deadline in seconds
        """
        super().__init__(f"Shutdown did not complete within {timeout}s")
        self.timeout = timeout


@dataclass(frozen=True)
class DoubleShutdownAttempt:
    """
    Record of a trigger received while shutdown was already in progress.

    Informational only: the trigger is ignored.
    """

    reason: str
    state: str
    received_at: datetime
    source_thread: Optional[str] = None
