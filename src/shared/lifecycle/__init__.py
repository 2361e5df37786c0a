"""
Service lifecycle management.

Handles graceful shutdown of services: connection draining, cleanup hooks,
hard deadline and exit code policy.
"""

from shared.lifecycle.cleanup_registry import (
    CleanupHookRegistry,
    CleanupOutcome,
    CleanupReport,
)
from shared.lifecycle.connection_registry import Connection, ConnectionRegistry
from shared.lifecycle.exceptions import (
    AlreadyShuttingDown,
    CleanupTaskError,
    DoubleShutdownAttempt,
    ListenerCloseError,
    ShutdownError,
    ShutdownTimeout,
)
from shared.lifecycle.exit_policy import ExitCode, ExitPolicy, ExitReason
from shared.lifecycle.shutdown_coordinator import (
    Listener,
    ShutdownCoordinator,
    ShutdownState,
)

__all__ = [
    "AlreadyShuttingDown",
    "CleanupHookRegistry",
    "CleanupOutcome",
    "CleanupReport",
    "CleanupTaskError",
    "Connection",
    "ConnectionRegistry",
    "DoubleShutdownAttempt",
    "ExitCode",
    "ExitPolicy",
    "ExitReason",
    "Listener",
    "ListenerCloseError",
    "ShutdownCoordinator",
    "ShutdownError",
    "ShutdownState",
    "ShutdownTimeout",
]
