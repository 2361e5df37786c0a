"""
Process exit policy.

Decides the final exit code of a shutdown and terminates the process
exactly once.
"""

import logging
import os
import threading
from enum import Enum, IntEnum
from typing import Callable, Optional

from shared.lifecycle.cleanup_registry import CleanupReport
from shared.lifecycle.exceptions import ListenerCloseError


class ExitCode(IntEnum):
    """Process exit codes."""

    CLEAN = 0
    FAILURE = 1


class ExitReason(str, Enum):
    """Why the process exits with the code it does."""

    CLEAN = "clean"
    LISTENER_ERROR = "listener_error"
    CLEANUP_FAILED = "cleanup_failed"
    TIMEOUT = "timeout"
    FAULT = "fault"


def hard_exit(code: int) -> None:
    """Flush logging and terminate immediately, skipping pending work."""
    logging.shutdown()
    os._exit(code)


class ExitPolicy:
    """
    Computes exit codes and enforces single process exit.

    Attributes:
        fail_on_cleanup_error: Whether a failed cleanup task forces exit 1
        exit_code: Code the process exited with (None until exit)
        exit_reason: Reason recorded at exit (None until exit)
    """

    def __init__(
        self,
        fail_on_cleanup_error: bool = True,
        exit_func: Optional[Callable[[int], None]] = None,
    ):
        """
        Initialize exit policy.

        Args:
            fail_on_cleanup_error: Force non-zero exit when a cleanup task fails
            exit_func: Callable terminating the process (default: hard_exit)
        """
        self.fail_on_cleanup_error = fail_on_cleanup_error
        self._exit_func = exit_func or hard_exit
        self._lock = threading.Lock()
        self.exit_code: Optional[ExitCode] = None
        self.exit_reason: Optional[ExitReason] = None

    @property
    def has_exited(self) -> bool:
        """Check if exit() already ran."""
        return self.exit_code is not None

    def decide(
        self,
        listener_error: Optional[ListenerCloseError] = None,
        cleanup_report: Optional[CleanupReport] = None,
        timed_out: bool = False,
    ) -> tuple:
        """
        Compute the exit code for a finished shutdown.

        Args:
            listener_error: Error raised while closing the listener, if any
            cleanup_report: Report of the cleanup run (None if never ran)
            timed_out: Whether the hard deadline fired

        Returns:
            (ExitCode, ExitReason) tuple
        """
        if timed_out:
            return ExitCode.FAILURE, ExitReason.TIMEOUT

        if listener_error is not None:
            return ExitCode.FAILURE, ExitReason.LISTENER_ERROR

        if (
            cleanup_report is not None
            and not cleanup_report.ok
            and self.fail_on_cleanup_error
        ):
            return ExitCode.FAILURE, ExitReason.CLEANUP_FAILED

        return ExitCode.CLEAN, ExitReason.CLEAN

    def exit(self, code: ExitCode, reason: ExitReason) -> bool:
        """
        Terminate the process with given code, at most once.

        Args:
            code: Exit code
            reason: Reason recorded for diagnostics

        Returns:
            True if this call performed the exit, False if already exited
        """
        with self._lock:
            if self.exit_code is not None:
                return False
            self.exit_code = code
            self.exit_reason = reason

        self._exit_func(int(code))
        return True
