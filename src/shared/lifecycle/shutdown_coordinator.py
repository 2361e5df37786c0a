"""
Graceful shutdown coordinator.

Handles:
- Trigger registration (SIGTERM, SIGINT, uncaught and async faults)
- Single-entry shutdown state machine
- Listener close and connection draining with grace window
- Cleanup hook execution
- Hard deadline and exactly-once process exit
"""

import asyncio
import signal
import sys
import threading
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from shared.lifecycle.cleanup_registry import CleanupHookRegistry, CleanupReport
from shared.lifecycle.connection_registry import ConnectionRegistry
from shared.lifecycle.exceptions import (
    DoubleShutdownAttempt,
    ListenerCloseError,
    ShutdownTimeout,
)
from shared.lifecycle.exit_policy import ExitCode, ExitPolicy, ExitReason
from shared.reporter import SystemReporter

DEFAULT_SIGNALS: Tuple[signal.Signals, ...] = (signal.SIGTERM, signal.SIGINT)


class ShutdownState(Enum):
    """Shutdown state enum. Transitions only move forward."""

    RUNNING = "running"
    DRAINING = "draining"
    TERMINATING = "terminating"
    EXITED = "exited"


_STATE_ORDER = list(ShutdownState)


class Listener(Protocol):
    """Listening server that can stop accepting new connections."""

    def close(self) -> None:
        """Stop accepting new connections."""
        ...

    async def wait_closed(self) -> None:
        """Wait until the listening socket is confirmed closed."""
        ...


class ShutdownCoordinator:
    """
    Coordinates graceful shutdown of the service.

    Shutdown sequence:
    1. First trigger wins the RUNNING -> DRAINING gate
    2. Stop listener from accepting new connections
    3. Politely end tracked connections
    4. Destroy whatever is still open after the grace period
    5. Run cleanup hooks once the listener is confirmed closed
    6. Exit with computed code (or 1 if the hard deadline fires first)

    Attributes:
        state: Current shutdown state
        shutdown_timeout: Hard deadline in seconds, counted from DRAINING
        grace_period: Seconds to wait for connections to close politely
        shutdown_reason: Trigger that started shutdown
        shutdown_started_at: Timestamp when shutdown initiated
        ignored_triggers: Triggers received while already shutting down
    """

    def __init__(
        self,
        connections: ConnectionRegistry,
        cleanup: CleanupHookRegistry,
        exit_policy: ExitPolicy,
        listener: Optional[Listener] = None,
        shutdown_timeout: float = 30.0,
        grace_period: float = 5.0,
        reporter: Optional[SystemReporter] = None,
        signals: Tuple[signal.Signals, ...] = DEFAULT_SIGNALS,
        watchdog_margin: float = 1.0,
    ):
        """
        Initialize shutdown coordinator.

        Args:
            connections: Registry of open connections to drain
            cleanup: Registry of cleanup hooks to run
            exit_policy: Policy computing exit code and terminating process
            listener: Listening server (can be attached later)
            shutdown_timeout: Hard deadline in seconds
            grace_period: Seconds to wait for polite connection close
            reporter: SystemReporter for shutdown logs
            signals: Signals that trigger shutdown
            watchdog_margin: Seconds past the deadline before a thread timer
                exits the process even if the event loop is blocked
        """
        self.connections = connections
        self.cleanup = cleanup
        self.exit_policy = exit_policy
        self.listener = listener
        self.shutdown_timeout = shutdown_timeout
        self.grace_period = grace_period
        self.reporter = reporter or SystemReporter(name="shutdown")
        self.signals = signals
        self.watchdog_margin = watchdog_margin

        self.state = ShutdownState.RUNNING
        self.shutdown_reason: Optional[str] = None
        self.shutdown_started_at: Optional[datetime] = None
        self.ignored_triggers: List[DoubleShutdownAttempt] = []

        self.listener_error: Optional[ListenerCloseError] = None
        self.cleanup_report: Optional[CleanupReport] = None
        self.timeout_error: Optional[ShutdownTimeout] = None
        self.exit_code: Optional[ExitCode] = None
        self.exit_reason: Optional[ExitReason] = None

        self._gate = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task] = None
        self._watchdog: Optional[threading.Timer] = None
        self._exited = asyncio.Event()
        self._state_listeners: List[Callable[[ShutdownState], None]] = []

        self._installed_signals: List[signal.Signals] = []
        self._original_signal_handlers: Dict[signal.Signals, Any] = {}
        self._original_loop_handler: Optional[Callable] = None
        self._original_excepthook: Optional[Callable] = None
        self._original_threading_excepthook: Optional[Callable] = None
        self._fault_handlers_installed = False

    # ================================================================
    # State observation
    # ================================================================

    def is_running(self) -> bool:
        """
        Check if service is running normally.

        Returns:
            True if running, False once shutdown began
        """
        return self.state == ShutdownState.RUNNING

    def is_shutting_down(self) -> bool:
        """
        Check if shutdown is in progress or finished.

        Returns:
            True if shutting down, False otherwise
        """
        return self.state != ShutdownState.RUNNING

    def add_state_listener(self, callback: Callable[[ShutdownState], None]) -> None:
        """
        Register callback invoked with the new state on every transition.

        Args:
            callback: Function receiving the new ShutdownState
        """
        self._state_listeners.append(callback)

    def attach_loop(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Bind the event loop the shutdown sequence runs on.

        Triggers from other threads are marshalled onto this loop.

        Args:
            loop: Event loop (default: running loop)
        """
        self._loop = loop or asyncio.get_running_loop()

    async def wait_until_exited(self) -> None:
        """Wait until the state machine reaches EXITED."""
        await self._exited.wait()

    def get_shutdown_info(self) -> dict:
        """
        Get shutdown status information.

        Returns:
            Dictionary with shutdown status details
        """
        return {
            "state": self.state.value,
            "is_shutting_down": self.is_shutting_down(),
            "reason": self.shutdown_reason,
            "shutdown_started_at": (
                self.shutdown_started_at.isoformat()
                if self.shutdown_started_at
                else None
            ),
            "shutdown_timeout": self.shutdown_timeout,
            "grace_period": self.grace_period,
            "open_connections": len(self.connections),
            "ignored_triggers": len(self.ignored_triggers),
            "exit_code": int(self.exit_code) if self.exit_code is not None else None,
            "exit_reason": self.exit_reason.value if self.exit_reason else None,
        }

    # ================================================================
    # Trigger entry point
    # ================================================================

    def trigger(self, reason: str = "manual") -> bool:
        """
        Request shutdown. Safe to call from any thread, any number of times.

        Only the first call starts the shutdown sequence; later calls are
        logged and recorded as DoubleShutdownAttempt.

        Args:
            reason: Trigger name (signal name, fault kind, manual)

        Returns:
            True if this call started shutdown, False if already in progress
        """
        with self._gate:
            started = self.state == ShutdownState.RUNNING
            if started:
                self.state = ShutdownState.DRAINING
                self.shutdown_reason = reason
                self.shutdown_started_at = datetime.utcnow()
                self.cleanup.seal()
            else:
                self.ignored_triggers.append(
                    DoubleShutdownAttempt(
                        reason=reason,
                        state=self.state.value,
                        received_at=datetime.utcnow(),
                        source_thread=threading.current_thread().name,
                    )
                )

        if not started:
            self.reporter.info(
                f"Shutdown already in progress ({reason} ignored)",
                context="Shutdown",
            )
            return False

        self.reporter.warning(
            f"{reason} received. Starting graceful shutdown",
            context="Shutdown",
        )
        self._notify(ShutdownState.DRAINING)
        self._schedule()
        return True

    async def shutdown(self, reason: str = "manual") -> Optional[ExitCode]:
        """
        Trigger shutdown and wait for it to finish.

        Args:
            reason: Trigger name

        Returns:
            Exit code the process exited with
        """
        self.trigger(reason)
        await self.wait_until_exited()
        return self.exit_code

    def _schedule(self) -> None:
        """Start the shutdown sequence on the event loop."""
        loop = self._loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if loop is None or loop.is_closed():
            loop = running

        if loop is None or loop.is_closed():
            self.reporter.critical(
                "No event loop available to drain on, exiting immediately",
                context="Shutdown",
            )
            self._finish(ExitCode.FAILURE, ExitReason.FAULT)
            return

        if loop is running:
            self._start()
            return

        try:
            loop.call_soon_threadsafe(self._start)
        except RuntimeError:
            self.reporter.critical(
                "Event loop stopped before shutdown could run, exiting immediately",
                context="Shutdown",
            )
            self._finish(ExitCode.FAILURE, ExitReason.FAULT)

    def _start(self) -> None:
        self._start_watchdog()
        self._task = asyncio.ensure_future(self._run())

    def _start_watchdog(self) -> None:
        """Arm a thread timer that exits even if the event loop never yields."""
        self._watchdog = threading.Timer(
            self.shutdown_timeout + self.watchdog_margin, self._watchdog_expired
        )
        self._watchdog.daemon = True
        self._watchdog.start()

    def _watchdog_expired(self) -> None:
        self.reporter.critical(
            f"Event loop unresponsive {self.watchdog_margin}s past the "
            f"{self.shutdown_timeout}s deadline, forcing exit",
            context="Shutdown",
        )
        self.reporter.flush()
        self.exit_policy.exit(ExitCode.FAILURE, ExitReason.TIMEOUT)

    # ================================================================
    # Shutdown sequence
    # ================================================================

    async def _run(self) -> None:
        """Run the drain sequence under the hard deadline."""
        sequence = asyncio.ensure_future(self._drain_and_cleanup())
        done, _ = await asyncio.wait({sequence}, timeout=self.shutdown_timeout)

        if sequence not in done:
            # Abandon whatever is still pending; nothing is retried.
            sequence.cancel()
            self.timeout_error = ShutdownTimeout(self.shutdown_timeout)
            self.reporter.error(
                f"Forcing shutdown after {self.shutdown_timeout}s timeout",
                context="Shutdown",
            )
            code, reason = self.exit_policy.decide(timed_out=True)
        elif sequence.cancelled() or sequence.exception() is not None:
            failure = "cancelled" if sequence.cancelled() else sequence.exception()
            self.reporter.critical(
                f"Shutdown sequence crashed: {failure!r}",
                context="Shutdown",
            )
            code, reason = ExitCode.FAILURE, ExitReason.FAULT
        else:
            code, reason = self.exit_policy.decide(
                listener_error=self.listener_error,
                cleanup_report=self.cleanup_report,
            )

        self._finish(code, reason)

    async def _drain_and_cleanup(self) -> None:
        self._stop_listener()
        await self._drain_connections()
        await self._await_listener_closed()

        self._advance(ShutdownState.TERMINATING)
        await self._run_cleanup()

    def _stop_listener(self) -> None:
        if self.listener is None:
            self.reporter.debug("No listener attached", context="Shutdown")
            return

        try:
            self.listener.close()
            self.reporter.info(
                "Server closed to new connections", context="Shutdown"
            )
        except Exception as e:
            self._record_listener_error(e)

    async def _drain_connections(self) -> None:
        total = self.connections.end_all()
        self.reporter.info(
            f"Closing {total} existing connections", context="Shutdown"
        )

        if await self.connections.wait_until_empty(self.grace_period):
            return

        destroyed = self.connections.destroy_all()
        self.reporter.warning(
            f"Force-closed {destroyed} connections after "
            f"{self.grace_period}s grace period",
            context="Shutdown",
        )

    async def _await_listener_closed(self) -> None:
        if self.listener is None or self.listener_error is not None:
            return

        try:
            await self.listener.wait_closed()
        except Exception as e:
            self._record_listener_error(e)

    async def _run_cleanup(self) -> None:
        self.reporter.info(
            f"Running {len(self.cleanup)} cleanup tasks", context="Shutdown"
        )

        report = await self.cleanup.run_all()
        self.cleanup_report = report

        if report.ok:
            self.reporter.info("All resources cleaned up", context="Shutdown")
        else:
            self.reporter.error(
                f"Cleanup finished with {len(report.failures)} failed tasks: "
                f"{', '.join(e.name for e in report.failures)}",
                context="Shutdown",
            )

    def _record_listener_error(self, cause: BaseException) -> None:
        self.listener_error = ListenerCloseError(cause)
        self.reporter.error(str(self.listener_error), context="Shutdown")

    def _finish(self, code: ExitCode, reason: ExitReason) -> None:
        """Enter EXITED, log the final line and hand off to the exit policy."""
        if self._watchdog is not None:
            self._watchdog.cancel()

        self._advance(ShutdownState.EXITED)
        self.exit_code = code
        self.exit_reason = reason

        if code == ExitCode.CLEAN:
            self.reporter.info(
                "Graceful shutdown complete (exit code 0)", context="Shutdown"
            )
        else:
            self.reporter.error(
                f"Shutdown finished with exit code {int(code)} ({reason.value})",
                context="Shutdown",
            )
        self.reporter.flush()

        self.exit_policy.exit(code, reason)
        self._exited.set()

    def _advance(self, new_state: ShutdownState) -> None:
        if _STATE_ORDER.index(new_state) <= _STATE_ORDER.index(self.state):
            return
        self.state = new_state
        self._notify(new_state)

    def _notify(self, new_state: ShutdownState) -> None:
        for callback in self._state_listeners:
            try:
                callback(new_state)
            except Exception as e:
                self.reporter.warning(
                    f"State listener failed: {e}", context="Shutdown"
                )

    # ================================================================
    # Signal handling
    # ================================================================

    def setup_signal_handlers(
        self, loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> None:
        """
        Register SIGTERM/SIGINT handlers on the event loop.

        Both signals behave identically. Falls back to signal.signal where
        the loop does not support signal handlers.

        Args:
            loop: Event loop to drain on (default: running loop)
        """
        self.attach_loop(loop)

        for sig in self.signals:
            try:
                self._loop.add_signal_handler(sig, self.trigger, sig.name)
            except NotImplementedError:
                self._original_signal_handlers[sig] = signal.getsignal(sig)
                signal.signal(sig, self._handle_signal)
            self._installed_signals.append(sig)

        self.reporter.info(
            "Signal handlers registered for graceful shutdown",
            context="Startup",
        )

    def restore_signal_handlers(self) -> None:
        """Remove handlers installed by setup_signal_handlers()."""
        for sig in self._installed_signals:
            if sig in self._original_signal_handlers:
                signal.signal(sig, self._original_signal_handlers.pop(sig))
            elif self._loop is not None and not self._loop.is_closed():
                self._loop.remove_signal_handler(sig)
        self._installed_signals.clear()

    def _handle_signal(self, signum: int, frame) -> None:
        """
        Handle shutdown signal delivered through signal.signal.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        self.trigger(signal.Signals(signum).name)

    # ================================================================
    # Fault handling
    # ================================================================

    def setup_fault_handlers(
        self, loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> None:
        """
        Route uncaught exceptions and unhandled async faults to trigger().

        Installs:
        - event loop exception handler (never-retrieved task exceptions)
        - sys.excepthook (uncaught exception in main thread)
        - threading.excepthook (uncaught exception in worker threads)

        Args:
            loop: Event loop to drain on (default: running loop)
        """
        self.attach_loop(loop)

        self._original_loop_handler = self._loop.get_exception_handler()
        self._loop.set_exception_handler(self._handle_loop_exception)

        self._original_excepthook = sys.excepthook
        sys.excepthook = self._handle_uncaught_exception

        self._original_threading_excepthook = threading.excepthook
        threading.excepthook = self._handle_thread_exception

        self._fault_handlers_installed = True

    def restore_fault_handlers(self) -> None:
        """Restore hooks replaced by setup_fault_handlers()."""
        if not self._fault_handlers_installed:
            return

        if self._loop is not None and not self._loop.is_closed():
            self._loop.set_exception_handler(self._original_loop_handler)
        sys.excepthook = self._original_excepthook
        threading.excepthook = self._original_threading_excepthook
        self._fault_handlers_installed = False

    def _handle_loop_exception(
        self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]
    ) -> None:
        exception = context.get("exception")
        if exception is None:
            loop.default_exception_handler(context)
            return

        self.reporter.error(
            f"Unhandled async fault: {context.get('message')} ({exception!r})",
            context="Shutdown",
            exc_info=(type(exception), exception, exception.__traceback__),
        )
        self.trigger("UNHANDLED_REJECTION")

    def _handle_uncaught_exception(self, exc_type, exc_value, exc_traceback) -> None:
        self.reporter.critical(
            f"Uncaught exception: {exc_value!r}",
            context="Shutdown",
            exc_info=(exc_type, exc_value, exc_traceback),
        )
        self.trigger("UNCAUGHT_EXCEPTION")

    def _handle_thread_exception(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return

        thread_name = args.thread.name if args.thread else "unknown"
        self.reporter.critical(
            f"Uncaught exception in thread {thread_name}: {args.exc_value!r}",
            context="Shutdown",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )
        self.trigger("UNCAUGHT_EXCEPTION")
