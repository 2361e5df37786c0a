"""
Registry of asynchronous cleanup hooks run during shutdown.

Hooks run concurrently; one failing hook never aborts its siblings.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from shared.lifecycle.exceptions import AlreadyShuttingDown, CleanupTaskError
from shared.reporter import SystemReporter


@dataclass(frozen=True)
class CleanupTask:
    """Named unit of teardown work."""

    name: str
    func: Callable[[], Any]


@dataclass
class CleanupOutcome:
    """Result of running a single cleanup task."""

    name: str
    succeeded: bool
    duration: float
    error: Optional[CleanupTaskError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "succeeded": self.succeeded,
            "duration": round(self.duration, 4),
            "error": str(self.error.cause) if self.error else None,
        }


@dataclass
class CleanupReport:
    """Aggregated outcome of a cleanup run."""

    outcomes: List[CleanupOutcome] = field(default_factory=list)

    @property
    def failures(self) -> List[CleanupTaskError]:
        """Errors of every failed task, in registration order."""
        return [o.error for o in self.outcomes if o.error is not None]

    @property
    def succeeded(self) -> List[str]:
        """Names of tasks that completed successfully."""
        return [o.name for o in self.outcomes if o.succeeded]

    @property
    def ok(self) -> bool:
        """True if every task succeeded."""
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "tasks": [o.to_dict() for o in self.outcomes],
        }


class CleanupHookRegistry:
    """
    Ordered set of named teardown callbacks.

    Registration is allowed until the registry is sealed (shutdown began);
    afterwards register() raises AlreadyShuttingDown.

    Example:
        cleanup = CleanupHookRegistry()

        @cleanup.hook("close database pool")
        async def close_db():
            await database.disconnect()
    """

    def __init__(self, reporter: Optional[SystemReporter] = None):
        """
        Initialize cleanup hook registry.

        Args:
            reporter: Optional SystemReporter for per-task failures
        """
        self.reporter = reporter
        self._tasks: List[CleanupTask] = []
        self._sealed = False
        self._report: Optional[CleanupReport] = None

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def names(self) -> List[str]:
        """Registered task names, in registration order."""
        return [task.name for task in self._tasks]

    @property
    def is_sealed(self) -> bool:
        """Check if registration is closed."""
        return self._sealed

    def register(self, name: str, func: Callable[[], Any]) -> Callable[[], Any]:
        """
        Append a cleanup task.

        Args:
            name: Human readable task name (used in logs and reports)
            func: Async (or plain) callable taking no arguments. Plain
                callables run in a worker thread.

        Returns:
            The callable (allows use as decorator)

        Raises:
            AlreadyShuttingDown: If shutdown has already begun
        """
        if self._sealed:
            raise AlreadyShuttingDown(name)

        self._tasks.append(CleanupTask(name=name, func=func))
        return func

    def hook(self, name: str) -> Callable[[Callable[[], Any]], Callable[[], Any]]:
        """Decorator form of register()."""

        def decorator(func: Callable[[], Any]) -> Callable[[], Any]:
            return self.register(name, func)

        return decorator

    def seal(self) -> None:
        """Close registration. Called once shutdown begins."""
        self._sealed = True

    async def run_all(self) -> CleanupReport:
        """
        Run every registered task concurrently and wait for all to settle.

        Failures are collected, never raised. Tasks run at most once: a
        second call returns the first report.

        Returns:
            CleanupReport with one outcome per task
        """
        self.seal()

        if self._report is not None:
            return self._report

        outcomes = await asyncio.gather(
            *(self._run_one(task) for task in self._tasks)
        )
        self._report = CleanupReport(outcomes=list(outcomes))
        return self._report

    async def _run_one(self, task: CleanupTask) -> CleanupOutcome:
        start = time.monotonic()
        try:
            if inspect.iscoroutinefunction(task.func):
                await task.func()
            else:
                # Plain callables may block; keep the loop free for the deadline.
                result = await asyncio.to_thread(task.func)
                if inspect.isawaitable(result):
                    await result
        except Exception as e:
            error = CleanupTaskError(task.name, e)
            if self.reporter:
                self.reporter.error(str(error), context="Shutdown")
            return CleanupOutcome(
                name=task.name,
                succeeded=False,
                duration=time.monotonic() - start,
                error=error,
            )

        return CleanupOutcome(
            name=task.name,
            succeeded=True,
            duration=time.monotonic() - start,
        )
