"""
Registry of currently-open inbound connections.

Holds non-owning (weak) references only: the listening server owns the
connections, the registry only keeps books so shutdown can end them.
"""

import asyncio
import weakref
from typing import Callable, Dict, List, Optional, Protocol

from shared.reporter import SystemReporter


class Connection(Protocol):
    """Handle to one accepted connection."""

    def end(self) -> None:
        """Politely close: let the in-flight request finish, then close."""
        ...

    def destroy(self) -> None:
        """Forcibly terminate the connection immediately."""
        ...


class ConnectionRegistry:
    """
    Tracks open connections for graceful draining.

    Single event loop, no locks: track/untrack are called from protocol
    callbacks on the loop thread.

    Attributes:
        reporter: Optional SystemReporter for per-connection errors
    """

    def __init__(self, reporter: Optional[SystemReporter] = None):
        """
        Initialize connection registry.

        Args:
            reporter: Optional SystemReporter for logging
        """
        self.reporter = reporter
        self._connections: Dict[int, weakref.ref] = {}
        self._empty: Optional[asyncio.Event] = None
        self._listeners: List[Callable[[int], None]] = []

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        ref = self._connections.get(id(connection))
        return ref is not None and ref() is connection

    def add_size_listener(self, callback: Callable[[int], None]) -> None:
        """
        Register callback invoked with the new size after every change.

        Args:
            callback: Function receiving the current connection count
        """
        self._listeners.append(callback)

    def track(self, connection: Connection) -> None:
        """
        Start tracking an accepted connection.

        Args:
            connection: Connection handle (held weakly)
        """
        key = id(connection)
        self._connections[key] = weakref.ref(
            connection, lambda _ref, key=key: self._forget(key, _ref)
        )
        self._size_changed()

    def untrack(self, connection: Connection) -> None:
        """
        Stop tracking a connection that closed naturally.

        Unknown connections are ignored.

        Args:
            connection: Connection handle
        """
        if connection in self:
            self._forget(id(connection))

    def end_all(self) -> int:
        """
        Ask every tracked connection to close politely.

        Returns:
            Number of connections asked to close
        """
        return self._apply(lambda conn: conn.end(), "end")

    def destroy_all(self) -> int:
        """
        Forcibly terminate every still-tracked connection.

        Returns:
            Number of connections destroyed
        """
        return self._apply(lambda conn: conn.destroy(), "destroy")

    async def wait_until_empty(self, timeout: float) -> bool:
        """
        Wait until no connection is tracked.

        Args:
            timeout: Maximum seconds to wait

        Returns:
            True if registry emptied within timeout, False otherwise
        """
        if not self._connections:
            return True

        self._empty = asyncio.Event()
        try:
            await asyncio.wait_for(self._empty.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False
        finally:
            self._empty = None

    def _live(self) -> List[Connection]:
        """Snapshot of connections still alive."""
        return [
            conn for conn in (ref() for ref in self._connections.values())
            if conn is not None
        ]

    def _apply(self, action: Callable[[Connection], None], verb: str) -> int:
        count = 0
        for conn in self._live():
            try:
                action(conn)
                count += 1
            except Exception as e:
                if self.reporter:
                    self.reporter.warning(
                        f"Failed to {verb} connection {conn!r}: {e}",
                        context="Connections",
                    )
        return count

    def _forget(self, key: int, ref: Optional[weakref.ref] = None) -> None:
        # A finalizer may fire for a stale ref whose id() was reused.
        if ref is not None and self._connections.get(key) is not ref:
            return
        if self._connections.pop(key, None) is None:
            return
        self._size_changed()
        if not self._connections and self._empty is not None:
            self._empty.set()

    def _size_changed(self) -> None:
        size = len(self._connections)
        for callback in self._listeners:
            callback(size)
