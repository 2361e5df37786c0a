"""
Unit tests for ConnectionRegistry.

Tests tracking, polite/forced close and emptiness waiting.

Usage:
    pytest tests/unit/lifecycle/test_connection_registry.py
"""

import asyncio
import gc
from unittest.mock import MagicMock

from shared.lifecycle import ConnectionRegistry
from shared.reporter import SystemReporter
from shared.tests import LaborantTest

from tests.helpers.fakes import FakeConnection


class TestConnectionRegistry(LaborantTest):
    """Unit tests for ConnectionRegistry."""

    component_name = "shared.lifecycle"
    test_category = "unit"

    # ================================================================
    # Tracking tests
    # ================================================================

    def test_track_and_untrack(self):
        """Test tracked connections are counted until untracked."""
        self.reporter.info("Testing track/untrack", context="Test")

        registry = ConnectionRegistry()
        first = FakeConnection(registry).open()
        second = FakeConnection(registry).open()

        assert len(registry) == 2
        assert first in registry

        registry.untrack(first)

        assert len(registry) == 1
        assert first not in registry
        assert second in registry

        self.reporter.info("Tracking works", context="Test")

    def test_untrack_unknown_is_ignored(self):
        """Test untracking a connection never tracked is a no-op."""
        self.reporter.info("Testing unknown untrack", context="Test")

        registry = ConnectionRegistry()
        tracked = FakeConnection(registry).open()
        stranger = FakeConnection(registry)

        registry.untrack(stranger)
        registry.untrack(tracked)
        registry.untrack(tracked)

        assert len(registry) == 0

        self.reporter.info("Unknown untrack ignored", context="Test")

    def test_registry_does_not_keep_connections_alive(self):
        """Test registry holds only weak references."""
        self.reporter.info("Testing weak references", context="Test")

        registry = ConnectionRegistry()
        conn = FakeConnection(registry).open()
        assert len(registry) == 1

        del conn
        gc.collect()

        assert len(registry) == 0

        self.reporter.info("Collected connection forgotten", context="Test")

    def test_size_listener_sees_every_change(self):
        """Test size listeners are called on track and untrack."""
        self.reporter.info("Testing size listener", context="Test")

        registry = ConnectionRegistry()
        sizes = []
        registry.add_size_listener(sizes.append)

        conn = FakeConnection(registry).open()
        other = FakeConnection(registry).open()
        registry.untrack(conn)
        registry.untrack(other)

        assert sizes == [1, 2, 1, 0]

        self.reporter.info("Size listener notified", context="Test")

    # ================================================================
    # Close tests
    # ================================================================

    def test_end_all_closes_idle_connections(self):
        """Test end_all asks every connection to close politely."""
        self.reporter.info("Testing end_all", context="Test")

        registry = ConnectionRegistry()
        connections = [FakeConnection(registry).open() for _ in range(3)]

        count = registry.end_all()

        assert count == 3
        assert all(conn.ended for conn in connections)
        assert not any(conn.destroyed for conn in connections)
        assert len(registry) == 0

        self.reporter.info("end_all closed idle connections", context="Test")

    def test_destroy_all_forces_busy_connections(self):
        """Test destroy_all terminates connections that ignored end()."""
        self.reporter.info("Testing destroy_all", context="Test")

        registry = ConnectionRegistry()
        busy = FakeConnection(registry, closes_on_end=False).open()

        registry.end_all()
        assert len(registry) == 1

        count = registry.destroy_all()

        assert count == 1
        assert busy.destroyed
        assert len(registry) == 0

        self.reporter.info("destroy_all terminated busy connection", context="Test")

    def test_end_error_is_logged_and_swallowed(self):
        """Test one failing connection does not stop the others."""
        self.reporter.info("Testing per-connection errors", context="Test")

        reporter = MagicMock(spec=SystemReporter)
        registry = ConnectionRegistry(reporter=reporter)
        broken = FakeConnection(registry, fail_on_end=True).open()
        healthy = FakeConnection(registry).open()

        count = registry.end_all()

        assert count == 1
        assert healthy.ended
        assert broken in registry
        reporter.warning.assert_called_once()
        assert "peer went away" in reporter.warning.call_args.args[0]

        self.reporter.info("Connection error swallowed", context="Test")

    # ================================================================
    # Wait tests
    # ================================================================

    async def test_wait_until_empty_returns_immediately_when_empty(self):
        """Test waiting on an empty registry succeeds at once."""
        self.reporter.info("Testing wait on empty registry", context="Test")

        registry = ConnectionRegistry()

        assert await registry.wait_until_empty(timeout=0.01) is True

        self.reporter.info("Empty registry wait succeeded", context="Test")

    async def test_wait_until_empty_wakes_on_last_close(self):
        """Test waiter wakes when the last connection closes."""
        self.reporter.info("Testing wait wake-up", context="Test")

        registry = ConnectionRegistry()
        conn = FakeConnection(registry).open()

        loop = asyncio.get_running_loop()
        loop.call_later(0.05, conn.end)

        assert await registry.wait_until_empty(timeout=1.0) is True
        assert len(registry) == 0

        self.reporter.info("Waiter woke on last close", context="Test")

    async def test_wait_until_empty_times_out(self):
        """Test waiter gives up after timeout when connections stay open."""
        self.reporter.info("Testing wait timeout", context="Test")

        registry = ConnectionRegistry()
        conn = FakeConnection(registry, closes_on_end=False).open()
        conn.end()

        assert await registry.wait_until_empty(timeout=0.05) is False
        assert len(registry) == 1

        self.reporter.info("Waiter timed out", context="Test")


if __name__ == "__main__":
    TestConnectionRegistry.run_as_main()
