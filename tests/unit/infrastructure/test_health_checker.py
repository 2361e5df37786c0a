"""
Unit tests for ConciergeHealthChecker.

Tests liveness, readiness and overall health across backends and
lifecycle state.

Usage:
    pytest tests/unit/infrastructure/test_health_checker.py
"""

import asyncio

from shared.health import HealthStatus
from shared.lifecycle import (
    CleanupHookRegistry,
    ConnectionRegistry,
    ExitPolicy,
    ShutdownCoordinator,
)
from shared.tests import LaborantTest

from concierge.config.settings import Settings
from concierge.infrastructure.monitoring import ConciergeHealthChecker

from tests.helpers.fakes import ExitRecorder, FakeCache, FakeDatabase


class TestConciergeHealthChecker(LaborantTest):
    """Unit tests for ConciergeHealthChecker."""

    component_name = "concierge"
    test_category = "unit"

    def build(self, database=None, cache=None):
        coordinator = ShutdownCoordinator(
            connections=ConnectionRegistry(),
            cleanup=CleanupHookRegistry(),
            exit_policy=ExitPolicy(exit_func=ExitRecorder()),
            grace_period=0.05,
            reporter=self.reporter,
        )
        checker = ConciergeHealthChecker(
            settings=Settings(health_check_timeout=0.1),
            coordinator=coordinator,
            database=database if database is not None else FakeDatabase(),
            cache_client=cache if cache is not None else FakeCache(),
            reporter=self.reporter,
        )
        return checker, coordinator

    # ================================================================
    # Healthy path
    # ================================================================

    async def test_all_healthy(self):
        """Test every probe passes when both backends respond."""
        self.reporter.info("Testing healthy service", context="Test")

        checker, _ = self.build()

        health = await checker.check_health()
        ready = await checker.check_readiness()

        assert health.status == HealthStatus.HEALTHY
        assert ready.status == HealthStatus.HEALTHY
        assert set(health.checks) == {"database", "cache", "lifecycle"}
        assert health.uptime >= 0

        self.reporter.info("Healthy service reported", context="Test")

    # ================================================================
    # Backend failures
    # ================================================================

    async def test_one_backend_down_is_not_ready(self):
        """Test readiness requires both backends."""
        self.reporter.info("Testing AND health policy", context="Test")

        checker, _ = self.build(cache=FakeCache(healthy=False))

        health = await checker.check_health()
        ready = await checker.check_readiness()

        assert health.status == HealthStatus.DEGRADED
        assert ready.status == HealthStatus.UNHEALTHY
        assert health.checks["database"].is_healthy
        assert not health.checks["cache"].is_healthy
        assert "connection refused" in health.checks["cache"].message

        self.reporter.info("One backend down reported", context="Test")

    async def test_slow_backend_times_out(self):
        """Test a hanging backend is reported unhealthy after the timeout."""
        self.reporter.info("Testing probe timeout", context="Test")

        checker, _ = self.build(database=FakeDatabase(delay=5.0))

        health = await asyncio.wait_for(checker.check_health(), timeout=2.0)

        assert health.status == HealthStatus.DEGRADED
        assert "timed out" in health.checks["database"].message

        self.reporter.info("Slow backend timed out", context="Test")

    async def test_unconnected_backend_is_unhealthy(self):
        """Test a backend that never connected is reported, not raised."""
        self.reporter.info("Testing unconnected backend", context="Test")

        checker, _ = self.build(database=FakeDatabase(connected=False))

        health = await checker.check_health()

        assert not health.checks["database"].is_healthy
        assert "not initialized" in health.checks["database"].message

        self.reporter.info("Unconnected backend reported", context="Test")

    # ================================================================
    # Lifecycle
    # ================================================================

    async def test_shutdown_drops_readiness_but_not_liveness(self):
        """Test readiness fails and liveness passes once draining."""
        self.reporter.info("Testing lifecycle-aware probes", context="Test")

        checker, coordinator = self.build()
        coordinator.trigger("SIGTERM")

        ready = await checker.check_readiness()
        live = await checker.check_liveness()
        health = await checker.check_health()

        assert ready.status == HealthStatus.UNHEALTHY
        assert ready.checks["lifecycle"].metadata["reason"] == "SIGTERM"
        assert live.status == HealthStatus.HEALTHY
        assert live.checks["lifecycle"].metadata["state"] != "running"
        assert health.status == HealthStatus.DEGRADED

        await asyncio.wait_for(coordinator.wait_until_exited(), timeout=2.0)

        self.reporter.info("Probes follow lifecycle", context="Test")

    async def test_report_serialization(self):
        """Test report to_dict has the documented shape."""
        self.reporter.info("Testing report shape", context="Test")

        checker, _ = self.build()

        data = (await checker.check_health()).to_dict()

        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert set(data) == {"status", "timestamp", "version", "uptime", "checks"}
        assert data["checks"]["lifecycle"]["metadata"]["state"] == "running"

        self.reporter.info("Report shape correct", context="Test")


if __name__ == "__main__":
    TestConciergeHealthChecker.run_as_main()
