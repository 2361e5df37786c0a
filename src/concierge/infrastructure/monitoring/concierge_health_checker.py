"""
Concierge Health Checker implementation.

Implements HealthChecker protocol from shared.health.
"""

import asyncio
import time
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from shared.health import HealthCheck, HealthChecker, HealthReport, HealthStatus
from shared.lifecycle import ShutdownCoordinator
from shared.reporter import SystemReporter

from concierge.config.settings import Settings
from concierge.infrastructure.cache import RedisCacheClient
from concierge.infrastructure.persistence import Database


class ConciergeHealthChecker(HealthChecker):
    """
    Health checker for the Concierge service.

    Checks:
    - Lifecycle state (readiness drops as soon as shutdown starts)
    - Database connectivity (SELECT 1 through the pool)
    - Cache connectivity (PING)

    Both backends must be healthy for the service to count as ready.
    """

    def __init__(
        self,
        settings: Settings,
        coordinator: ShutdownCoordinator,
        database: Optional[Database] = None,
        cache_client: Optional[RedisCacheClient] = None,
        started_at: Optional[float] = None,
        reporter: Optional[SystemReporter] = None,
    ):
        """
        Initialize health checker.

        Args:
            settings: Concierge settings
            coordinator: Shutdown coordinator (lifecycle state source)
            database: Database pool to probe
            cache_client: Cache client to probe
            started_at: Process start (time.time()) for uptime
            reporter: Optional SystemReporter for failed probes
        """
        self.settings = settings
        self.coordinator = coordinator
        self.database = database
        self.cache_client = cache_client
        self.started_at = started_at if started_at is not None else time.time()
        self.reporter = reporter

    async def check_liveness(self) -> HealthReport:
        """
        Liveness probe - is the process alive?

        Stays healthy while draining so the orchestrator does not kill
        the process mid-shutdown.

        Returns:
            HealthReport with liveness status
        """
        checks = {
            "service": HealthCheck(
                name="concierge",
                status=HealthStatus.HEALTHY,
                message="Service is alive",
                timestamp=datetime.utcnow(),
            ),
            "lifecycle": self._check_lifecycle(),
        }
        return self._report(HealthStatus.HEALTHY, checks)

    async def check_readiness(self) -> HealthReport:
        """
        Readiness probe - should the service receive traffic?

        Returns:
            HealthReport, UNHEALTHY once shutdown began or a backend is down
        """
        lifecycle = self._check_lifecycle()
        if not lifecycle.is_healthy:
            return self._report(HealthStatus.UNHEALTHY, {"lifecycle": lifecycle})

        checks = await self._check_backends()
        checks["lifecycle"] = lifecycle

        if all(check.is_healthy for check in checks.values()):
            return self._report(HealthStatus.HEALTHY, checks)
        return self._report(HealthStatus.UNHEALTHY, checks)

    async def check_health(self) -> HealthReport:
        """
        Overall health across backends and lifecycle.

        Returns:
            HealthReport, DEGRADED if draining or any backend is unhealthy
        """
        checks = await self._check_backends()
        checks["lifecycle"] = self._check_lifecycle()

        if all(check.is_healthy for check in checks.values()):
            return self._report(HealthStatus.HEALTHY, checks)
        return self._report(HealthStatus.DEGRADED, checks)

    def _report(
        self, status: HealthStatus, checks: Dict[str, HealthCheck]
    ) -> HealthReport:
        return HealthReport(
            status=status,
            checks=checks,
            version=self.settings.app_version,
            timestamp=datetime.utcnow(),
            uptime=time.time() - self.started_at,
        )

    async def _check_backends(self) -> Dict[str, HealthCheck]:
        database, cache = await asyncio.gather(
            self._probe("database", self._ping_database),
            self._probe("cache", self._ping_cache),
        )
        return {"database": database, "cache": cache}

    async def _ping_database(self) -> None:
        if self.database is None or not self.database.is_connected:
            raise RuntimeError("Database pool not initialized")
        await self.database.health_check()

    async def _ping_cache(self) -> None:
        if self.cache_client is None or not self.cache_client.is_connected:
            raise RuntimeError("Cache client not initialized")
        await self.cache_client.ping()

    async def _probe(
        self, name: str, ping: Callable[[], Awaitable[None]]
    ) -> HealthCheck:
        """Run one backend probe bounded by health_check_timeout."""
        timeout = self.settings.health_check_timeout
        start = time.time()

        try:
            await asyncio.wait_for(ping(), timeout=timeout)
            return HealthCheck(
                name=name,
                status=HealthStatus.HEALTHY,
                message=f"{name.capitalize()} is reachable",
                duration=time.time() - start,
                timestamp=datetime.utcnow(),
            )
        except asyncio.TimeoutError:
            message = f"{name.capitalize()} check timed out after {timeout}s"
        except Exception as e:
            message = f"{name.capitalize()} check failed: {e}"

        if self.reporter:
            self.reporter.warning(message, context="Health")

        return HealthCheck(
            name=name,
            status=HealthStatus.UNHEALTHY,
            message=message,
            duration=time.time() - start,
            timestamp=datetime.utcnow(),
        )

    def _check_lifecycle(self) -> HealthCheck:
        info = self.coordinator.get_shutdown_info()
        metadata = {
            "state": info["state"],
            "open_connections": info["open_connections"],
        }

        if self.coordinator.is_running():
            return HealthCheck(
                name="lifecycle",
                status=HealthStatus.HEALTHY,
                message="Accepting traffic",
                timestamp=datetime.utcnow(),
                metadata=metadata,
            )

        metadata["reason"] = info["reason"]
        return HealthCheck(
            name="lifecycle",
            status=HealthStatus.UNHEALTHY,
            message=f"Shutting down ({info['state']})",
            timestamp=datetime.utcnow(),
            metadata=metadata,
        )
