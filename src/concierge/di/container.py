"""
Dependency Injection container for Concierge.

Manages lifecycle and dependencies of all application components.
"""

import time
from typing import Callable, Optional

from shared.lifecycle import (
    CleanupHookRegistry,
    ConnectionRegistry,
    ExitPolicy,
    ShutdownCoordinator,
)
from shared.reporter import SystemReporter

from concierge.config.settings import Settings
from concierge.infrastructure.cache import RedisCacheClient
from concierge.infrastructure.monitoring import ConciergeHealthChecker
from concierge.infrastructure.persistence import Database


class Container:
    """
    Dependency Injection container.

    Creates and manages all application dependencies.
    Implements singleton pattern for shared resources.
    """

    def __init__(
        self,
        settings: Settings,
        reporter: Optional[SystemReporter] = None,
        exit_func: Optional[Callable[[int], None]] = None,
        database: Optional[Database] = None,
        cache_client: Optional[RedisCacheClient] = None,
    ):
        """
        Initialize container with settings.

        Args:
            settings: Application settings
            reporter: Shared SystemReporter (default: one named "concierge")
            exit_func: Process exit function (default: hard exit)
            database: Pre-built Database (tests)
            cache_client: Pre-built cache client (tests)
        """
        self.settings = settings
        self.reporter = reporter or SystemReporter(name="concierge")
        self.started_at = time.time()

        self._exit_func = exit_func
        self._database = database
        self._cache_client = cache_client

        self._connection_registry: Optional[ConnectionRegistry] = None
        self._cleanup_registry: Optional[CleanupHookRegistry] = None
        self._exit_policy: Optional[ExitPolicy] = None
        self._shutdown_coordinator: Optional[ShutdownCoordinator] = None
        self._health_checker: Optional[ConciergeHealthChecker] = None
        self._hooks_registered = False

    @property
    def connection_registry(self) -> ConnectionRegistry:
        """
        Get ConnectionRegistry singleton.

        Returns:
            ConnectionRegistry instance
        """
        if self._connection_registry is None:
            self._connection_registry = ConnectionRegistry(reporter=self.reporter)
        return self._connection_registry

    @property
    def cleanup_registry(self) -> CleanupHookRegistry:
        """
        Get CleanupHookRegistry singleton.

        Returns:
            CleanupHookRegistry instance
        """
        if self._cleanup_registry is None:
            self._cleanup_registry = CleanupHookRegistry(reporter=self.reporter)
        return self._cleanup_registry

    @property
    def exit_policy(self) -> ExitPolicy:
        """
        Get ExitPolicy singleton.

        Returns:
            ExitPolicy instance
        """
        if self._exit_policy is None:
            self._exit_policy = ExitPolicy(
                fail_on_cleanup_error=self.settings.shutdown_fail_on_cleanup_error,
                exit_func=self._exit_func,
            )
        return self._exit_policy

    @property
    def shutdown_coordinator(self) -> ShutdownCoordinator:
        """
        Get ShutdownCoordinator singleton.

        The listener is attached later, once the HTTP server exists.

        Returns:
            ShutdownCoordinator instance
        """
        if self._shutdown_coordinator is None:
            self._shutdown_coordinator = ShutdownCoordinator(
                connections=self.connection_registry,
                cleanup=self.cleanup_registry,
                exit_policy=self.exit_policy,
                shutdown_timeout=self.settings.shutdown_timeout,
                grace_period=self.settings.shutdown_grace_period,
                reporter=self.reporter,
            )
        return self._shutdown_coordinator

    @property
    def database(self) -> Database:
        """
        Get Database singleton.

        Returns:
            Database instance (pool created on connect())
        """
        if self._database is None:
            self._database = Database(
                database_url=self.settings.database_url,
                pool_min=self.settings.db_pool_min,
                pool_max=self.settings.db_pool_max,
                idle_timeout=self.settings.db_idle_timeout / 1000,
            )
        return self._database

    @property
    def cache_client(self) -> RedisCacheClient:
        """
        Get RedisCacheClient singleton.

        Returns:
            RedisCacheClient instance (client created on connect())
        """
        if self._cache_client is None:
            self._cache_client = RedisCacheClient(
                url=self.settings.redis_url,
                default_ttl=self.settings.redis_ttl,
            )
        return self._cache_client

    @property
    def health_checker(self) -> ConciergeHealthChecker:
        """
        Get ConciergeHealthChecker singleton.

        Returns:
            ConciergeHealthChecker instance
        """
        if self._health_checker is None:
            self._health_checker = ConciergeHealthChecker(
                settings=self.settings,
                coordinator=self.shutdown_coordinator,
                database=self.database,
                cache_client=self.cache_client,
                started_at=self.started_at,
                reporter=self.reporter,
            )
        return self._health_checker

    def register_cleanup_hooks(self) -> None:
        """
        Register backing service teardown with the cleanup registry.

        Safe to call more than once; hooks are registered only the first time.
        """
        if self._hooks_registered:
            return

        self.cleanup_registry.register(
            "close database pool", self.database.disconnect
        )
        self.cleanup_registry.register(
            "close cache client", self.cache_client.disconnect
        )
        self._hooks_registered = True
