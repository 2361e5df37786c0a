"""
Concierge - twelve-factor demo service with graceful shutdown.

Orchestrates the lifecycle components, backing services and HTTP routes.
"""

import asyncio
import functools
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

import uvicorn
from fastapi import FastAPI
from shared.reporter import SystemReporter

from concierge import __version__
from concierge.config.settings import Settings, load_config
from concierge.di import Container
from concierge.infrastructure.monitoring import metrics
from concierge.infrastructure.server import (
    ConciergeServer,
    TrackedH11Protocol,
    UvicornListener,
)
from concierge.presentation.api.dependencies import set_container
from concierge.presentation.api.middleware import (
    MetricsMiddleware,
    RequestLoggingMiddleware,
)
from concierge.presentation.api.routes import (
    factors_router,
    health_router,
    metrics_router,
)


class ConciergeApp:
    """
    Concierge application orchestrator.

    Responsibilities:
        - Initialize DI container
        - Setup FastAPI application and routes
        - Connect backing services and register their cleanup hooks
        - Route signals and faults to the ShutdownCoordinator
        - Run uvicorn with connection tracking
    """

    def __init__(
        self,
        settings: Settings,
        exit_func: Optional[Callable[[int], None]] = None,
        container: Optional[Container] = None,
    ):
        """
        Initialize Concierge application.

        Args:
            settings: Application settings
            exit_func: Process exit function (default: hard exit)
            container: Pre-built container (default: built from settings)
        """
        self.settings = settings

        # Initialize reporter FIRST
        self.reporter = self._create_reporter()

        self.container = container or Container(
            settings, reporter=self.reporter, exit_func=exit_func
        )

        self.app = self._create_app()
        set_container(self.container)

        # Server instance (set during serve)
        self.server: Optional[ConciergeServer] = None

        self.reporter.info(
            "Concierge initialized",
            context="Concierge",
            verbose_level=1,
        )

    def _create_reporter(self) -> SystemReporter:
        """
        Create SystemReporter instance.

        Returns:
            Configured SystemReporter
        """
        log_dir = None

        if self.settings.log_file:
            log_dir = os.path.dirname(self.settings.log_file)
            if not log_dir:
                log_dir = "logs"

        return SystemReporter(
            name="concierge",
            log_dir=log_dir,
            level=logging.getLevelName(self.settings.log_level.upper()),
            verbose=1,
        )

    def _create_app(self) -> FastAPI:
        """
        Create FastAPI application with lifespan management.

        Returns:
            Configured FastAPI application
        """

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            """Application lifespan context manager."""
            await self._on_startup()

            yield

            await self._on_shutdown()

        app = FastAPI(
            title="Concierge",
            description="Twelve-factor demo service with graceful shutdown",
            version=__version__,
            lifespan=lifespan,
        )

        if self.settings.metrics_enabled:
            app.add_middleware(MetricsMiddleware)
            app.include_router(metrics_router)

        app.add_middleware(RequestLoggingMiddleware, reporter=self.reporter)

        app.include_router(health_router)
        app.include_router(factors_router)

        return app

    async def _on_startup(self) -> None:
        """
        Application startup event handler.

        Connects backing services, registers cleanup hooks and installs
        signal and fault handlers.
        """
        self.reporter.info(
            "Concierge starting...",
            context="Concierge",
            verbose_level=1,
        )

        await self._connect("Database", self.container.database.connect)
        await self._connect("Cache", self.container.cache_client.connect)
        self.container.register_cleanup_hooks()

        coordinator = self.container.shutdown_coordinator
        if self.settings.metrics_enabled:
            metrics.bind_connection_registry(self.container.connection_registry)
            metrics.bind_shutdown_coordinator(coordinator)

        coordinator.setup_signal_handlers()
        coordinator.setup_fault_handlers()

        self.reporter.info(
            f"Graceful shutdown enabled (timeout: {self.settings.shutdown_timeout}s, "
            f"grace period: {self.settings.shutdown_grace_period}s)",
            context="Concierge",
            verbose_level=1,
        )
        self.reporter.info(
            f"Host: {self.settings.host}:{self.settings.port}",
            context="Concierge",
            verbose_level=1,
        )

    async def _connect(self, name: str, connect: Callable) -> None:
        """
        Connect one backing service.

        A failure is logged and left to the health probes to report; the
        service still starts.
        """
        try:
            await connect()
            self.reporter.info(f"{name} connected", context="Startup")
        except Exception as e:
            self.reporter.warning(
                f"{name} unavailable at startup: {e}", context="Startup"
            )

    async def _on_shutdown(self) -> None:
        """
        Application shutdown event handler.

        Only reached when uvicorn stops on its own; a coordinated shutdown
        exits the process before lifespan teardown.
        """
        coordinator = self.container.shutdown_coordinator
        coordinator.restore_signal_handlers()
        coordinator.restore_fault_handlers()

        self.reporter.info(
            "Concierge stopped",
            context="Concierge",
            verbose_level=1,
        )

    def create_server(self) -> ConciergeServer:
        """
        Build the uvicorn server wired to the connection registry.

        Returns:
            ConciergeServer (also attached to the coordinator as listener)
        """
        config = uvicorn.Config(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level,
            http=functools.partial(
                TrackedH11Protocol,
                registry=self.container.connection_registry,
            ),
            ws="none",
        )
        self.server = ConciergeServer(config)
        self.container.shutdown_coordinator.listener = UvicornListener(self.server)
        return self.server

    async def serve(self) -> None:
        """
        Run server until the coordinator exits the process.
        """
        server = self.create_server()
        self.reporter.info(
            f"Concierge running on port {self.settings.port}",
            context="Concierge",
            verbose_level=1,
        )
        await server.serve()

    def start(self) -> None:
        """
        Start Concierge server.

        Blocks until the process exits.
        """
        asyncio.run(self.serve())


def parse_port(argv: List[str]) -> Optional[int]:
    """
    Read the optional port override from the command line.

    Args:
        argv: Arguments after the program name

    Returns:
        Port number, or None if not given

    Raises:
        ValueError: If the argument is not a valid port
    """
    if not argv:
        return None

    port = int(argv[0])
    if not 1 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return port


def main():
    """
    Main entry point for Concierge application.

    Loads configuration and starts the server.
    """
    config = load_config()

    # Allow port override from command line
    try:
        port = parse_port(sys.argv[1:])
    except ValueError:
        print(f"Invalid port: {sys.argv[1]}")
        sys.exit(1)

    if port is not None:
        config.port = port

    ConciergeApp(config).start()


if __name__ == "__main__":
    main()
