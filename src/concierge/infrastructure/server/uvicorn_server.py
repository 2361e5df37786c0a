"""
uvicorn server wired to the ShutdownCoordinator.
"""

import contextlib
from typing import Generator

import uvicorn


class ConciergeServer(uvicorn.Server):
    """
    uvicorn.Server that leaves signal handling to the ShutdownCoordinator.

    uvicorn's own handlers would set should_exit and run its built-in
    shutdown; here a signal must reach the coordinator instead.
    """

    def install_signal_handlers(self) -> None:
        return

    @contextlib.contextmanager
    def capture_signals(self) -> Generator[None, None, None]:
        yield


class UvicornListener:
    """Listener adapter over the asyncio servers opened by uvicorn."""

    def __init__(self, server: uvicorn.Server):
        """
        Initialize listener adapter.

        Args:
            server: Started (or starting) uvicorn server
        """
        self.server = server

    def close(self) -> None:
        """Stop accepting new connections on every bound socket."""
        for listening in self.server.servers:
            listening.close()

    async def wait_closed(self) -> None:
        """Wait until every listening socket is closed."""
        for listening in self.server.servers:
            await listening.wait_closed()
