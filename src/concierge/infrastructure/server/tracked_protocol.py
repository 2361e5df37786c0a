"""
HTTP protocol that reports its connection to the ConnectionRegistry.
"""

import asyncio
from typing import Any, Optional

from uvicorn.protocols.http.h11_impl import H11Protocol

from shared.lifecycle import ConnectionRegistry


class TrackedH11Protocol(H11Protocol):
    """
    uvicorn h11 protocol registered in a ConnectionRegistry.

    One protocol instance exists per accepted TCP connection, so the
    instance itself is the registry handle: end() lets the in-flight
    request finish and then closes, destroy() aborts the transport.

    The registry lives in `registry`; `connections` is uvicorn's own set.
    """

    def __init__(self, *args: Any, registry: ConnectionRegistry, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.registry = registry

    def connection_made(self, transport: asyncio.Transport) -> None:
        super().connection_made(transport)
        self.registry.track(self)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        super().connection_lost(exc)
        self.registry.untrack(self)

    def end(self) -> None:
        """Close after the current response (immediately if idle)."""
        self.shutdown()

    def destroy(self) -> None:
        """Abort the connection without waiting for the response."""
        self.transport.abort()

    def __repr__(self) -> str:
        peer = getattr(self, "client", None)
        return f"<TrackedH11Protocol peer={peer}>"
