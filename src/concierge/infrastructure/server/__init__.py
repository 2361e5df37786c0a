"""
HTTP server infrastructure (uvicorn integration).
"""

from concierge.infrastructure.server.tracked_protocol import TrackedH11Protocol
from concierge.infrastructure.server.uvicorn_server import (
    ConciergeServer,
    UvicornListener,
)

__all__ = ["ConciergeServer", "TrackedH11Protocol", "UvicornListener"]
