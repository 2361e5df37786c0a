"""
Request logging middleware for FastAPI.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from shared.reporter import SystemReporter

from concierge.presentation.api.middleware.metrics_middleware import route_label


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log one line per request.

    Line format: METHOD /route STATUS DURATIONms
    """

    def __init__(self, app: ASGIApp, reporter: SystemReporter):
        """
        Initialize request logging middleware.

        Args:
            app: ASGI application
            reporter: SystemReporter for request lines
        """
        super().__init__(app)
        self.reporter = reporter

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and log its outcome.

        Args:
            request: FastAPI request
            call_next: Next middleware/handler

        Returns:
            Response from handler
        """
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            message = (
                f"{request.method} {route_label(request)} {status_code} "
                f"{duration_ms:.1f}ms"
            )
            if status_code >= 500:
                self.reporter.error(message, context="HTTP")
            else:
                self.reporter.info(message, context="HTTP")
