"""
Prometheus metrics middleware for FastAPI.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from concierge.infrastructure.monitoring import metrics

UNMATCHED_ROUTE = "<unmatched>"


def route_label(request: Request) -> str:
    """
    Get the route template that handled the request.

    Using the template instead of the raw path keeps label cardinality
    bounded.

    Args:
        request: Request after routing

    Returns:
        Route path template, or "<unmatched>" when no route matched
    """
    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED_ROUTE)


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP metrics.

    Records request count and duration by method/route/status code.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and collect metrics.

        Args:
            request: FastAPI request
            call_next: Next middleware/handler

        Returns:
            Response from handler
        """
        method = request.method
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time
            labels = {
                "method": method,
                "route": route_label(request),
                "status_code": str(status_code),
            }
            metrics.http_request_duration_seconds.labels(**labels).observe(duration)
            metrics.http_requests_total.labels(**labels).inc()
