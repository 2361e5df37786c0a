"""
HTTP middleware.
"""

from concierge.presentation.api.middleware.metrics_middleware import (
    MetricsMiddleware,
)
from concierge.presentation.api.middleware.request_logging_middleware import (
    RequestLoggingMiddleware,
)

__all__ = ["MetricsMiddleware", "RequestLoggingMiddleware"]
