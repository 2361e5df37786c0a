"""
API routes.
"""

from concierge.presentation.api.routes.factors import router as factors_router
from concierge.presentation.api.routes.health import router as health_router
from concierge.presentation.api.routes.metrics import router as metrics_router

__all__ = ["factors_router", "health_router", "metrics_router"]
