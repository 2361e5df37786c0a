"""
Monitoring infrastructure for Concierge.
"""

from concierge.infrastructure.monitoring.concierge_health_checker import (
    ConciergeHealthChecker,
)

__all__ = ["ConciergeHealthChecker"]
