"""
Health check system for microservices.

Provides Kubernetes-compatible health checks with:
- Overall health status
- Liveness probe support
- Readiness probe support
"""

from shared.health.checks import (
    HealthChecker,
    HealthStatus,
    HealthCheck,
    HealthReport,
)

__all__ = [
    "HealthChecker",
    "HealthStatus",
    "HealthCheck",
    "HealthReport",
]
