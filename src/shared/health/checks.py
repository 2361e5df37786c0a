"""
Health check definitions and status types.

Defines health check interface and status enums.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Protocol


class HealthStatus(str, Enum):
    """Health status levels."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheck:
    """
    Health check result.

    Represents the result of a single health check operation.
    """

    name: str
    status: HealthStatus
    message: Optional[str] = None
    duration: Optional[float] = None
    timestamp: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = field(default_factory=dict)

    @property
    def is_healthy(self) -> bool:
        """Check if this individual check passed."""
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary.

        Returns:
            Dictionary representation
        """
        result = {
            "status": self.status.value,
            "message": self.message,
            "duration": self.duration,
        }

        if self.metadata:
            result["metadata"] = self.metadata

        return result


@dataclass
class HealthReport:
    """
    Overall health report.

    Aggregates multiple health checks into overall status.
    """

    status: HealthStatus
    checks: Dict[str, HealthCheck]
    version: str
    timestamp: datetime
    uptime: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON response.

        Returns:
            Dictionary representation
        """
        return {
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "version": self.version,
            "uptime": round(self.uptime, 3),
            "checks": {
                name: check.to_dict() for name, check in self.checks.items()
            },
        }

    @property
    def is_healthy(self) -> bool:
        """Check if overall status is healthy."""
        return self.status == HealthStatus.HEALTHY


class HealthChecker(Protocol):
    """
    Protocol for health checker implementations.

    Each service implements this protocol with service-specific checks.
    Checks are async because backing services are probed over the network.
    """

    async def check_liveness(self) -> HealthReport:
        """
        Perform liveness check.

        Liveness checks if the process is alive at all.
        Failure indicates service needs restart.

        Returns:
            HealthReport with liveness status
        """
        ...

    async def check_readiness(self) -> HealthReport:
        """
        Perform readiness check.

        Readiness checks if service should currently receive traffic.
        Failure indicates load balancers should stop routing to it.

        Returns:
            HealthReport with readiness status
        """
        ...

    async def check_health(self) -> HealthReport:
        """
        Perform overall health check across all dependencies.

        Returns:
            HealthReport with overall status
        """
        ...
