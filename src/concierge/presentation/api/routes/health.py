"""
Health check API routes.

Kubernetes-compatible liveness and readiness probes.
"""

from fastapi import APIRouter, Depends, Response, status

from concierge.di import Container
from concierge.infrastructure.monitoring import ConciergeHealthChecker
from concierge.presentation.api.dependencies import get_container

router = APIRouter(tags=["health"])


def get_health_checker(
    container: Container = Depends(get_container),
) -> ConciergeHealthChecker:
    """Dependency for health checker."""
    return container.health_checker


@router.get("/health/live", status_code=status.HTTP_200_OK)
async def liveness_probe(
    response: Response,
    health_checker: ConciergeHealthChecker = Depends(get_health_checker),
):
    """
    Liveness probe endpoint.

    Stays 200 during shutdown so the orchestrator lets the drain finish.

    Returns:
        Health status dict including lifecycle state
    """
    report = await health_checker.check_liveness()

    if not report.is_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return report.to_dict()


@router.get("/health/ready", status_code=status.HTTP_200_OK)
async def readiness_probe(
    response: Response,
    health_checker: ConciergeHealthChecker = Depends(get_health_checker),
):
    """
    Readiness probe endpoint.

    Returns 503 as soon as shutdown begins, or when the database or the
    cache is unreachable.

    Returns:
        Health status dict with dependency checks
    """
    report = await health_checker.check_readiness()

    if not report.is_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return report.to_dict()


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check_endpoint(
    response: Response,
    health_checker: ConciergeHealthChecker = Depends(get_health_checker),
):
    """
    General health check endpoint.

    Returns:
        Health status dict ("healthy" with 200, "degraded" with 503)
    """
    report = await health_checker.check_health()

    if not report.is_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return report.to_dict()
