"""
Catalogue routes: the twelve-factor list and the service banner.
"""

from fastapi import APIRouter, Depends

from concierge.di import Container
from concierge.presentation.api.dependencies import get_container
from concierge.presentation.schemas import (
    Factor,
    FactorsResponse,
    ServiceInfoResponse,
)

router = APIRouter(tags=["factors"])

TWELVE_FACTORS = [
    Factor(
        id=1,
        name="Codebase",
        description="One codebase tracked in revision control",
    ),
    Factor(id=2, name="Dependencies", description="Explicitly declare dependencies"),
    Factor(id=3, name="Config", description="Store config in the environment"),
    Factor(
        id=4,
        name="Backing Services",
        description="Treat backing services as attached resources",
    ),
    Factor(
        id=5,
        name="Build, Release, Run",
        description="Strictly separate build and run stages",
    ),
    Factor(id=6, name="Processes", description="Execute app as stateless processes"),
    Factor(id=7, name="Port Binding", description="Export services via port binding"),
    Factor(id=8, name="Concurrency", description="Scale out via the process model"),
    Factor(
        id=9,
        name="Disposability",
        description="Maximize robustness with fast startup and graceful shutdown",
    ),
    Factor(
        id=10,
        name="Dev/Prod Parity",
        description="Keep development and production similar",
    ),
    Factor(id=11, name="Logs", description="Treat logs as event streams"),
    Factor(
        id=12,
        name="Admin Processes",
        description="Run admin tasks as one-off processes",
    ),
]


@router.get("/api/factors", response_model=FactorsResponse)
async def list_factors() -> FactorsResponse:
    """List the twelve factors."""
    return FactorsResponse(factors=TWELVE_FACTORS)


@router.get("/", response_model=ServiceInfoResponse)
async def service_info(
    container: Container = Depends(get_container),
) -> ServiceInfoResponse:
    """Service banner with the exposed endpoints."""
    settings = container.settings
    endpoints = ["/api/factors", "/health", "/health/live", "/health/ready"]
    if settings.metrics_enabled:
        endpoints.append("/metrics")

    return ServiceInfoResponse(
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.env,
        endpoints=endpoints,
    )
