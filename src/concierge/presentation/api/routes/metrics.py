"""
Prometheus exposition route.
"""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["metrics"])


@router.get("/metrics", include_in_schema=False)
def metrics_endpoint() -> Response:
    """Expose the default Prometheus registry in text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
