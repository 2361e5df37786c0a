"""
API schemas.
"""

from concierge.presentation.schemas.factors import (
    Factor,
    FactorsResponse,
    ServiceInfoResponse,
)

__all__ = ["Factor", "FactorsResponse", "ServiceInfoResponse"]
