"""
Response schemas for catalogue endpoints.
"""

from typing import List

from pydantic import BaseModel, Field


class Factor(BaseModel):
    """One of the twelve factors."""

    id: int = Field(..., ge=1, le=12)
    name: str
    description: str


class FactorsResponse(BaseModel):
    """Response for GET /api/factors."""

    factors: List[Factor]


class ServiceInfoResponse(BaseModel):
    """Response for GET /."""

    service: str
    version: str
    environment: str
    endpoints: List[str]
