"""Pydantic models for health endpoints."""

from pydantic import BaseModel, Field

from loyaltyapi.utils.timezone_utils import to_iso, utc_now


class HealthCheckResponse(BaseModel):
    """Response model for service health checks."""

    status: str = "healthy"
    service: str = "loyaltyapi"
    timestamp: str = Field(default_factory=lambda: to_iso(utc_now()))
