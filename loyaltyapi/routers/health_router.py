from fastapi import APIRouter

from loyaltyapi.schemas.health import HealthCheckResponse

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
def health_check() -> HealthCheckResponse:
    """Liveness probe, no authentication and no database access."""

    return HealthCheckResponse()
