from fastapi import APIRouter

from core.clock import ClockFactory
from api.schemas import HealthResponse

router = APIRouter(tags=["Health"])

API_VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponse)
def health_check():
    """Liveness check. Does not touch the database."""
    return HealthResponse(
        status="healthy",
        timestamp=ClockFactory.get_clock().format_iso(),
        version=API_VERSION,
    )
