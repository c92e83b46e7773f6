"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from server.schemas.responses import HealthResponseDTO

VERSION = "1.0.0"

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponseDTO)
async def health_check():
    """Health check endpoint."""
    return HealthResponseDTO(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        version=VERSION,
    )
