"""Health check."""

from fastapi import APIRouter

from tcdocs import __version__
from tcdocs.config import settings
from tcdocs.schemas.system import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Lightweight connectivity check — does not contact the upstream API."""
    return HealthResponse(
        version=__version__,
        upstream=settings.api_base_url,
        cache_ttl_seconds=settings.content_cache_ttl_seconds,
    )


@router.get("/ping")
async def ping():
    """Ultra-lightweight ping."""
    return {"status": "ok"}
