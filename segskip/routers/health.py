from fastapi import APIRouter

from segskip import __version__
from segskip.models.schemas import HealthResponse
from segskip.routers import segments

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness plus the number of cached lookups."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        cached_entries=len(segments.sponsorblock.cache) + len(segments.dearrow.cache),
    )
