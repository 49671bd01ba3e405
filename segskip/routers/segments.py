from fastapi import APIRouter, Header, HTTPException, Path, Query

from segskip.config import settings
from segskip.models.schemas import (
    ActionResponse,
    BrandingInfo,
    Category,
    ErrorResponse,
    Platform,
    SegmentListResponse,
    SubmitSegmentRequest,
    VoteRequest,
)
from segskip.services.dearrow import DeArrowClient
from segskip.services.sponsorblock import SponsorBlockClient

router = APIRouter(prefix="/segments", tags=["segments"])

sponsorblock = SponsorBlockClient()
dearrow = DeArrowClient()


def verify_api_key(x_api_key: str = Header(...)):
    """Simple API key authentication."""
    if settings.api_key is None or x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


@router.post("/vote", response_model=ActionResponse)
async def vote_on_segment(
    request: VoteRequest,
    x_api_key: str = Header(...),
):
    """
    Vote on a segment. The owning video's cached segments are dropped on
    success so the next lookup sees the new state.
    """
    verify_api_key(x_api_key)

    success = await sponsorblock.vote_on_segment(
        request.segment_id, request.vote_type, content_id=request.video_id
    )
    if not success:
        raise HTTPException(
            status_code=502,
            detail=ErrorResponse(
                error="Vote was not accepted",
                code="VOTE_FAILED",
                retry_after=60,
            ).model_dump(),
        )
    return ActionResponse(success=True)


@router.get("/{platform}/{video_id}", response_model=SegmentListResponse)
async def get_segments(
    platform: Platform,
    video_id: str = Path(..., min_length=1, max_length=20),
    category: list[Category] | None = Query(None, description="Categories to include"),
    x_api_key: str = Header(...),
):
    """
    Skip segments for a video, served from cache when fresh.

    Lookup failures are not errors: the list is simply empty.
    """
    verify_api_key(x_api_key)

    segments = await sponsorblock.fetch_segments(video_id, category, platform)
    return SegmentListResponse(platform=platform, video_id=video_id, segments=segments)


@router.get("/{platform}/{video_id}/branding", response_model=BrandingInfo)
async def get_branding(
    platform: Platform,
    video_id: str = Path(..., min_length=1, max_length=20),
    x_api_key: str = Header(...),
):
    """Community title and thumbnail hint (YouTube only)."""
    verify_api_key(x_api_key)

    branding = None
    if platform == Platform.YOUTUBE:
        branding = await dearrow.get_branding(video_id)
    if branding is None:
        raise HTTPException(
            status_code=404,
            detail=ErrorResponse(error="No branding data", code="NOT_FOUND").model_dump(),
        )
    return branding


@router.post("/{platform}/{video_id}", response_model=ActionResponse, status_code=201)
async def submit_segment(
    platform: Platform,
    request: SubmitSegmentRequest,
    video_id: str = Path(..., min_length=1, max_length=20),
    x_api_key: str = Header(...),
):
    """Submit a new segment for a video."""
    verify_api_key(x_api_key)

    success = await sponsorblock.submit_segment(
        video_id, request.start, request.end, request.category, platform
    )
    if not success:
        raise HTTPException(
            status_code=502,
            detail=ErrorResponse(
                error="Submission was not accepted",
                code="SUBMISSION_FAILED",
                retry_after=60,
            ).model_dump(),
        )
    return ActionResponse(success=True)
