from typing import Iterable

import httpx
from pydantic import ValidationError

from segskip.config import settings
from segskip.logging import get_logger
from segskip.models.schemas import (
    DEFAULT_FETCH_CATEGORIES,
    Category,
    Platform,
    RemoteSegment,
    Segment,
    VoteType,
)
from segskip.services.cache import CacheService
from segskip.services.user_id import UserIdStore

log = get_logger(__name__)

# The "service" query parameter the SponsorBlock API expects per platform
SERVICE_NAMES = {
    Platform.YOUTUBE: "YouTube",
}


def category_filter(categories: Iterable[Category | str] | None) -> tuple[str, ...]:
    """Normalize a category selection into a stable cache-key component."""
    if not categories:
        categories = DEFAULT_FETCH_CATEGORIES
    return tuple(sorted({Category(c).value for c in categories}))


def parse_segments(payload) -> list[Segment]:
    """
    Turn a decoded skipSegments payload into segments.
    Items with an unknown category or an invalid range are dropped.
    """
    if not isinstance(payload, list):
        raise ValueError(f"expected a list of segments, got {type(payload).__name__}")

    segments = []
    for item in payload:
        try:
            segments.append(RemoteSegment.model_validate(item).to_segment())
        except ValidationError as e:
            log.debug("segments.item_dropped", error=e.errors()[0]["msg"])
    return segments


class SponsorBlockClient:
    """
    Client for the community skip-segment service.

    fetch_segments never raises: transport errors, error statuses and
    malformed payloads all resolve to an empty list.
    """

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        cache: CacheService | None = None,
        user_ids: UserIdStore | None = None,
    ):
        self._http = http
        self.cache = cache or CacheService(settings.segment_cache_ttl_seconds, name="segments")
        self.user_ids = user_ids or UserIdStore()

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.request_timeout_seconds),
                headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _base_url(self, platform: Platform) -> str:
        if platform == Platform.BILIBILI:
            return settings.bilibili_api_url
        return settings.sponsorblock_api_url

    def cache_key(
        self,
        content_id: str,
        categories: Iterable[Category | str] | None = None,
        platform: Platform = Platform.YOUTUBE,
    ) -> tuple:
        return (Platform(platform), content_id, category_filter(categories))

    async def fetch_segments(
        self,
        content_id: str,
        categories: Iterable[Category | str] | None = None,
        platform: Platform = Platform.YOUTUBE,
    ) -> list[Segment]:
        """Get the community segments for a piece of content."""
        if not content_id:
            log.warning("segments.missing_content_id")
            return []

        platform = Platform(platform)
        key = self.cache_key(content_id, categories, platform)
        segments = await self.cache.get_or_fetch(
            key, lambda: self._request_segments(platform, content_id, key[2])
        )
        return list(segments)

    async def _request_segments(
        self, platform: Platform, content_id: str, categories: tuple[str, ...]
    ) -> tuple[list[Segment], bool]:
        """Returns (segments, cacheable). Only definitive answers are cacheable."""
        params = [("videoID", content_id)] + [("category", c) for c in categories]
        if platform in SERVICE_NAMES:
            params.append(("service", SERVICE_NAMES[platform]))
        url = f"{self._base_url(platform)}/skipSegments"

        try:
            response = await self.http.get(url, params=params)
        except httpx.TimeoutException:
            log.warning("segments.timeout", platform=platform.value, content_id=content_id)
            return [], False
        except httpx.HTTPError as e:
            log.warning(
                "segments.transport_error",
                platform=platform.value,
                content_id=content_id,
                error=str(e),
            )
            return [], False

        if response.status_code == 404:
            log.debug("segments.not_found", platform=platform.value, content_id=content_id)
            return [], True

        if response.status_code == 429:
            log.warning("segments.rate_limited", platform=platform.value, content_id=content_id)
            return [], False

        if response.status_code == 400:
            log.error("segments.bad_request", platform=platform.value, content_id=content_id)
            return [], False

        if response.status_code != 200:
            log.warning(
                "segments.http_error",
                platform=platform.value,
                content_id=content_id,
                status=response.status_code,
            )
            return [], False

        try:
            segments = parse_segments(response.json())
        except ValueError as e:
            # json.JSONDecodeError is a ValueError too
            log.error(
                "segments.malformed_payload",
                platform=platform.value,
                content_id=content_id,
                error=str(e),
            )
            return [], False

        log.info(
            "segments.fetched",
            platform=platform.value,
            content_id=content_id,
            count=len(segments),
        )
        return segments, True

    def has_segments(
        self,
        content_id: str,
        categories: Iterable[Category | str] | None = None,
        platform: Platform = Platform.YOUTUBE,
    ) -> bool | None:
        """Answer from cache only; None when the content was never fetched."""
        cached = self.cache.get(self.cache_key(content_id, categories, platform))
        if cached is None:
            return None
        return len(cached) > 0

    def invalidate(self, content_id: str, platform: Platform | None = None) -> int:
        """Drop every cached category filter for a piece of content."""
        removed = self.cache.invalidate(
            lambda key: key[1] == content_id and (platform is None or key[0] == platform)
        )
        log.debug("segments.invalidated", content_id=content_id, removed=removed)
        return removed

    def owner_of(self, segment_id: str) -> tuple[Platform, str] | None:
        """(platform, content id) of a segment that is still cached."""
        for (platform, content_id, _), segments in self.cache.items():
            if any(segment.id == segment_id for segment in segments):
                return platform, content_id
        return None

    def clear_cache(self) -> None:
        self.cache.clear()

    async def submit_segment(
        self,
        content_id: str,
        start: float,
        end: float,
        category: Category | str = Category.SPONSOR,
        platform: Platform = Platform.YOUTUBE,
    ) -> bool:
        """Submit a new segment. Returns True when the service accepted it."""
        if not content_id or start < 0 or end <= start:
            log.error(
                "segments.submit_invalid", content_id=content_id, start=start, end=end
            )
            return False

        platform = Platform(platform)
        body = {
            "videoID": content_id,
            "userID": self.user_ids.get(),
            "segments": [{"segment": [start, end], "category": Category(category).value}],
        }
        if platform in SERVICE_NAMES:
            body["service"] = SERVICE_NAMES[platform]

        try:
            response = await self.http.post(f"{self._base_url(platform)}/skipSegments", json=body)
        except httpx.HTTPError as e:
            log.error("segments.submit_failed", content_id=content_id, error=str(e))
            return False

        if response.status_code not in (200, 201):
            log.error(
                "segments.submit_failed", content_id=content_id, status=response.status_code
            )
            return False

        log.info("segments.submitted", content_id=content_id, start=start, end=end)
        self.invalidate(content_id, platform)
        return True

    async def vote_on_segment(
        self,
        segment_id: str,
        vote_type: VoteType | int = VoteType.UPVOTE,
        content_id: str | None = None,
        platform: Platform | None = None,
    ) -> bool:
        """Vote on a segment. Returns True when the vote was recorded."""
        owner = self.owner_of(segment_id)
        if platform is None:
            platform = owner[0] if owner else Platform.YOUTUBE
        if content_id is None and owner:
            content_id = owner[1]

        body = {
            "UUID": segment_id,
            "userID": self.user_ids.get(),
            "type": int(vote_type),
        }
        try:
            response = await self.http.post(
                f"{self._base_url(Platform(platform))}/voteOnSponsorTime", json=body
            )
        except httpx.HTTPError as e:
            log.error("segments.vote_failed", segment_id=segment_id, error=str(e))
            return False

        if response.status_code != 200:
            log.error("segments.vote_failed", segment_id=segment_id, status=response.status_code)
            return False

        log.info("segments.voted", segment_id=segment_id, vote_type=int(vote_type))
        if content_id:
            self.invalidate(content_id)
        return True
