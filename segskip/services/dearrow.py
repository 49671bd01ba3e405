import httpx

from segskip.config import settings
from segskip.logging import get_logger
from segskip.models.schemas import BrandingInfo
from segskip.services.cache import CacheService

log = get_logger(__name__)


def parse_branding(payload) -> BrandingInfo:
    """Pick the best-ranked title and thumbnail from a branding payload."""
    if not isinstance(payload, dict):
        raise ValueError("branding payload must be an object")

    titles = payload.get("titles") or []
    thumbnails = payload.get("thumbnails") or []
    if not isinstance(titles, list) or not isinstance(thumbnails, list):
        raise ValueError("branding titles and thumbnails must be lists")
    if not all(isinstance(item, dict) for item in titles[:1] + thumbnails[:1]):
        raise ValueError("branding entries must be objects")

    return BrandingInfo(
        title=titles[0].get("title") if titles else None,
        thumbnail_time=thumbnails[0].get("timestamp") if thumbnails else None,
        random_time=payload.get("randomTime"),
        video_duration=payload.get("videoDuration"),
    )


class DeArrowClient:
    """Title and thumbnail improvements for YouTube videos."""

    def __init__(self, http: httpx.AsyncClient | None = None, cache: CacheService | None = None):
        self._http = http
        self.cache = cache or CacheService(settings.branding_cache_ttl_seconds, name="branding")

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.branding_timeout_seconds),
                headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def get_branding(self, content_id: str) -> BrandingInfo | None:
        """Get branding data, or None when the service has nothing usable."""
        if not content_id:
            return None
        return await self.cache.get_or_fetch(
            ("branding", content_id), lambda: self._request_branding(content_id)
        )

    async def _request_branding(self, content_id: str) -> tuple[BrandingInfo | None, bool]:
        try:
            response = await self.http.get(
                f"{settings.dearrow_api_url}/branding", params={"videoID": content_id}
            )
        except httpx.HTTPError as e:
            log.warning("branding.transport_error", content_id=content_id, error=str(e))
            return None, False

        if response.status_code != 200:
            log.debug("branding.unavailable", content_id=content_id, status=response.status_code)
            return None, False

        try:
            branding = parse_branding(response.json())
        except ValueError as e:
            # Covers json.JSONDecodeError and pydantic's ValidationError
            log.warning("branding.malformed_payload", content_id=content_id, error=str(e))
            return None, False

        return branding, True

    def invalidate(self, content_id: str) -> int:
        return self.cache.invalidate(lambda key: key[1] == content_id)
