import re
from typing import Callable, NamedTuple
from urllib.parse import parse_qs, urlparse

from segskip.adapters.base import PlayerAdapter
from segskip.logging import get_logger
from segskip.models.schemas import MarkerStyle, NativeAdMarker, Platform

log = get_logger(__name__)

VIDEO_ID_RE = re.compile(r"^[\w-]{11}$")


class AdIndicator(NamedTuple):
    """An ad range drawn by the player, as percentages of the progress bar."""

    left: float
    width: float
    kind: str = "ad_progress"


class YouTubeAdapter(PlayerAdapter):
    platform = Platform.YOUTUBE
    marker_style = MarkerStyle(
        container_id="segskip-youtube-markers",
        class_name="segskip-youtube-marker",
        opacity=0.6,
    )

    def __init__(self, host, poll_interval: float | None = None):
        super().__init__(host, poll_interval)
        self._ad_unsubscribe: Callable[[], None] | None = None

    def is_video_page(self) -> bool:
        url = urlparse(self.host.location)
        hostname = url.hostname or ""
        if hostname == "youtu.be":
            return True
        return hostname.endswith("youtube.com") and (
            url.path.startswith("/watch") or url.path.startswith("/shorts/")
        )

    def get_video_id(self) -> str | None:
        url = urlparse(self.host.location)
        hostname = url.hostname or ""

        if hostname == "youtu.be":
            candidate = url.path.lstrip("/").split("/")[0]
        elif url.path.startswith("/shorts/"):
            candidate = url.path[len("/shorts/"):].split("/")[0]
        else:
            candidate = parse_qs(url.query).get("v", [""])[0]

        return candidate if VIDEO_ID_RE.match(candidate) else None

    @property
    def supports_native_ads(self) -> bool:
        return hasattr(self.host, "ad_indicators")

    def detect_native_ad_markers(self) -> list[NativeAdMarker]:
        """
        Translate the player's own ad indicators into time ranges.
        Best-effort: returns [] whenever the bar or duration is unknown.
        """
        if not self.supports_native_ads:
            return []

        progress_bar = self.get_progress_bar()
        duration = self.get_duration()
        if progress_bar is None or not duration or duration <= 0:
            return []

        markers = []
        for indicator in self.host.ad_indicators(progress_bar):
            if indicator.width <= 0:
                continue
            start = max(0.0, indicator.left / 100 * duration)
            end = min(duration, (indicator.left + indicator.width) / 100 * duration)
            if end <= start:
                continue
            markers.append(NativeAdMarker(start=start, end=end, kind=indicator.kind))
        return markers

    def observe_ad_changes(self, callback: Callable[[], None]) -> bool:
        observe = getattr(self.host, "observe_ad_indicators", None)
        progress_bar = self.get_progress_bar()
        if observe is None or progress_bar is None:
            return False

        self.stop_observing_ads()
        self._ad_unsubscribe = observe(progress_bar, callback)
        return True

    def stop_observing_ads(self) -> None:
        if self._ad_unsubscribe is not None:
            self._ad_unsubscribe()
            self._ad_unsubscribe = None

    def destroy(self) -> None:
        self.stop_observing_ads()
        super().destroy()
