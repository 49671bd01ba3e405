import re
from urllib.parse import urlparse

from segskip.adapters.base import PlayerAdapter
from segskip.models.schemas import MarkerStyle, Platform

BVID_RE = re.compile(r"/video/(BV\w+)")


class BilibiliAdapter(PlayerAdapter):
    """Bilibili players draw no ad indicators, so only community data applies."""

    platform = Platform.BILIBILI
    marker_style = MarkerStyle(
        container_id="sponsorblock-preview-bar",
        class_name="sponsorblock-segment",
        opacity=0.7,
    )

    def is_video_page(self) -> bool:
        url = urlparse(self.host.location)
        return (url.hostname or "").endswith("bilibili.com") and "/video/" in url.path

    def get_video_id(self) -> str | None:
        match = BVID_RE.search(urlparse(self.host.location).path)
        return match.group(1) if match else None
