from urllib.parse import urlparse

from segskip.adapters.base import PlayerAdapter, PlayerHost
from segskip.adapters.bilibili import BilibiliAdapter
from segskip.adapters.youtube import YouTubeAdapter
from segskip.logging import get_logger

log = get_logger(__name__)


def create_adapter(host: PlayerHost, poll_interval: float | None = None) -> PlayerAdapter | None:
    """Pick the adapter for the host's site once, by its hostname."""
    hostname = urlparse(host.location).hostname or ""

    if hostname == "youtu.be" or hostname.endswith("youtube.com"):
        return YouTubeAdapter(host, poll_interval)
    if hostname.endswith("bilibili.com"):
        return BilibiliAdapter(host, poll_interval)

    log.debug("adapter.unsupported_host", hostname=hostname)
    return None
