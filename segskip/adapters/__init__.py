from .base import PlayerAdapter, PlayerHost, SkipPrompt, VideoHandle, build_progress_markers, marker_order
from .bilibili import BilibiliAdapter
from .factory import create_adapter
from .youtube import AdIndicator, YouTubeAdapter

__all__ = [
    "AdIndicator",
    "BilibiliAdapter",
    "PlayerAdapter",
    "PlayerHost",
    "SkipPrompt",
    "VideoHandle",
    "YouTubeAdapter",
    "build_progress_markers",
    "create_adapter",
    "marker_order",
]
