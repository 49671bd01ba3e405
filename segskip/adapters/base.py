"""
Player adapter contract.

The decision engine only talks to a PlayerAdapter. Each adapter wraps a
PlayerHost, the embedding application's handle on the real page or player,
and hides the platform's quirks (content ids, native ad indicators, marker
layout) behind the same small set of calls.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol

from segskip.config import settings
from segskip.logging import get_logger
from segskip.models.schemas import (
    MarkerStyle,
    NativeAdMarker,
    NotificationOptions,
    Platform,
    ProgressMarker,
    Segment,
)

log = get_logger(__name__)


class VideoHandle(Protocol):
    current_time: float
    duration: float
    paused: bool
    volume: float


class PlayerHost(Protocol):
    """What the embedding application provides for one page."""

    @property
    def location(self) -> str: ...

    def find_video(self) -> VideoHandle | None: ...

    def find_progress_bar(self) -> Any | None: ...

    def find_player_container(self) -> Any | None: ...

    def show_notification(self, container: Any, message: str, options: NotificationOptions) -> None: ...

    def render_markers(self, progress_bar: Any, style: MarkerStyle, markers: list[ProgressMarker]) -> None: ...

    def show_prompt(self, container: Any, prompt: "SkipPrompt") -> None: ...

    def close_prompt(self, prompt: "SkipPrompt") -> None: ...


@dataclass(eq=False)
class SkipPrompt:
    """A pending "skip this segment?" offer shown by the host."""

    segment: Segment
    message: str
    on_skip: Callable[[], None]
    on_ignore: Callable[[], None]
    closed: bool = False

    def skip(self) -> None:
        if not self.closed:
            self.on_skip()

    def ignore(self) -> None:
        if not self.closed:
            self.on_ignore()


def format_time(seconds: float) -> str:
    mins, secs = divmod(int(seconds), 60)
    return f"{mins}:{secs:02d}"


def marker_order(segments: Iterable[Segment]) -> list[Segment]:
    """
    Longest first so shorter segments are drawn on top.
    Equal lengths fall back to category priority, then start, then id.
    """
    return sorted(segments, key=lambda s: (-s.duration, s.category.priority, s.start, s.id))


def build_progress_markers(segments: Iterable[Segment], duration: float) -> list[ProgressMarker]:
    """Lay segments out as percentages of the content duration."""
    markers = []
    for segment in marker_order(segments):
        start = min(duration, segment.start)
        end = min(duration, segment.end)
        if end <= start:
            log.debug("markers.out_of_range", segment_id=segment.id, start=start, end=end)
            continue
        markers.append(
            ProgressMarker(
                segment_id=segment.id,
                category=segment.category,
                left=start / duration * 100,
                width=(end - start) / duration * 100,
                color=segment.category.color,
                label=f"{segment.category.display_name}: {format_time(start)} - {format_time(end)}",
            )
        )
    return markers


class PlayerAdapter(ABC):
    platform: Platform
    marker_style = MarkerStyle()

    def __init__(self, host: PlayerHost, poll_interval: float | None = None):
        self.host = host
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.video_poll_interval_seconds
        )
        self.video: VideoHandle | None = None
        self.progress_bar: Any | None = None
        self._unsubscribers: list[Callable[[], None]] = []

    @abstractmethod
    def is_video_page(self) -> bool:
        """Whether the current location is a playable content page."""

    @abstractmethod
    def get_video_id(self) -> str | None:
        """Content id for the current location, if any."""

    def get_video_element(self) -> VideoHandle | None:
        return self.host.find_video()

    def get_progress_bar(self) -> Any | None:
        return self.host.find_progress_bar()

    def get_player_container(self) -> Any | None:
        return self.host.find_player_container()

    async def wait_for_video(self) -> VideoHandle:
        """Poll until the host exposes a video. No timeout; callers add one."""
        while True:
            video = self.get_video_element()
            if video is not None:
                self.video = video
                return video
            await asyncio.sleep(self.poll_interval)

    async def wait_for_progress_bar(self) -> Any:
        while True:
            progress_bar = self.get_progress_bar()
            if progress_bar is not None:
                self.progress_bar = progress_bar
                return progress_bar
            await asyncio.sleep(self.poll_interval)

    def seek_to(self, time: float) -> None:
        if self.video is not None:
            self.video.current_time = time

    def get_current_time(self) -> float:
        return self.video.current_time if self.video is not None else 0.0

    def get_duration(self) -> float:
        return self.video.duration if self.video is not None else 0.0

    def is_playing(self) -> bool:
        return self.video is not None and not self.video.paused

    def get_volume(self) -> float:
        return self.video.volume if self.video is not None else 0.0

    def set_volume(self, volume: float) -> None:
        if self.video is not None:
            self.video.volume = volume

    def show_notification(self, message: str, options: NotificationOptions | None = None) -> None:
        container = self.get_player_container()
        if container is None:
            return
        self.host.show_notification(container, message, options or NotificationOptions())

    def add_progress_markers(self, segments: Iterable[Segment], style: MarkerStyle | None = None) -> bool:
        """
        Draw segments on the progress bar. Returns False when the bar or the
        content duration is not available yet, so the caller can retry.
        """
        progress_bar = self.get_progress_bar()
        duration = self.get_duration()
        if progress_bar is None or not duration or duration <= 0:
            return False

        self.progress_bar = progress_bar
        markers = build_progress_markers(segments, duration)
        self.host.render_markers(progress_bar, style or self.marker_style, markers)
        log.debug("markers.rendered", platform=self.platform.value, count=len(markers))
        return True

    def show_skip_prompt(self, prompt: SkipPrompt) -> None:
        self.host.show_prompt(self.get_player_container(), prompt)

    def close_skip_prompt(self, prompt: SkipPrompt) -> None:
        if prompt.closed:
            return
        prompt.closed = True
        self.host.close_prompt(prompt)

    @property
    def supports_native_ads(self) -> bool:
        return False

    def detect_native_ad_markers(self) -> list[NativeAdMarker]:
        return []

    def observe_ad_changes(self, callback: Callable[[], None]) -> bool:
        """Subscribe to native ad changes. False when the host cannot notify."""
        return False

    def stop_observing_ads(self) -> None:
        """Release the subscription made by observe_ad_changes, if any."""

    def observe_navigation(self, callback: Callable[[], None]) -> bool:
        """Subscribe to the host's programmatic navigation and history events."""
        observe = getattr(self.host, "observe_navigation", None)
        if observe is None:
            return False
        self._unsubscribers.append(observe(callback))
        return True

    def destroy(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.video = None
        self.progress_bar = None
