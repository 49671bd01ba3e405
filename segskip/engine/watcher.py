import asyncio
import time
from typing import Callable

from segskip.adapters.base import PlayerAdapter
from segskip.config import settings
from segskip.logging import get_logger
from segskip.models.schemas import NativeAdMarker

log = get_logger(__name__)


class NativeAdWatcher:
    """
    Keeps the store's native ad segments in sync with the player's own ad
    indicators.

    Detection runs at most once per check interval. Bursts of host change
    notifications are debounced into one compare-and-merge. Markers are
    compared by value, so an unchanged player costs nothing downstream.
    """

    def __init__(
        self,
        adapter: PlayerAdapter,
        on_change: Callable[[list[NativeAdMarker]], None],
        clock: Callable[[], float] = time.monotonic,
        check_interval: float | None = None,
        debounce: float | None = None,
    ):
        self.adapter = adapter
        self.on_change = on_change
        self._clock = clock
        self.check_interval = (
            check_interval
            if check_interval is not None
            else settings.native_ad_check_interval_seconds
        )
        self.debounce = debounce if debounce is not None else settings.native_ad_debounce_seconds

        self.markers: list[NativeAdMarker] = []
        self._last_check: float | None = None
        self._active = False
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._poll_task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Initial detection, then follow host notifications or poll."""
        if self._active:
            return
        self._active = True
        self.check()

        if not self.adapter.observe_ad_changes(self.notify):
            self._poll_task = asyncio.get_running_loop().create_task(self._poll())
        log.debug("watcher.started", platform=self.adapter.platform.value)

    def stop(self) -> None:
        self._active = False
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        self.adapter.stop_observing_ads()
        self.markers = []
        self._last_check = None

    async def _poll(self) -> None:
        while self._active:
            await asyncio.sleep(self.check_interval)
            self.check()

    def check(self) -> bool:
        """Rate-limited detection pass. Returns True when markers changed."""
        if not self._active:
            return False

        now = self._clock()
        if self._last_check is not None and now - self._last_check < self.check_interval:
            return False
        self._last_check = now

        try:
            markers = self.adapter.detect_native_ad_markers()
        except Exception:
            # Best-effort signal; keep the previous markers
            log.exception("watcher.detection_failed", platform=self.adapter.platform.value)
            return False
        return self.merge(markers)

    def notify(self) -> None:
        """Host change notification; a burst collapses into one check."""
        if not self._active:
            return
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        self._debounce_handle = asyncio.get_running_loop().call_later(self.debounce, self._flush)

    def _flush(self) -> None:
        self._debounce_handle = None
        if not self._active:
            return

        remaining = 0.0
        if self._last_check is not None:
            remaining = self.check_interval - (self._clock() - self._last_check)
        if remaining > 0:
            # Too soon after the last pass; look again once the interval is up
            self._debounce_handle = asyncio.get_running_loop().call_later(remaining, self._flush)
            return
        self.check()

    def merge(self, markers: list[NativeAdMarker]) -> bool:
        if not self._active or markers == self.markers:
            return False

        self.markers = list(markers)
        log.info("watcher.markers_changed", count=len(markers))
        self.on_change(self.markers)
        return True
