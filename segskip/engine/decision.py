"""
Skip/mute/prompt decisions against the live playback position.

Each tick looks at the segments containing the current time, in store order,
and acts on the first one that calls for an action:

- already skipped or ignored: nothing, ever again for this content item
- category set to auto-skip: skip (seek to its end) or mute until its end,
  unless another skip happened within the rate limit window
- anything else: one dismissible prompt per segment id
"""

import asyncio
import time
from typing import Callable, Iterable

from segskip.adapters.base import PlayerAdapter, SkipPrompt
from segskip.config import settings
from segskip.engine.state import DecisionState
from segskip.engine.store import SegmentStore
from segskip.logging import get_logger
from segskip.models.schemas import ActionType, NativeAdMarker, NotificationOptions, Segment, SkipOptions
from segskip.services.options import OptionsStore

log = get_logger(__name__)


class DecisionEngine:
    def __init__(
        self,
        adapter: PlayerAdapter,
        options: OptionsStore | None = None,
        clock: Callable[[], float] = time.monotonic,
        interval: float | None = None,
        rate_limit: float | None = None,
        prompt_timeout: float | None = None,
        mute_poll_interval: float | None = None,
    ):
        self.adapter = adapter
        self.options_store = options or OptionsStore()
        self.store = SegmentStore()
        self.state = DecisionState()
        self.generation = 0

        self._clock = clock
        self.interval = interval if interval is not None else settings.monitor_interval_seconds
        self.rate_limit = rate_limit if rate_limit is not None else settings.skip_rate_limit_seconds
        self.prompt_timeout = (
            prompt_timeout if prompt_timeout is not None else settings.prompt_timeout_seconds
        )
        self.mute_poll_interval = (
            mute_poll_interval
            if mute_poll_interval is not None
            else settings.mute_poll_interval_seconds
        )

        self._last_skip_at: float | None = None
        self._monitor_task: asyncio.Task | None = None
        self._timers: set[asyncio.TimerHandle] = set()
        self._mute_task: asyncio.Task | None = None
        self._restore_volume: float | None = None
        self._prompt: SkipPrompt | None = None
        self._markers_pending = False

    @property
    def options(self) -> SkipOptions:
        return self.options_store.options

    @property
    def monitoring(self) -> bool:
        return self._monitor_task is not None and not self._monitor_task.done()

    @property
    def current_prompt(self) -> SkipPrompt | None:
        return self._prompt

    # Lifecycle

    def reset(self, content_id: str | None = None) -> int:
        """Forget everything about the previous content item."""
        self.stop_monitoring()
        self._cancel_pending()
        self.store.clear()
        self.state = DecisionState(content_id=content_id)
        self._last_skip_at = None
        self._markers_pending = False
        self.generation += 1
        return self.generation

    def teardown(self) -> None:
        self.reset()
        self.state = DecisionState()

    def load_segments(self, segments: Iterable[Segment], generation: int | None = None) -> bool:
        """Install community segments. Stale generations are ignored."""
        if generation is not None and generation != self.generation:
            log.debug("engine.stale_segments_dropped", generation=generation, current=self.generation)
            return False
        self.store.set_community(segments)
        self.render_markers()
        return True

    def update_native(self, markers: Iterable[NativeAdMarker]) -> None:
        """
        Replace the detected ads. Native ids are reused across detection
        passes, so decisions made about the previous ones are dropped.
        """
        stale = {segment.id for segment in self.store.native}
        if self._prompt is not None and self._prompt.segment.id in stale:
            self._close_prompt()
        self.store.replace_native(markers)
        self.state.forget(stale)
        self.render_markers()

    def render_markers(self) -> None:
        if not self.options.show_progress_markers:
            self._markers_pending = False
            return
        # Retried from tick() until the duration and progress bar are known
        self._markers_pending = not self.adapter.add_progress_markers(self.store.segments)

    # Monitoring loop

    def start_monitoring(self) -> None:
        if self.monitoring:
            return
        self._monitor_task = asyncio.get_running_loop().create_task(self._monitor())
        log.info("engine.monitoring_started", content_id=self.state.content_id)

    def stop_monitoring(self) -> None:
        if self._monitor_task is None:
            return
        self._monitor_task.cancel()
        self._monitor_task = None
        log.info("engine.monitoring_stopped", content_id=self.state.content_id)

    async def _monitor(self) -> None:
        while True:
            self.safe_tick()
            await asyncio.sleep(self.interval)

    def safe_tick(self) -> Segment | None:
        """One tick; a failure is logged and does not stop later ticks."""
        try:
            return self.tick()
        except Exception:
            log.exception("engine.tick_failed", content_id=self.state.content_id)
            return None

    def tick(self) -> Segment | None:
        """Evaluate the current position. Returns the segment acted on, if any."""
        if self._markers_pending:
            self.render_markers()

        if not self.adapter.is_playing():
            return None

        position = self.adapter.get_current_time()
        if self._prompt is not None and position >= self._prompt.segment.end:
            self._close_prompt()

        options = self.options
        for segment in self.store:
            if not segment.contains(position) or self.state.is_resolved(segment.id):
                continue

            if options.auto_skip and segment.category in options.skip_categories:
                if self._rate_limited():
                    continue
                self._auto_act(segment, options)
                return segment

            if segment.id in self.state.prompted:
                continue
            self._prompt_for(segment)
            return segment

        return None

    def _rate_limited(self) -> bool:
        return self._last_skip_at is not None and self._clock() - self._last_skip_at < self.rate_limit

    # Actions

    def _auto_act(self, segment: Segment, options: SkipOptions) -> None:
        self.state.skipped.add(segment.id)
        self._last_skip_at = self._clock()

        if options.mute_instead_of_skip or segment.action_type == ActionType.MUTE:
            self._mute(segment)
        elif options.skip_delay > 0:
            self._later(options.skip_delay, self._seek_past, segment, self.generation)
        else:
            self._seek_past(segment, self.generation)

    def _seek_past(self, segment: Segment, generation: int) -> None:
        if generation != self.generation:
            return
        self.adapter.seek_to(segment.end)
        self._last_skip_at = self._clock()
        self._notify(f"Skipped {segment.category.display_name}", "success")
        log.info(
            "engine.skipped",
            content_id=self.state.content_id,
            segment_id=segment.id,
            category=segment.category.value,
            to=segment.end,
        )

    def _mute(self, segment: Segment) -> None:
        if self._restore_volume is None:
            self._restore_volume = self.adapter.get_volume()
        self.adapter.set_volume(0)
        self._notify(f"Muted {segment.category.display_name}", "info")
        log.info("engine.muted", content_id=self.state.content_id, segment_id=segment.id)

        if self._mute_task is not None:
            self._mute_task.cancel()
        self._mute_task = asyncio.get_running_loop().create_task(
            self._unmute_after(segment, self.generation)
        )

    async def _unmute_after(self, segment: Segment, generation: int) -> None:
        while self.adapter.get_current_time() < segment.end:
            await asyncio.sleep(self.mute_poll_interval)
        if generation == self.generation:
            self._unmute()
            self._mute_task = None
            log.info("engine.unmuted", content_id=self.state.content_id, segment_id=segment.id)

    def _unmute(self) -> None:
        if self._restore_volume is not None:
            self.adapter.set_volume(self._restore_volume)
            self._restore_volume = None

    def _notify(self, message: str, kind: str) -> None:
        if not self.options.show_notifications:
            return
        self.adapter.show_notification(
            message,
            NotificationOptions(kind=kind, duration=settings.notification_duration_seconds),
        )

    # Prompts

    def _prompt_for(self, segment: Segment) -> None:
        self.state.prompted.add(segment.id)
        self._close_prompt()

        prompt = SkipPrompt(
            segment=segment,
            message=f"Skip {segment.category.display_name}? ({segment.duration:.0f}s)",
            on_skip=lambda: self.accept_prompt(segment.id),
            on_ignore=lambda: self.ignore_segment(segment.id),
        )
        self._prompt = prompt
        self.adapter.show_skip_prompt(prompt)
        self._later(self.prompt_timeout, self._expire_prompt, prompt)
        log.debug("engine.prompted", content_id=self.state.content_id, segment_id=segment.id)

    def _expire_prompt(self, prompt: SkipPrompt) -> None:
        if self._prompt is prompt:
            self._close_prompt()

    def _close_prompt(self) -> None:
        if self._prompt is not None:
            self.adapter.close_skip_prompt(self._prompt)
            self._prompt = None

    def accept_prompt(self, segment_id: str) -> bool:
        """The viewer chose to skip. Acts immediately, without skip_delay."""
        self._close_prompt()
        segment = self.store.get(segment_id)
        if segment is None or self.state.is_resolved(segment_id):
            return False

        self.state.skipped.add(segment_id)
        self._last_skip_at = self._clock()
        if self.options.mute_instead_of_skip or segment.action_type == ActionType.MUTE:
            self._mute(segment)
        else:
            self._seek_past(segment, self.generation)
        return True

    def ignore_segment(self, segment_id: str) -> None:
        """The viewer chose not to skip; never act on this id again."""
        self.state.ignored.add(segment_id)
        self._close_prompt()
        log.debug("engine.ignored", content_id=self.state.content_id, segment_id=segment_id)

    # Timers

    def _later(self, delay: float, callback, *args) -> None:
        handle: asyncio.TimerHandle | None = None

        def fire():
            self._timers.discard(handle)
            callback(*args)

        handle = asyncio.get_running_loop().call_later(delay, fire)
        self._timers.add(handle)

    def _cancel_pending(self) -> None:
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()

        if self._mute_task is not None:
            self._mute_task.cancel()
            self._mute_task = None
        self._unmute()
        self._close_prompt()
