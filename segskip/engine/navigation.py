import asyncio
from typing import Iterable

from segskip.adapters.base import PlayerAdapter
from segskip.config import settings
from segskip.engine.decision import DecisionEngine
from segskip.engine.watcher import NativeAdWatcher
from segskip.logging import get_logger
from segskip.models.schemas import DEFAULT_FETCH_CATEGORIES, Category
from segskip.services.options import OptionsStore
from segskip.services.sponsorblock import SponsorBlockClient

log = get_logger(__name__)


class NavigationController:
    """
    Owns the engine for one page and rebuilds it whenever the viewer moves to
    another piece of content.

    A change is noticed by location polling, by the host's navigation hook, or
    by the host calling notify_navigation() on history traversal. Leaving the
    supported content pages tears everything down.
    """

    def __init__(
        self,
        adapter: PlayerAdapter,
        client: SponsorBlockClient,
        options: OptionsStore | None = None,
        categories: Iterable[Category] | None = None,
        engine: DecisionEngine | None = None,
        watcher: NativeAdWatcher | None = None,
        poll_interval: float | None = None,
        video_timeout: float | None = None,
    ):
        self.adapter = adapter
        self.client = client
        self.options_store = options or OptionsStore()
        self.categories = set(categories or DEFAULT_FETCH_CATEGORIES)
        self.engine = engine or DecisionEngine(adapter, self.options_store)
        self.watcher = watcher or NativeAdWatcher(adapter, self.engine.update_native)
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.location_poll_interval_seconds
        )
        self.video_timeout = (
            video_timeout if video_timeout is not None else settings.video_wait_timeout_seconds
        )

        self.content_id: str | None = None
        self.location: str | None = None
        self._poll_task: asyncio.Task | None = None
        self._load_task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._poll_task is not None

    def fetch_categories(self) -> list[Category]:
        """Everything the viewer may be prompted for, plus auto-skip categories."""
        wanted = self.categories | self.engine.options.skip_categories
        wanted.discard(Category.NATIVE_AD)
        return sorted(wanted, key=lambda c: c.priority)

    async def start(self) -> bool:
        """Begin on the current location. False when it is not a content page."""
        if self.active:
            log.debug("navigation.already_started", content_id=self.content_id)
            return self.content_id is not None

        content_id = self.adapter.get_video_id() if self.adapter.is_video_page() else None
        if content_id is None:
            log.debug("navigation.not_a_video_page", location=self.adapter.host.location)
            return False

        log.info(
            "navigation.started", platform=self.adapter.platform.value, content_id=content_id
        )
        self.location = self.adapter.host.location
        self.client.cache.start_sweeper()
        self.adapter.observe_navigation(self.notify_navigation)
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_location())

        self._begin(content_id)
        task = self._load_task
        # A navigation during the first load cancels it rather than us
        await asyncio.wait({task})
        return not task.cancelled() and task.result()

    def notify_navigation(self) -> None:
        """History push/replace or back/forward happened in the host."""
        self.handle_location_change()

    async def _poll_location(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            self.handle_location_change()

    def handle_location_change(self) -> None:
        if not self.active:
            return

        location = self.adapter.host.location
        if location == self.location:
            return
        self.location = location

        content_id = self.adapter.get_video_id() if self.adapter.is_video_page() else None
        if content_id is None:
            log.info("navigation.left_video_page", location=location)
            self.teardown()
            return

        if content_id == self.content_id:
            # Query string or fragment change on the same content
            log.debug("navigation.same_content", content_id=content_id)
            return

        log.info("navigation.content_changed", previous=self.content_id, content_id=content_id)
        self._begin(content_id)

    def _begin(self, content_id: str) -> None:
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self.watcher.stop()
        generation = self.engine.reset(content_id)
        self.content_id = content_id
        self._load_task = asyncio.get_running_loop().create_task(
            self._load(content_id, generation)
        )

    async def _load(self, content_id: str, generation: int) -> bool:
        try:
            await asyncio.wait_for(self.adapter.wait_for_video(), self.video_timeout)
        except asyncio.TimeoutError:
            log.warning(
                "navigation.video_not_found", content_id=content_id, timeout=self.video_timeout
            )
            return False

        segments = await self.client.fetch_segments(
            content_id, self.fetch_categories(), self.adapter.platform
        )
        if not self.engine.load_segments(segments, generation):
            return False

        if self.engine.options.detect_native_ads and self.adapter.supports_native_ads:
            self.watcher.start()
        self.engine.start_monitoring()
        log.info("navigation.loaded", content_id=content_id, segments=len(segments))
        return True

    def teardown(self) -> None:
        """Stop everything and release the adapter."""
        for task in (self._poll_task, self._load_task):
            if task is not None and not task.done():
                task.cancel()
        self._poll_task = None
        self._load_task = None

        self.watcher.stop()
        self.engine.teardown()
        self.client.cache.stop_sweeper()
        self.adapter.destroy()
        log.info("navigation.torn_down", content_id=self.content_id)
        self.content_id = None
