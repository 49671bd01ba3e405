"""Tests for the skip/mute/prompt decision engine."""

import asyncio

import pytest
from structlog.testing import capture_logs

from conftest import make_segment
from segskip.adapters import YouTubeAdapter
from segskip.engine import DecisionEngine
from segskip.models.schemas import ActionType, Category, NativeAdMarker, SkipOptions
from segskip.services.options import OptionsStore


def make_engine(host, video, clock, **options):
    adapter = YouTubeAdapter(host)
    adapter.video = video
    return DecisionEngine(
        adapter,
        OptionsStore(options=SkipOptions(**options)),
        clock=clock,
        interval=0.01,
        rate_limit=1.0,
        prompt_timeout=0.05,
        mute_poll_interval=0.01,
    )


def test_enabled_category_is_skipped_over_overlapping_prompt(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, skip_categories={Category.SPONSOR})
    engine.reset("X")
    engine.load_segments(
        [make_segment("sponsor", 0, 10), make_segment("intro", 0, 5, Category.INTRO)]
    )
    video.current_time = 2

    acted = engine.tick()

    assert acted.id == "sponsor"
    assert video.current_time == 10
    assert youtube_host.prompts == []
    message, options = youtube_host.notifications[0]
    assert message == "Skipped Sponsor"
    assert options.kind == "success"
    # Shorter segment drawn last, on top
    _, markers = youtube_host.rendered[-1]
    assert [m.segment_id for m in markers] == ["sponsor", "intro"]


@pytest.mark.asyncio
async def test_disabled_category_is_prompted(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, skip_categories={Category.SPONSOR})
    engine.reset("X")
    engine.load_segments([make_segment("intro", 0, 5, Category.INTRO)])
    video.current_time = 2

    assert engine.tick().id == "intro"

    assert video.current_time == 2
    prompt = youtube_host.prompts[0]
    assert prompt.message == "Skip Intro? (5s)"
    assert engine.current_prompt is prompt
    engine.reset()


def test_skip_happens_once_per_content_item(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])

    video.current_time = 3
    assert engine.tick() is not None
    clock.advance(5)
    video.current_time = 3
    assert engine.tick() is None
    assert video.current_time == 3
    assert len(youtube_host.notifications) == 1


def test_abutting_segments_respect_rate_limit(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10), make_segment("b", 10, 20)])

    video.current_time = 5
    assert engine.tick().id == "a"
    assert video.current_time == 10

    assert engine.tick() is None
    clock.advance(0.5)
    assert engine.tick() is None
    assert video.current_time == 10

    clock.advance(0.6)
    assert engine.tick().id == "b"
    assert video.current_time == 20


def test_paused_video_is_left_alone(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 5
    video.paused = True

    assert engine.tick() is None
    assert video.current_time == 5


def test_position_outside_segments_does_nothing(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock)
    engine.reset("X")
    engine.load_segments([make_segment("a", 30, 40)])

    video.current_time = 40
    assert engine.tick() is None
    video.current_time = 29.9
    assert engine.tick() is None


def test_notifications_can_be_disabled(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, show_notifications=False)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 1

    engine.tick()
    assert video.current_time == 10
    assert youtube_host.notifications == []


@pytest.mark.asyncio
async def test_accepting_prompt_skips_immediately(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, auto_skip=False, skip_delay=5)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 1

    engine.tick()
    prompt = youtube_host.prompts[0]
    prompt.skip()

    assert video.current_time == 10
    assert prompt.closed
    assert engine.current_prompt is None
    assert "a" in engine.state.skipped

    video.current_time = 1
    clock.advance(5)
    assert engine.tick() is None
    assert len(youtube_host.prompts) == 1


@pytest.mark.asyncio
async def test_ignored_segment_is_never_prompted_again(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, auto_skip=False)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 1

    engine.tick()
    youtube_host.prompts[0].ignore()

    assert youtube_host.closed_prompts == youtube_host.prompts
    assert engine.tick() is None
    assert len(youtube_host.prompts) == 1
    assert video.current_time == 1


@pytest.mark.asyncio
async def test_prompt_auto_dismisses_and_is_not_repeated(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, auto_skip=False)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 1

    engine.tick()
    await asyncio.sleep(0.1)

    assert engine.current_prompt is None
    assert youtube_host.closed_prompts == youtube_host.prompts
    assert engine.tick() is None
    assert len(youtube_host.prompts) == 1


@pytest.mark.asyncio
async def test_prompt_closes_when_playback_leaves_segment(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, auto_skip=False)
    engine.prompt_timeout = 60
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 1

    engine.tick()
    prompt = engine.current_prompt
    video.current_time = 10
    engine.tick()

    assert prompt.closed
    assert engine.current_prompt is None
    engine.reset()


@pytest.mark.asyncio
async def test_mute_segment_restores_volume_at_end(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, skip_categories={Category.MUSIC_OFFTOPIC})
    engine.reset("X")
    engine.load_segments(
        [make_segment("m", 0, 10, Category.MUSIC_OFFTOPIC, action_type=ActionType.MUTE)]
    )
    video.volume = 0.8
    video.current_time = 2

    engine.tick()
    assert video.volume == 0
    assert video.current_time == 2
    assert youtube_host.notifications[0][0] == "Muted Non-music section"

    await asyncio.sleep(0.03)
    assert video.volume == 0

    video.current_time = 10
    await asyncio.sleep(0.05)
    assert video.volume == 0.8


@pytest.mark.asyncio
async def test_mute_instead_of_skip(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, mute_instead_of_skip=True)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 2

    engine.tick()
    assert video.volume == 0
    assert video.current_time == 2

    engine.reset("Y")
    assert video.volume == 1.0


@pytest.mark.asyncio
async def test_skip_delay_defers_the_seek(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, skip_delay=0.05)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 2

    engine.tick()
    assert video.current_time == 2
    await asyncio.sleep(0.1)
    assert video.current_time == 10


@pytest.mark.asyncio
async def test_reset_cancels_delayed_skip(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, skip_delay=0.05)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 2

    engine.tick()
    engine.reset("Y")
    await asyncio.sleep(0.1)

    assert video.current_time == 2
    assert youtube_host.notifications == []


def test_tick_failure_is_contained(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 2

    def broken():
        raise RuntimeError("player went away")

    original = engine.adapter.get_current_time
    engine.adapter.get_current_time = broken
    with capture_logs() as logs:
        assert engine.safe_tick() is None
    assert [entry["event"] for entry in logs] == ["engine.tick_failed"]

    engine.adapter.get_current_time = original
    assert engine.safe_tick().id == "a"


@pytest.mark.asyncio
async def test_monitoring_loop_survives_failures(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 2

    calls = 0
    original = engine.adapter.get_current_time

    def flaky():
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("transient")
        return original()

    engine.adapter.get_current_time = flaky
    engine.start_monitoring()
    assert engine.monitoring
    await asyncio.sleep(0.1)
    engine.stop_monitoring()

    assert not engine.monitoring
    assert video.current_time == 10


def test_stale_generation_is_dropped(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock)
    old = engine.reset("X")
    engine.reset("Y")

    assert engine.load_segments([make_segment("a", 0, 10)], old) is False
    assert len(engine.store) == 0
    assert engine.load_segments([make_segment("b", 0, 10)], engine.generation) is True
    assert [s.id for s in engine.store] == ["b"]


def test_markers_retry_until_progress_bar_exists(youtube_host, video, clock):
    youtube_host.progress_bar = None
    engine = make_engine(youtube_host, video, clock)
    engine.reset("X")
    engine.load_segments([make_segment("a", 100, 110)])
    assert youtube_host.rendered == []

    youtube_host.progress_bar = "bar"
    video.paused = True
    engine.tick()

    assert len(youtube_host.rendered) == 1
    engine.tick()
    assert len(youtube_host.rendered) == 1


def test_markers_can_be_disabled(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock, show_progress_markers=False)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    assert youtube_host.rendered == []


def test_native_ads_are_skipped_after_community_segments(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock)
    engine.reset("X")
    engine.load_segments([make_segment("community", 35, 50)])
    engine.update_native([NativeAdMarker(start=30, end=60)])
    video.current_time = 40

    assert engine.tick().id == "community"
    assert video.current_time == 50

    clock.advance(2)
    assert engine.tick().id == "native-0"
    assert video.current_time == 60
    assert youtube_host.notifications[-1][0] == "Skipped Ad"


def test_redetected_native_ad_is_skipped_again(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock)
    engine.reset("X")
    engine.update_native([NativeAdMarker(start=10, end=20)])
    video.current_time = 15

    assert engine.tick().id == "native-0"
    assert video.current_time == 20

    clock.advance(2)
    engine.update_native([NativeAdMarker(start=100, end=130)])
    video.current_time = 105

    assert engine.tick().id == "native-0"
    assert video.current_time == 130


def test_community_load_ignores_volatile_segments(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock)
    engine.reset("X")
    engine.load_segments([make_segment("n", 0, 10, is_volatile=True), make_segment("c", 20, 30)])
    assert [s.id for s in engine.store.community] == ["c"]


def test_reset_starts_fresh_state(youtube_host, video, clock):
    engine = make_engine(youtube_host, video, clock)
    engine.reset("X")
    engine.load_segments([make_segment("a", 0, 10)])
    video.current_time = 1
    engine.tick()

    generation = engine.reset("Y")

    assert generation == engine.generation
    assert engine.state.content_id == "Y"
    assert engine.state.skipped == set()
    assert len(engine.store) == 0
