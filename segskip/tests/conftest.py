"""Shared fixtures: a scriptable player host and a manual clock."""

import os

# Set test API key before importing the app or settings
os.environ.setdefault("SEGSKIP_API_KEY", "test-key")

import pytest

from segskip.models.schemas import Category, Segment


class FakeVideo:
    def __init__(self, current_time=0.0, duration=600.0, paused=False, volume=1.0):
        self.current_time = current_time
        self.duration = duration
        self.paused = paused
        self.volume = volume


class FakeHost:
    """Records everything the adapters ask the host to draw."""

    def __init__(self, location, video=None, progress_bar="progress-bar", container="player"):
        self.location = location
        self.video = video
        self.progress_bar = progress_bar
        self.container = container
        self.notifications = []
        self.rendered = []
        self.prompts = []
        self.closed_prompts = []

    def find_video(self):
        return self.video

    def find_progress_bar(self):
        return self.progress_bar

    def find_player_container(self):
        return self.container

    def show_notification(self, container, message, options):
        self.notifications.append((message, options))

    def render_markers(self, progress_bar, style, markers):
        self.rendered.append((style, markers))

    def show_prompt(self, container, prompt):
        self.prompts.append(prompt)

    def close_prompt(self, prompt):
        self.closed_prompts.append(prompt)


class FakeYouTubeHost(FakeHost):
    """Adds ad indicators and change/navigation subscriptions."""

    def __init__(self, location, **kwargs):
        super().__init__(location, **kwargs)
        self.indicators = []
        self.ad_callbacks = []
        self.nav_callbacks = []
        self.detections = 0

    def ad_indicators(self, progress_bar):
        self.detections += 1
        return list(self.indicators)

    def observe_ad_indicators(self, progress_bar, callback):
        self.ad_callbacks.append(callback)
        return lambda: self.ad_callbacks.remove(callback)

    def observe_navigation(self, callback):
        self.nav_callbacks.append(callback)
        return lambda: self.nav_callbacks.remove(callback)

    def navigate(self, location):
        self.location = location
        for callback in list(self.nav_callbacks):
            callback()


class ManualClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_segment(segment_id, start, end, category=Category.SPONSOR, **kwargs):
    return Segment(id=segment_id, start=start, end=end, category=category, **kwargs)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def video():
    return FakeVideo()


@pytest.fixture
def youtube_host(video):
    return FakeYouTubeHost("https://www.youtube.com/watch?v=dQw4w9WgXcQ", video=video)


@pytest.fixture
def bilibili_host(video):
    return FakeHost("https://www.bilibili.com/video/BV1xx411c7mD", video=video)
