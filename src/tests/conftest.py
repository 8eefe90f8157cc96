"""
Shared fakes for the playback tests.

The fakes stand in for yt-dlp, ffmpeg and the Discord voice client so the
session state machine can be driven deterministically on the test loop.
"""

import asyncio
import os

import pytest

from jukebox.core.interfaces import SourceStream
from jukebox.core.item_store import ItemStore
from jukebox.core.session import PlaybackSession
from jukebox.utils.exceptions import SourceUnavailable, TranscodeError


class FakeFetcher:
    """Resolves every locator except those starting with 'bad:'."""

    def __init__(self):
        self.opened = []

    async def open(self, locator):
        await asyncio.sleep(0)
        self.opened.append(locator)
        if locator.startswith("bad:"):
            raise SourceUnavailable(locator, "video unavailable")
        return SourceStream(
            locator=locator,
            stream_url=f"https://cdn.example/{locator}",
            title=f"Title {locator}",
            duration=180,
        )


class FakeTranscoder:
    """
    Writes a small file at the destination.

    Locators listed in ``gates`` wait for their asyncio.Event first; those in
    ``failing`` raise TranscodeError without writing anything.
    """

    def __init__(self):
        self.gates = {}
        self.failing = set()

    def gate(self, locator):
        event = asyncio.Event()
        self.gates[locator] = event
        return event

    async def transcode(self, stream, destination):
        gate = self.gates.get(stream.locator)
        if gate is not None:
            await gate.wait()
        if stream.locator in self.failing:
            raise TranscodeError(f"ffmpeg exited with code 1: {stream.locator}", returncode=1)
        with open(destination, "wb") as f:
            f.write(b"ID3fake")


class FakeSink:
    """
    Output sink that mimics discord.py: stopping a track fires its end hook.
    """

    def __init__(self):
        self.callback = None
        self.binds = []
        self.token = None
        self.paused = False
        self.stops = 0
        self.disconnected = False
        self.fail_binds = 0

    def subscribe(self, callback):
        assert self.callback is None, "subscribed twice"
        self.callback = callback

    def bind(self, handle, token):
        assert handle is not None and os.path.exists(handle.path)
        if self.fail_binds:
            self.fail_binds -= 1
            raise RuntimeError("Not connected to voice.")
        assert self.token is None, "bound while another track is playing"
        self.binds.append((handle, token))
        self.token = token
        self.paused = False

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def stop(self):
        self.stops += 1
        token, self.token = self.token, None
        if token is not None:
            self.callback(token, None)

    def finish(self, token=None):
        """Simulate the current track reaching its natural end."""
        if token is None:
            token, self.token = self.token, None
        elif token == self.token:
            self.token = None
        self.callback(token, None)

    async def disconnect(self):
        self.stop()
        self.disconnected = True


class RecordingStore(ItemStore):
    """ItemStore that remembers every successful release."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.released = []

    def release(self, path, missing_ok=False):
        released = super().release(path, missing_ok=missing_ok)
        if released:
            self.released.append(path)
        return released


class RecordingNotifier:
    def __init__(self):
        self.events = []

    async def __call__(self, event, item, detail):
        self.events.append((event, item.source_locator if item else None, detail))


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def transcoder():
    return FakeTranscoder()


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def store(tmp_path):
    return RecordingStore(str(tmp_path / "downloads"), guild_id=1)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_session(sink, store, fetcher, transcoder, notifier):
    """Factory: must be called from inside the running test loop."""
    def _make():
        session = PlaybackSession(1, sink, store, fetcher, transcoder, notifier=notifier)
        session.start()
        return session
    return _make


async def settle(session):
    """Wait for every in-flight transcode, then read the session state."""
    await session.pipeline.drain()
    snapshot = await session.snapshot()
    await asyncio.sleep(0)
    return snapshot


def locators(items):
    return [item.source_locator for item in items]
