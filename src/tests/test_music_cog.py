import types

import pytest

from jukebox.cogs.music import Music
from jukebox.core.interfaces import PlayerEvent, QueueItem
from jukebox.core.registry import SessionRegistry
from jukebox.utils.constants import MESSAGES

from conftest import FakeSink, settle


class FakeChannel:
    def __init__(self):
        self.sent = []

    async def send(self, content=None, embed=None, **kwargs):
        self.sent.append((content, embed))


class FakeContext:
    def __init__(self, in_voice=True, guild_id=1):
        self.channel = FakeChannel()
        self.guild = types.SimpleNamespace(id=guild_id, voice_client=None)
        voice = types.SimpleNamespace(channel=types.SimpleNamespace(id=99)) if in_voice else None
        self.author = types.SimpleNamespace(display_name="Tester", voice=voice)
        self.replies = []

    async def reply(self, content=None, **kwargs):
        self.replies.append(content)

    async def send(self, content=None, embed=None, **kwargs):
        self.channel.sent.append((content, embed))

    @property
    def embeds(self):
        return [embed for _, embed in self.channel.sent if embed is not None]


@pytest.fixture
def music(tmp_path, fetcher, transcoder):
    async def sink_factory(voice_channel):
        return FakeSink()

    registry = SessionRegistry({'download_dir': str(tmp_path)}, sink_factory=sink_factory,
                               fetcher=fetcher, transcoder=transcoder)
    bot = types.SimpleNamespace(sessions=registry)
    return Music(bot)


@pytest.mark.asyncio
async def test_play_requires_a_link(music):
    ctx = FakeContext()

    await Music.play.callback(music, ctx, locator=None)

    assert ctx.replies == [MESSAGES['LINK_REQUIRED']]
    assert music.sessions.get(1) is None


@pytest.mark.asyncio
async def test_play_requires_voice_channel(music):
    ctx = FakeContext(in_voice=False)

    await Music.play.callback(music, ctx, locator="https://youtu.be/abc")

    assert ctx.replies == [MESSAGES['VOICE_CHANNEL_REQUIRED']]
    assert music.sessions.get(1) is None


@pytest.mark.asyncio
async def test_play_accepts_and_reports_now_playing(music):
    ctx = FakeContext()

    await Music.play.callback(music, ctx, locator="https://youtu.be/abc")
    await settle(music.sessions.get(1))

    descriptions = [embed.description for embed in ctx.embeds]
    assert MESSAGES['SONG_ACCEPTED'].format(locator="https://youtu.be/abc") in descriptions
    assert any("Now playing" in d and "Title https://youtu.be/abc" in d for d in descriptions)
    await music.sessions.shutdown()


@pytest.mark.asyncio
async def test_pause_without_playback_warns(music):
    ctx = FakeContext()

    await Music.pause.callback(music, ctx)

    assert len(ctx.embeds) == 1
    assert ctx.embeds[0].title.startswith("⚠️")
    assert ctx.embeds[0].description == MESSAGES['NOTHING_TO_PAUSE']


@pytest.mark.asyncio
async def test_pause_then_resume(music):
    ctx = FakeContext()
    await Music.play.callback(music, ctx, locator="A")
    await settle(music.sessions.get(1))

    await Music.pause.callback(music, ctx)
    await Music.pause.callback(music, ctx)
    await Music.resume.callback(music, ctx)

    descriptions = [embed.description for embed in ctx.embeds]
    assert MESSAGES['PAUSED'] in descriptions
    assert MESSAGES['NOTHING_TO_PAUSE'] in descriptions
    assert MESSAGES['RESUMED'] in descriptions
    await music.sessions.shutdown()


@pytest.mark.asyncio
async def test_leave_without_session(music):
    ctx = FakeContext()

    await Music.leave.callback(music, ctx)

    assert ctx.replies == []
    assert ctx.embeds[0].description == MESSAGES['NO_SESSION']


@pytest.mark.asyncio
async def test_queue_lists_current_and_upcoming(music):
    ctx = FakeContext()
    for locator in ("A", "B", "C"):
        await Music.play.callback(music, ctx, locator=locator)
    await settle(music.sessions.get(1))

    await Music.queue.callback(music, ctx)

    embed = ctx.embeds[-1]
    assert embed.title == MESSAGES['QUEUE_TITLE']
    assert "Title A" in embed.description
    assert "**1.** Title B" in embed.description
    assert "**2.** Title C" in embed.description
    await music.sessions.shutdown()


@pytest.mark.asyncio
async def test_notifier_reports_failures(music):
    channel = FakeChannel()
    notify = music._notifier_for(channel)
    item = QueueItem(item_id=1, source_locator="bad:x", artifact_path="/tmp/x.mp3")

    await notify(PlayerEvent.SONG_FAILED, item, "video unavailable")

    _, embed = channel.sent[0]
    assert embed.description == MESSAGES['LOAD_FAILED'].format(locator="bad:x", detail="video unavailable")
