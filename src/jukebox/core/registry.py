"""
Per-guild session registry.

The command surface talks to this object only. It creates a playback session
(and its output sink) on the first accepted play request of a guild, routes
every later command to that session and forgets it on leave.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from jukebox.core.downloader import FFmpegTranscoder, YouTubeFetcher
from jukebox.core.interfaces import CommandResult, SessionSnapshot
from jukebox.core.item_store import ItemStore
from jukebox.core.output import OutputSink
from jukebox.core.session import Notifier, PlaybackSession
from jukebox.utils.constants import MESSAGES
from jukebox.utils.exceptions import (
    InvalidCommandState,
    NoActiveSession,
    NotInVoiceChannel,
)

logger = logging.getLogger(__name__)

SinkFactory = Callable[[object], Awaitable[OutputSink]]


class SessionRegistry:
    """
    Owns every live PlaybackSession, keyed by guild id.

    Args:
        config: Bot configuration (download_dir, ffmpeg_path, audio_bitrate, transcode_timeout)
        sink_factory: ``async sink_factory(voice_channel) -> OutputSink``
        fetcher: Source fetcher shared by all sessions (YouTubeFetcher by default)
        transcoder: Transcoder shared by all sessions (FFmpegTranscoder by default)
    """

    def __init__(self, config: dict, sink_factory: SinkFactory, fetcher=None, transcoder=None):
        self.config = config
        self.download_dir = config.get('download_dir', './downloads')
        self.sink_factory = sink_factory
        self.fetcher = fetcher or YouTubeFetcher()
        self.transcoder = transcoder or FFmpegTranscoder(
            ffmpeg_path=config.get('ffmpeg_path', 'ffmpeg'),
            bitrate=config.get('audio_bitrate', '192k'),
            timeout=config.get('transcode_timeout', 600),
        )
        self.sessions: Dict[int, PlaybackSession] = {}
        self._create_lock = asyncio.Lock()

    def purge_stale_artifacts(self) -> int:
        """Delete artifacts left in the download directory by a previous run."""
        return ItemStore(self.download_dir).purge_stale()

    def get(self, guild_id: int) -> Optional[PlaybackSession]:
        session = self.sessions.get(guild_id)
        if session is not None and session.closed:
            self.sessions.pop(guild_id, None)
            return None
        return session

    def _require(self, guild_id: int) -> PlaybackSession:
        session = self.get(guild_id)
        if session is None:
            raise NoActiveSession(MESSAGES['NO_SESSION'], code=CommandResult.NO_SESSION)
        return session

    async def _get_or_create(self, guild_id: int, voice_channel, notifier: Optional[Notifier]) -> PlaybackSession:
        async with self._create_lock:
            session = self.get(guild_id)
            if session is not None:
                return session

            sink = await self.sink_factory(voice_channel)
            session = PlaybackSession(
                guild_id=guild_id,
                sink=sink,
                store=ItemStore(self.download_dir, guild_id),
                fetcher=self.fetcher,
                transcoder=self.transcoder,
                notifier=notifier,
            )
            session.start()
            self.sessions[guild_id] = session
            logger.info(f"Created playback session for guild {guild_id}")
            return session

    async def request_play(self, guild_id: int, locator: str, voice_channel,
                           requester: Optional[str] = None,
                           notifier: Optional[Notifier] = None) -> CommandResult:
        """
        Accept a play request and start its transcode in the background.

        Raises:
            NotInVoiceChannel: If the issuer is not in a voice channel
        """
        if voice_channel is None:
            raise NotInVoiceChannel(MESSAGES['VOICE_CHANNEL_REQUIRED'], code=CommandResult.NOT_IN_VOICE)

        session = await self._get_or_create(guild_id, voice_channel, notifier)
        await session.request_play(locator, requester, notifier=notifier)
        return CommandResult.ACCEPTED

    async def request_pause(self, guild_id: int) -> CommandResult:
        session = self.get(guild_id)
        if session is None:
            raise InvalidCommandState(MESSAGES['NOTHING_TO_PAUSE'], code=CommandResult.NOTHING_TO_PAUSE)
        return await session.request_pause()

    async def request_resume(self, guild_id: int) -> CommandResult:
        session = self.get(guild_id)
        if session is None:
            raise InvalidCommandState(MESSAGES['NOTHING_TO_RESUME'], code=CommandResult.NOTHING_TO_RESUME)
        return await session.request_resume()

    async def request_skip(self, guild_id: int) -> CommandResult:
        session = self.get(guild_id)
        if session is None:
            raise InvalidCommandState(MESSAGES['NOTHING_PLAYING'], code=CommandResult.NOTHING_PLAYING)
        return await session.request_skip()

    async def request_stop(self, guild_id: int) -> CommandResult:
        session = self.get(guild_id)
        if session is None:
            raise InvalidCommandState(MESSAGES['NOTHING_PLAYING'], code=CommandResult.NOTHING_PLAYING)
        return await session.request_stop()

    async def request_leave(self, guild_id: int) -> CommandResult:
        """
        Tear down the guild's session whatever its state.

        Raises:
            NoActiveSession: If the guild has no session
        """
        session = self._require(guild_id)
        try:
            return await session.request_leave()
        finally:
            if self.sessions.get(guild_id) is session:
                del self.sessions[guild_id]

    async def snapshot(self, guild_id: int) -> SessionSnapshot:
        return await self._require(guild_id).snapshot()

    async def shutdown(self) -> None:
        """Leave every session, releasing all artifacts."""
        for guild_id in list(self.sessions):
            try:
                await self.request_leave(guild_id)
            except NoActiveSession:
                pass
            except Exception as e:
                logger.error(f"Error shutting down session for guild {guild_id}: {e}")
        logger.info("All playback sessions closed")
