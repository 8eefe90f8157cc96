"""
Output sinks: the one audio channel a playback session feeds.

The session only needs bind/pause/resume/stop/disconnect plus a single
end-of-track subscription. DiscordOutputSink adapts a discord.VoiceClient to
that contract.
"""

import asyncio
import logging
from typing import Callable, Optional

import discord

from jukebox.core.interfaces import PlayableHandle
from jukebox.utils.constants import FFMPEG_PLAYBACK_OPTIONS

logger = logging.getLogger(__name__)

# callback(token, error) fired once per bound track, on the event loop
TrackEndCallback = Callable[[int, Optional[Exception]], None]


class OutputSink:
    """Interface every output sink implements."""

    def subscribe(self, callback: TrackEndCallback) -> None:
        raise NotImplementedError

    def bind(self, handle: PlayableHandle, token: int) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def resume(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    async def disconnect(self) -> None:
        raise NotImplementedError


class DiscordOutputSink(OutputSink):
    """
    Plays finished artifacts through a discord.py voice client.

    discord.py runs the ``after`` hook on its audio thread, so end-of-track
    notifications are handed back to the event loop with
    ``call_soon_threadsafe``. Each notification carries the token of the
    track it belongs to, letting the session discard stale ones.
    """

    def __init__(self, voice_client: discord.VoiceClient, ffmpeg_path: str = 'ffmpeg',
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        self.voice_client = voice_client
        self.ffmpeg_path = ffmpeg_path
        self.loop = loop or asyncio.get_running_loop()
        self._callback: Optional[TrackEndCallback] = None

    def subscribe(self, callback: TrackEndCallback) -> None:
        if self._callback is not None:
            raise RuntimeError("Output sink already has a subscriber")
        self._callback = callback

    def bind(self, handle: PlayableHandle, token: int) -> None:
        """
        Start playing a finished artifact.

        Raises:
            discord.ClientException: If the voice client is not connected or
            already playing
        """
        if not self.voice_client.is_connected():
            raise discord.ClientException("Not connected to voice.")

        source = discord.FFmpegPCMAudio(
            handle.path,
            executable=self.ffmpeg_path,
            **FFMPEG_PLAYBACK_OPTIONS
        )

        def after_playing(error: Optional[Exception]) -> None:
            if error:
                logger.error(f"Playback error on token {token}: {error}")
            if self._callback is not None:
                self.loop.call_soon_threadsafe(self._callback, token, error)

        self.voice_client.play(source, after=after_playing)
        logger.info(f"Now playing: {handle.title}")

    def pause(self) -> None:
        if self.voice_client.is_playing():
            self.voice_client.pause()

    def resume(self) -> None:
        if self.voice_client.is_paused():
            self.voice_client.resume()

    def stop(self) -> None:
        self.voice_client.stop()

    async def disconnect(self) -> None:
        self.voice_client.stop()
        if self.voice_client.is_connected():
            await self.voice_client.disconnect()
        self._callback = None
