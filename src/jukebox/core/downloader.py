"""
Source fetching and transcoding.

YouTubeFetcher resolves a locator into a direct media stream with yt-dlp.
FFmpegTranscoder turns that stream into an MP3 artifact on disk. Both are
async and keep blocking work off the event loop.
"""

import asyncio
import logging
import os
from functools import partial
from typing import Dict, Optional

import async_timeout
import yt_dlp

from jukebox.core.interfaces import SourceStream
from jukebox.utils.constants import (
    YTDL_OPTIONS,
    FFMPEG_INPUT_OPTIONS,
    FFMPEG_OUTPUT_OPTIONS,
    PARTIAL_SUFFIX,
)
from jukebox.utils.exceptions import SourceUnavailable, TranscodeError

logger = logging.getLogger(__name__)


class YouTubeFetcher:
    """Resolves remote locators with yt-dlp."""

    def __init__(self, ytdl_options: Optional[Dict] = None):
        self.ydl_opts = {**YTDL_OPTIONS, **(ytdl_options or {})}

    def _extract(self, locator: str) -> Optional[Dict]:
        with yt_dlp.YoutubeDL(self.ydl_opts) as ydl:
            return ydl.extract_info(locator, download=False)

    async def open(self, locator: str) -> SourceStream:
        """
        Resolve a locator into a direct audio stream.

        Args:
            locator: URL (or search query) of the remote source

        Returns:
            SourceStream: Direct stream URL plus metadata

        Raises:
            SourceUnavailable: If yt-dlp cannot resolve the locator
        """
        logger.info(f"Extracting info for: {locator}")
        loop = asyncio.get_running_loop()
        try:
            info = await loop.run_in_executor(None, partial(self._extract, locator))
        except yt_dlp.utils.DownloadError as e:
            logger.warning(f"yt-dlp could not resolve {locator}: {e}")
            raise SourceUnavailable(locator, str(e)) from e
        except Exception as e:
            logger.error(f"Error extracting info for {locator}: {e}", exc_info=True)
            raise SourceUnavailable(locator, str(e)) from e

        if info and 'entries' in info:
            # Search results; take the first hit
            entries = [e for e in info.get('entries') or [] if e]
            info = entries[0] if entries else None

        if not info:
            raise SourceUnavailable(locator, "no information returned")

        stream_url = self._best_audio_url(info)
        if not stream_url:
            raise SourceUnavailable(locator, "no audio stream found")

        headers = info.get('http_headers') or {}
        stream = SourceStream(
            locator=locator,
            stream_url=stream_url,
            title=info.get('title') or 'Unknown',
            duration=int(info.get('duration') or 0),
            http_headers=tuple(sorted(headers.items())),
        )
        logger.info(f"Resolved stream for: {stream.title}")
        return stream

    @staticmethod
    def _best_audio_url(info: Dict) -> Optional[str]:
        formats = info.get('formats') or []
        audio_formats = [
            f for f in formats
            if f.get('acodec') not in (None, 'none') and f.get('vcodec') in (None, 'none') and f.get('url')
        ]
        if audio_formats:
            best_audio = max(audio_formats, key=lambda f: f.get('abr', 0) or 0)
            return best_audio['url']
        return info.get('url')


class FFmpegTranscoder:
    """
    Transcodes a source stream into an MP3 file with an ffmpeg subprocess.

    Output goes to "<destination>.part" and is renamed into place only when
    ffmpeg exits cleanly, so the destination is either complete or absent.
    """

    def __init__(self, ffmpeg_path: str = 'ffmpeg', bitrate: str = '192k', timeout: float = 600):
        self.ffmpeg_path = ffmpeg_path
        self.bitrate = bitrate
        self.timeout = timeout

    def build_command(self, stream: SourceStream, partial_path: str) -> list:
        args = [self.ffmpeg_path, '-nostdin', '-hide_banner', '-loglevel', 'error', '-y']
        args += FFMPEG_INPUT_OPTIONS
        if stream.http_headers:
            header_block = ''.join(f"{key}: {value}\r\n" for key, value in stream.http_headers)
            args += ['-headers', header_block]
        args += ['-i', stream.stream_url]
        args += FFMPEG_OUTPUT_OPTIONS
        args += ['-b:a', self.bitrate, partial_path]
        return args

    async def transcode(self, stream: SourceStream, destination: str) -> None:
        """
        Transcode a stream into destination.

        Raises:
            TranscodeError: If ffmpeg is missing, fails, or times out
        """
        partial_path = destination + PARTIAL_SUFFIX
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.build_command(stream, partial_path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise TranscodeError(f"ffmpeg executable not found: {self.ffmpeg_path}") from e

        try:
            async with async_timeout.timeout(self.timeout):
                _, err = await proc.communicate()
        except asyncio.TimeoutError as e:
            await self._kill(proc)
            self._remove_partial(partial_path)
            raise TranscodeError(f"Transcode timed out after {self.timeout}s: {stream.locator}") from e
        except asyncio.CancelledError:
            await self._kill(proc)
            self._remove_partial(partial_path)
            raise

        if proc.returncode != 0:
            self._remove_partial(partial_path)
            detail = err.decode(errors='replace').strip() if err else ''
            raise TranscodeError(
                f"ffmpeg exited with code {proc.returncode}: {detail or 'no output'}",
                returncode=proc.returncode,
            )

        try:
            os.replace(partial_path, destination)
        except OSError as e:
            self._remove_partial(partial_path)
            raise TranscodeError(f"Could not finalize artifact {destination}: {e}") from e
        logger.info(f"Transcoded {stream.title} -> {destination}")

    @staticmethod
    async def _kill(proc) -> None:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()

    @staticmethod
    def _remove_partial(partial_path: str) -> None:
        try:
            os.remove(partial_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Error removing partial artifact {partial_path}: {e}")
