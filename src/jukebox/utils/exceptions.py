"""
Custom exceptions for the jukebox bot.

Every error the playback core can report at a request boundary derives from
MusicBotException, so the command surface can catch a single type and turn
it into a user-facing reply.
"""

from typing import Optional


class MusicBotException(Exception):
    """
    Base exception for every jukebox error.

    Attributes:
        message (str): Detailed error message
        code: Optional machine-readable code (a CommandResult for command rejections)
    """
    def __init__(self, message: str, code=None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class SourceUnavailable(MusicBotException):
    """
    Raised when a locator cannot be resolved into a media stream.

    Examples:
        >>> raise SourceUnavailable("Video unavailable: https://youtu.be/x")
    """
    def __init__(self, locator: str, detail: Optional[str] = None):
        self.locator = locator
        self.detail = detail
        message = f"Source unavailable: {locator}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class TranscodeError(MusicBotException):
    """Raised when ffmpeg fails to produce an artifact."""
    def __init__(self, message: str, returncode: Optional[int] = None):
        self.returncode = returncode
        super().__init__(message, code=returncode)


class InvalidCommandState(MusicBotException):
    """
    Raised when a control command does not apply to the current player state.

    The code carries the CommandResult to report (NOTHING_TO_PAUSE, ...).
    """
    pass


class NotInVoiceChannel(MusicBotException):
    """Raised when the command issuer is not connected to a voice channel."""
    pass


class NoActiveSession(MusicBotException):
    """Raised when a command needs a playback session and none exists."""
    pass


class QueueEmpty(MusicBotException):
    """Raised by PlayQueue.pop_front when there is nothing left to play."""
    pass
