"""
Interfaces and data structures for inter-component communication
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class PlayerState(Enum):
    EMPTY = "empty"
    PLAYING = "playing"
    PAUSED = "paused"


class SessionEvent(Enum):
    # Background notifications
    TRANSCODE_READY = "transcode_ready"
    TRANSCODE_FAILED = "transcode_failed"
    TRACK_ENDED = "track_ended"
    # Control commands
    PLAY = "play"
    PAUSE = "pause"
    RESUME = "resume"
    SKIP = "skip"
    STOP = "stop"
    LEAVE = "leave"
    SNAPSHOT = "snapshot"


class PlayerEvent(Enum):
    """Events reported to the command surface through the session notifier."""
    SONG_STARTED = "song_started"
    SONG_FAILED = "song_failed"
    QUEUE_EMPTY = "queue_empty"


class CommandResult(Enum):
    ACCEPTED = "accepted"
    OK = "ok"
    NOT_IN_VOICE = "not_in_voice"
    NOTHING_TO_PAUSE = "nothing_to_pause"
    NOTHING_TO_RESUME = "nothing_to_resume"
    NOTHING_PLAYING = "nothing_playing"
    NO_SESSION = "no_session"


@dataclass(frozen=True)
class SourceStream:
    """A resolved remote media stream, ready to be fed to the transcoder."""
    locator: str
    stream_url: str
    title: str = "Unknown"
    duration: int = 0
    http_headers: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class PlayableHandle:
    """A finished artifact the output sink can open for playback."""
    path: str
    title: str = "Unknown"
    duration: int = 0


@dataclass(eq=False)
class QueueItem:
    item_id: int
    source_locator: str
    artifact_path: str
    requester: Optional[str] = None
    title: Optional[str] = None
    playable_handle: Optional[PlayableHandle] = None

    @property
    def display_title(self) -> str:
        return self.title or self.source_locator


@dataclass(frozen=True)
class SessionSnapshot:
    state: PlayerState
    current: Optional[QueueItem] = None
    queued: Tuple[QueueItem, ...] = field(default_factory=tuple)
    pending: int = 0
