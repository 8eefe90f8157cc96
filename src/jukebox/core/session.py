"""
Playback session: the queue/playback state machine of one guild.

All state lives here and is only touched by a single consumer task that
processes events one at a time from an asyncio.Queue. Control commands,
transcode completions and end-of-track notifications are all events, so
their ordering is structural: no handler ever runs concurrently with another.
"""

import asyncio
import inspect
import logging
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, Optional, Set

from jukebox.core.interfaces import (
    CommandResult,
    PlayerEvent,
    PlayerState,
    QueueItem,
    SessionEvent,
    SessionSnapshot,
)
from jukebox.core.item_store import ItemStore
from jukebox.core.output import OutputSink
from jukebox.core.pipeline import TranscodePipeline
from jukebox.core.queue_manager import PlayQueue
from jukebox.utils.constants import MESSAGES
from jukebox.utils.exceptions import InvalidCommandState, MusicBotException, NoActiveSession

logger = logging.getLogger(__name__)

Notifier = Callable[[PlayerEvent, Optional[QueueItem], Optional[str]], Awaitable[None]]


class PlaybackSession:
    """
    Owns the output sink, play queue and player state of one guild.

    Attributes:
        guild_id (int): Guild this session plays for
        sink (OutputSink): The single audio output, subscribed once
        store (ItemStore): Owner of every artifact this session creates
        queue (PlayQueue): Ready items waiting to play
        pipeline (TranscodePipeline): Background fetch + transcode jobs
        state (PlayerState): EMPTY, PLAYING or PAUSED
        current (QueueItem): Item bound to the sink, None when EMPTY
    """

    def __init__(self, guild_id: int, sink: OutputSink, store: ItemStore, fetcher, transcoder,
                 notifier: Optional[Notifier] = None):
        self.guild_id = guild_id
        self.sink = sink
        self.store = store
        self.queue = PlayQueue(guild_id)
        self.pipeline = TranscodePipeline(store, fetcher, transcoder, emit=self._post)
        self.notifier = notifier

        self.state = PlayerState.EMPTY
        self.current: Optional[QueueItem] = None

        # Submitted but not yet admitted, in submission order
        self._pending: "OrderedDict[int, QueueItem]" = OrderedDict()
        self._ready: Set[int] = set()

        self._events: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._notify_tasks: Set[asyncio.Task] = set()
        self._closed = False
        self._setup_event_handlers()

        self.sink.subscribe(self._on_sink_track_end)

    def _setup_event_handlers(self):
        self._event_handlers: Dict[SessionEvent, Callable] = {
            SessionEvent.TRANSCODE_READY: self._handle_ready,
            SessionEvent.TRANSCODE_FAILED: self._handle_failed,
            SessionEvent.TRACK_ENDED: self._handle_track_ended,
            SessionEvent.PLAY: self._handle_play,
            SessionEvent.PAUSE: self._handle_pause,
            SessionEvent.RESUME: self._handle_resume,
            SessionEvent.SKIP: self._handle_skip,
            SessionEvent.STOP: self._handle_stop,
            SessionEvent.LEAVE: self._handle_leave,
            SessionEvent.SNAPSHOT: self._handle_snapshot,
        }

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the event processing task."""
        if self._worker is None:
            self._worker = asyncio.create_task(self._event_loop(), name=f"session-{self.guild_id}")

    # Command surface

    async def request_play(self, locator: str, requester: Optional[str] = None,
                           notifier: Optional[Notifier] = None) -> QueueItem:
        return await self._call(SessionEvent.PLAY, (locator, requester, notifier))

    async def request_pause(self) -> CommandResult:
        return await self._call(SessionEvent.PAUSE)

    async def request_resume(self) -> CommandResult:
        return await self._call(SessionEvent.RESUME)

    async def request_skip(self) -> CommandResult:
        return await self._call(SessionEvent.SKIP)

    async def request_stop(self) -> CommandResult:
        return await self._call(SessionEvent.STOP)

    async def request_leave(self) -> CommandResult:
        return await self._call(SessionEvent.LEAVE)

    async def snapshot(self) -> SessionSnapshot:
        return await self._call(SessionEvent.SNAPSHOT)

    # Event plumbing

    def _post(self, event: SessionEvent, payload=None, future: Optional[asyncio.Future] = None) -> None:
        if self._closed:
            self._reject(event, payload, future)
            return
        self._events.put_nowait((event, payload, future))

    async def _call(self, event: SessionEvent, payload=None):
        future = asyncio.get_running_loop().create_future()
        self._post(event, payload, future)
        return await future

    def _reject(self, event: SessionEvent, payload, future: Optional[asyncio.Future]) -> None:
        """Dispose of an event that arrived after the session closed."""
        if event is SessionEvent.TRANSCODE_READY:
            self._discard(payload)
        if future is not None and not future.done():
            future.set_exception(NoActiveSession(MESSAGES['NO_SESSION'], code=CommandResult.NO_SESSION))

    def _on_sink_track_end(self, token: int, error: Optional[Exception] = None) -> None:
        # Single subscription; the token tells which track the sink finished
        self._post(SessionEvent.TRACK_ENDED, token)

    async def _event_loop(self):
        """Main event handling loop"""
        while True:
            event, payload, future = await self._events.get()
            handler = self._event_handlers[event]
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    result = await result
            except MusicBotException as e:
                if future is not None and not future.done():
                    future.set_exception(e)
                else:
                    logger.warning(f"[SESSION {self.guild_id}] {event.value} rejected: {e}")
            except Exception as e:
                logger.error(f"[SESSION {self.guild_id}] Error handling {event.value}: {e}", exc_info=True)
                if future is not None and not future.done():
                    future.set_exception(e)
            else:
                if future is not None and not future.done():
                    future.set_result(result)

            if event is SessionEvent.LEAVE and self._closed:
                break

        # Anything queued behind the leave is answered as "no session"
        while not self._events.empty():
            event, payload, future = self._events.get_nowait()
            self._reject(event, payload, future)

    # Handlers

    def _handle_play(self, payload) -> QueueItem:
        locator, requester, notifier = payload
        if notifier is not None:
            # Playback messages follow the channel of the latest request
            self.notifier = notifier
        item = self.pipeline.submit(locator, requester)
        self._pending[item.item_id] = item
        return item

    def _handle_ready(self, item: QueueItem) -> None:
        if item.item_id not in self._pending:
            # Finished after stop/leave dropped it
            logger.info(f"[SESSION {self.guild_id}] Dropping late artifact for item {item.item_id}")
            self._discard(item)
            return
        self._ready.add(item.item_id)
        self._admit_ready()

    def _handle_failed(self, payload) -> None:
        item, error = payload
        if self._pending.pop(item.item_id, None) is None:
            return
        self._ready.discard(item.item_id)
        self._notify(PlayerEvent.SONG_FAILED, item, str(error))
        self._admit_ready()

    def _handle_track_ended(self, token: int) -> None:
        if self.current is None or self.current.item_id != token:
            logger.debug(f"[SESSION {self.guild_id}] Ignoring stale track end for token {token}")
            return
        logger.info(f"[SESSION {self.guild_id}] Finished {self.current.display_title}")
        self._finish_current()
        self._advance()

    def _handle_pause(self, _payload=None) -> CommandResult:
        if self.state is not PlayerState.PLAYING:
            raise InvalidCommandState(MESSAGES['NOTHING_TO_PAUSE'], code=CommandResult.NOTHING_TO_PAUSE)
        self.sink.pause()
        self.state = PlayerState.PAUSED
        return CommandResult.OK

    def _handle_resume(self, _payload=None) -> CommandResult:
        if self.state is not PlayerState.PAUSED:
            raise InvalidCommandState(MESSAGES['NOTHING_TO_RESUME'], code=CommandResult.NOTHING_TO_RESUME)
        self.sink.resume()
        self.state = PlayerState.PLAYING
        return CommandResult.OK

    def _handle_skip(self, _payload=None) -> CommandResult:
        if self.current is None:
            raise InvalidCommandState(MESSAGES['NOTHING_PLAYING'], code=CommandResult.NOTHING_PLAYING)
        logger.info(f"[SESSION {self.guild_id}] Skipping {self.current.display_title}")
        self._halt_current()
        self._advance()
        return CommandResult.OK

    def _handle_stop(self, _payload=None) -> CommandResult:
        if self.current is None:
            raise InvalidCommandState(MESSAGES['NOTHING_PLAYING'], code=CommandResult.NOTHING_PLAYING)
        logger.info(f"[SESSION {self.guild_id}] Stopping playback and clearing queue")
        self._halt_current()
        self._clear_backlog()
        return CommandResult.OK

    async def _handle_leave(self, _payload=None) -> CommandResult:
        logger.info(f"[SESSION {self.guild_id}] Leaving")
        self._closed = True
        self.pipeline.cancel_all()
        await self.pipeline.drain()

        try:
            if self.current is not None:
                self._halt_current()
            else:
                self.sink.stop()
        except Exception as e:
            logger.error(f"[SESSION {self.guild_id}] Error stopping output: {e}")
        finally:
            self._clear_backlog()
            leftovers = self.store.release_all()
            if leftovers:
                logger.info(f"[SESSION {self.guild_id}] Released {leftovers} leftover artifacts")
            await self._cancel_notifications()

        try:
            await self.sink.disconnect()
        except Exception as e:
            logger.error(f"[SESSION {self.guild_id}] Error disconnecting output: {e}")
        return CommandResult.OK

    def _handle_snapshot(self, _payload=None) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            current=self.current,
            queued=tuple(self.queue.snapshot()),
            pending=len(self._pending),
        )

    # State transitions

    def _admit_ready(self) -> None:
        """Admit ready items from the head of the pending list, keeping submission order."""
        while self._pending:
            item_id, item = next(iter(self._pending.items()))
            if item_id not in self._ready:
                return
            del self._pending[item_id]
            self._ready.discard(item_id)
            if self.state is PlayerState.EMPTY:
                self._start(item)
            else:
                self.queue.append(item)

    def _start(self, item: QueueItem) -> bool:
        """Bind an item to the sink. On failure the item is discarded and state is unchanged."""
        try:
            self.sink.bind(item.playable_handle, item.item_id)
        except Exception as e:
            logger.error(f"[SESSION {self.guild_id}] Could not play {item.display_title}: {e}")
            self._discard(item)
            self._notify(PlayerEvent.SONG_FAILED, item, str(e))
            return False

        self.current = item
        self.state = PlayerState.PLAYING
        self._notify(PlayerEvent.SONG_STARTED, item)
        return True

    def _advance(self) -> None:
        """Play the next queued item, or go EMPTY when none is left."""
        self.current = None
        self.state = PlayerState.EMPTY
        while len(self.queue):
            if self._start(self.queue.pop_front()):
                return
        logger.info(f"[SESSION {self.guild_id}] Queue finished")
        self._notify(PlayerEvent.QUEUE_EMPTY)

    def _finish_current(self) -> None:
        item = self.current
        self.current = None
        self.state = PlayerState.EMPTY
        self._discard(item)

    def _halt_current(self) -> None:
        # Clear current before stopping so the sink's own end notification is stale
        item = self.current
        self.current = None
        self.state = PlayerState.EMPTY
        try:
            self.sink.stop()
        finally:
            self._discard(item)

    def _clear_backlog(self) -> None:
        """Drop every queued and pending item and reclaim their artifacts."""
        for item in self.queue.drain():
            self._discard(item)
        self.pipeline.cancel_all()
        for item_id, item in self._pending.items():
            # Unfinished jobs clean up after themselves once cancelled
            if item_id in self._ready:
                self._discard(item)
        self._pending.clear()
        self._ready.clear()

    def _discard(self, item: Optional[QueueItem]) -> None:
        if item is None:
            return
        if self.store.is_live(item.artifact_path):
            self.store.release(item.artifact_path)
        item.playable_handle = None

    def _notify(self, event: PlayerEvent, item: Optional[QueueItem] = None, detail: Optional[str] = None) -> None:
        if self.notifier is None:
            return
        task = asyncio.create_task(self._safe_notify(event, item, detail))
        self._notify_tasks.add(task)
        task.add_done_callback(self._notify_tasks.discard)

    async def _cancel_notifications(self) -> None:
        pending = [task for task in self._notify_tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._notify_tasks.clear()

    async def _safe_notify(self, event: PlayerEvent, item: Optional[QueueItem], detail: Optional[str]) -> None:
        try:
            await self.notifier(event, item, detail)
        except Exception as e:
            logger.error(f"[SESSION {self.guild_id}] Notifier failed for {event.value}: {e}")
