"""
Background download + transcode work for one session.

The pipeline never touches playback state: every finished job is reported
through the emit callback, which the session turns into an event on its own
queue.
"""

import asyncio
import itertools
import logging
from functools import partial
from typing import Callable, Dict, Optional

from jukebox.core.interfaces import PlayableHandle, QueueItem, SessionEvent
from jukebox.core.item_store import ItemStore
from jukebox.utils.exceptions import MusicBotException, TranscodeError

logger = logging.getLogger(__name__)


class TranscodePipeline:
    """
    Runs one background task per submitted locator.

    Attributes:
        store (ItemStore): Allocates and releases artifacts
        fetcher: Object with ``async open(locator) -> SourceStream``
        transcoder: Object with ``async transcode(stream, destination)``
        emit (Callable): ``emit(event, payload)`` called on completion
    """

    def __init__(self, store: ItemStore, fetcher, transcoder,
                 emit: Callable[[SessionEvent, object], None]):
        self.store = store
        self.fetcher = fetcher
        self.transcoder = transcoder
        self.emit = emit
        self._ids = itertools.count(1)
        self._tasks: Dict[int, asyncio.Task] = {}

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, locator: str, requester: Optional[str] = None) -> QueueItem:
        """
        Start fetching and transcoding a locator.

        Returns immediately; the artifact path is assigned before any work
        starts and travels with the returned item.
        """
        item = QueueItem(
            item_id=next(self._ids),
            source_locator=locator,
            artifact_path=self.store.allocate(),
            requester=requester,
        )
        task = asyncio.create_task(self._run(item), name=f"transcode-{item.item_id}")
        self._tasks[item.item_id] = task
        task.add_done_callback(partial(self._finished, item))
        logger.info(f"Submitted {locator} as item {item.item_id} -> {item.artifact_path}")
        return item

    async def _run(self, item: QueueItem) -> None:
        try:
            stream = await self.fetcher.open(item.source_locator)
            item.title = stream.title
            await self.transcoder.transcode(stream, item.artifact_path)
        except MusicBotException as e:
            logger.warning(f"Transcode failed for {item.source_locator}: {e}")
            self.store.release(item.artifact_path, missing_ok=True)
            self.emit(SessionEvent.TRANSCODE_FAILED, (item, e))
            return
        except Exception as e:
            logger.error(f"Unexpected transcode error for {item.source_locator}: {e}", exc_info=True)
            self.store.release(item.artifact_path, missing_ok=True)
            self.emit(SessionEvent.TRANSCODE_FAILED, (item, TranscodeError(str(e))))
            return

        item.playable_handle = PlayableHandle(
            path=item.artifact_path,
            title=stream.title,
            duration=stream.duration,
        )
        self.emit(SessionEvent.TRANSCODE_READY, item)

    def _finished(self, item: QueueItem, task: asyncio.Task) -> None:
        self._tasks.pop(item.item_id, None)
        if task.cancelled():
            # Cancelled jobs never emit; the transcoder already removed any partial file
            logger.info(f"Transcode cancelled for item {item.item_id}")
            if self.store.is_live(item.artifact_path):
                self.store.release(item.artifact_path, missing_ok=True)

    def cancel(self, item_id: int) -> bool:
        task = self._tasks.get(item_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every in-flight job. Returns how many were cancelled."""
        cancelled = 0
        for item_id in list(self._tasks):
            if self.cancel(item_id):
                cancelled += 1
        if cancelled:
            logger.info(f"Cancelled {cancelled} in-flight transcodes")
        return cancelled

    async def drain(self) -> None:
        """Wait until every in-flight job has finished or been cancelled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
