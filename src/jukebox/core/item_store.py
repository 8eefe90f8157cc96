"""
Lifecycle management for transcoded audio artifacts.

Every artifact is allocated here before its transcode starts and released
here exactly once, whichever terminal transition (natural end, skip, stop,
leave, failed transcode) reaches it first.
"""

import itertools
import logging
import os
import time
from typing import Dict, List, Optional

from jukebox.utils.constants import ARTIFACT_PREFIX, ARTIFACT_SUFFIX, PARTIAL_SUFFIX

logger = logging.getLogger(__name__)

# Shared by every store so names stay unique across sessions in one process
_sequence = itertools.count(1)


class ItemStore:
    """
    Tracks the temporary artifacts of one playback session.

    Attributes:
        download_dir (str): Directory holding the artifacts
        guild_id (int): Owner of the artifacts, part of every file name (None for
            a store that only purges the whole directory)
    """

    def __init__(self, download_dir: str, guild_id: Optional[int] = None):
        self.download_dir = download_dir
        self.guild_id = guild_id
        self._prefix = ARTIFACT_PREFIX if guild_id is None else f"{ARTIFACT_PREFIX}{guild_id}_"
        self._live: Dict[str, float] = {}
        os.makedirs(self.download_dir, exist_ok=True)

    def allocate(self) -> str:
        """
        Reserve a new unique artifact path.

        The name combines a millisecond timestamp with a process-wide counter,
        so two allocations can never collide.
        """
        timestamp = int(time.time() * 1000)
        name = f"{self._prefix}{timestamp}_{next(_sequence)}{ARTIFACT_SUFFIX}"
        path = os.path.join(self.download_dir, name)
        self._live[path] = time.time()
        logger.debug(f"Allocated artifact {path}")
        return path

    def is_live(self, path: str) -> bool:
        return path in self._live

    def live_paths(self) -> List[str]:
        return list(self._live)

    def release(self, path: str, missing_ok: bool = False) -> bool:
        """
        Delete an artifact and stop tracking it.

        Args:
            path: Path returned by allocate()
            missing_ok: Do not warn if the file was never written

        Returns:
            bool: True if this call released the artifact, False if it was
            already released (the file is never touched twice)
        """
        if self._live.pop(path, None) is None:
            logger.warning(f"Artifact already released, skipping delete: {path}")
            return False

        try:
            os.remove(path)
            logger.info(f"Deleted artifact: {path}")
        except FileNotFoundError:
            if not missing_ok:
                logger.warning(f"Artifact does not exist: {path}")
        except OSError as e:
            logger.error(f"Error deleting artifact {path}: {e}")
        return True

    def release_all(self) -> int:
        """Release every artifact still tracked. Returns how many were released."""
        released = 0
        for path in list(self._live):
            if self.release(path, missing_ok=True):
                released += 1
        return released

    def purge_stale(self) -> int:
        """
        Delete leftover artifacts and partial files from a previous run.

        Only untracked files carrying this store's prefix are removed.
        """
        prefix = self._prefix
        removed = 0
        for name in os.listdir(self.download_dir):
            if not name.startswith(prefix):
                continue
            if not (name.endswith(ARTIFACT_SUFFIX) or name.endswith(ARTIFACT_SUFFIX + PARTIAL_SUFFIX)):
                continue
            path = os.path.join(self.download_dir, name)
            if path in self._live:
                continue
            try:
                os.remove(path)
                removed += 1
            except OSError as e:
                logger.error(f"Error purging stale artifact {path}: {e}")
        if removed:
            logger.info(f"Purged {removed} stale artifacts from {self.download_dir}")
        return removed
