"""
Change tracking for vault files.

Keeps, per file, the latest observed modification instant and the instant it
was last handed to the external sync agent. A file is dirty when it was
modified after its watermark; files never handed off have a watermark of 0.
"""

import logging
import queue
import time
from collections.abc import Iterable, Mapping

from vault_sync.config.store import SettingsStore
from vault_sync.models.sync import WatchedFile

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class ChangeTracker:
    """
    In-memory modification map plus a persisted watermark table.

    File event sources running on other threads push into the inbox with
    ``submit``; the coordinator applies them with ``drain`` on its own
    schedule.
    """

    def __init__(self, store: SettingsStore | None = None):
        """
        Initialize the tracker.

        Args:
            store: Optional settings store the watermark table is loaded from
                and persisted to
        """
        self.store = store
        self._modified: dict[str, int] = {}
        self._watermarks: dict[str, int] = store.load_watermarks() if store else {}
        self._inbox: queue.SimpleQueue[tuple[str, int]] = queue.SimpleQueue()

        if self._watermarks:
            logger.info("Loaded %d sync watermarks", len(self._watermarks))

    def submit(self, path: str, instant: int) -> None:
        """Queue a file event. Safe to call from any thread."""
        self._inbox.put((path, instant))

    def drain(self) -> int:
        """
        Apply all queued file events.

        Returns:
            Number of events applied
        """
        applied = 0
        while True:
            try:
                path, instant = self._inbox.get_nowait()
            except queue.Empty:
                break
            self.record(path, instant)
            applied += 1

        if applied:
            logger.debug("Applied %d queued file events", applied)
        return applied

    def record(self, path: str, instant: int) -> None:
        """
        Record a write/create of ``path`` at ``instant``.

        Out-of-order events never move the stored instant backwards.
        """
        current = self._modified.get(path)
        if current is None or instant > current:
            self._modified[path] = instant
            logger.debug("Recorded change: %s at %d", path, instant)

    def mark_synced(self, paths: Iterable[str], instant: int) -> None:
        """
        Advance the watermark of each path to ``instant`` and persist the table.

        Must be called before the external agent is signalled so that events
        arriving during the handoff count as new changes.
        """
        paths = list(paths)
        for path in paths:
            self._watermarks[path] = instant

        logger.debug("Marked %d files synced at %d", len(paths), instant)
        self._persist()

    def dirty_since(self, watermarks: Mapping[str, int] | None = None) -> set[str]:
        """
        Paths modified after their watermark.

        Args:
            watermarks: Watermark table to compare against (defaults to the
                tracker's own table)

        Returns:
            Set of dirty paths
        """
        table = self._watermarks if watermarks is None else watermarks
        return {path for path, modified in self._modified.items() if modified > table.get(path, 0)}

    def reset(self) -> None:
        """Forget all modification times and watermarks."""
        self._modified.clear()
        self._watermarks.clear()
        while True:
            try:
                self._inbox.get_nowait()
            except queue.Empty:
                break

        logger.info("Change tracking reset")
        self._persist()

    def get(self, path: str) -> WatchedFile | None:
        """Tracked state of a single file, if it has been observed."""
        if path not in self._modified:
            return None
        return WatchedFile(
            path=path,
            last_modified_at=self._modified[path],
            last_synced_at=self._watermarks.get(path, 0),
        )

    def files(self) -> list[WatchedFile]:
        """All observed files, ordered by path."""
        return [self.get(path) for path in sorted(self._modified)]

    @property
    def watermarks(self) -> dict[str, int]:
        """Copy of the watermark table."""
        return dict(self._watermarks)

    def __len__(self) -> int:
        return len(self._modified)

    def _persist(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save_watermarks(self._watermarks)
        except OSError as e:
            logger.error("Failed to persist sync watermarks: %s", e)
