"""
Polling watcher for remote-change notices written by the external agent.

Each notice is delivered to the caller and then its marker is deleted, so a
crash between the two can redeliver a notice but never loses one.
"""

import asyncio
import logging
from collections.abc import Callable

from vault_sync.models.exceptions import MarkerError, NoticeParseError
from vault_sync.models.sync import RemoteChangeNotice
from vault_sync.sync.marker_channel import MarkerChannel

logger = logging.getLogger(__name__)

MAX_ERROR_RECORDS = 100


class RemoteChangeWatcher:
    """Polls the marker directory for remote-change notices."""

    def __init__(
        self,
        channel: MarkerChannel,
        on_remote_change: Callable[[RemoteChangeNotice], None] | None = None,
        poll_seconds: float = 3.0,
    ):
        """
        Initialize the watcher.

        Args:
            channel: Marker channel the notices are read from
            on_remote_change: Callback receiving each notice
            poll_seconds: Seconds between polls while running
        """
        self.channel = channel
        self.on_remote_change = on_remote_change
        self.poll_seconds = poll_seconds

        self._poll_task: asyncio.Task | None = None
        self._errors: list[str] = []
        self._delivered = 0

    def start(self) -> None:
        """Start periodic polling on the running event loop."""
        if self.is_running:
            logger.debug("Remote change monitoring already running")
            return

        self._poll_task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Remote change monitoring started (every %ss)", self.poll_seconds)

    def stop(self) -> None:
        """Stop periodic polling."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
            logger.info("Remote change monitoring stopped")

    @property
    def is_running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def poll(self) -> list[RemoteChangeNotice]:
        """
        Consume all pending remote-change markers.

        Returns:
            Notices delivered by this poll, in enumeration order
        """
        try:
            names = self.channel.list_remote_changes()
        except MarkerError as e:
            logger.warning("Could not list remote change markers: %s", e)
            return []

        notices = []
        for name in names:
            try:
                notice = RemoteChangeNotice.from_marker(name, self.channel.read_marker(name))
            except NoticeParseError as e:
                self._record_error(f"{name}: {e.message}")
                logger.error("Dropping malformed remote change marker %s: %s", name, e)
                self._remove(name)
                continue
            except MarkerError as e:
                # Gone or unreadable; a still-present marker is retried next poll.
                logger.warning("Could not read remote change marker %s: %s", name, e)
                continue

            logger.info("Remote change detected: %s", notice.file)
            self._deliver(notice)
            self._remove(name)
            notices.append(notice)

        return notices

    def get_errors(self) -> list[str]:
        """Recent malformed-notice errors, oldest first."""
        return list(self._errors)

    @property
    def delivered_count(self) -> int:
        return self._delivered

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.poll_seconds)
            self.poll()

    def _deliver(self, notice: RemoteChangeNotice) -> None:
        self._delivered += 1
        if self.on_remote_change is None:
            return
        try:
            self.on_remote_change(notice)
        except Exception as e:
            logger.error("Remote change callback failed for %s: %s", notice.marker_name, e)

    def _remove(self, name: str) -> None:
        try:
            self.channel.remove_marker(name)
        except MarkerError as e:
            logger.warning("Failed to remove remote change marker %s: %s", name, e)

    def _record_error(self, message: str) -> None:
        self._errors.append(message)
        if len(self._errors) > MAX_ERROR_RECORDS:
            self._errors = self._errors[-MAX_ERROR_RECORDS:]
