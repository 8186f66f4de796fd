"""
Sync coordinator for handing changed files to the external sync agent.

Runs a periodic check of the change tracker and, when files are dirty,
advances their watermarks and writes a handoff marker. At most one handoff is
in flight; it settles after a fixed delay whether or not the agent responds.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import ValidationError

from vault_sync.models.exceptions import ConfigurationError, MarkerError, SyncError
from vault_sync.models.sync import CoordinatorState, HandoffMode, HandoffRequest, SyncState
from vault_sync.notifications import Notifier
from vault_sync.sync.marker_channel import MarkerChannel
from vault_sync.tracking.change_tracker import ChangeTracker, now_ms

logger = logging.getLogger(__name__)

ERROR_STATUS = "Error"


class SyncCoordinator:
    """
    Coordinates periodic change checks and handoff signalling.

    States move Stopped -> Running on ``start``, Running -> HandoffInFlight
    when a handoff is signalled, back to Running once the settle delay
    elapses, and to Stopped on ``stop``. The ``pending_sync`` flag of the
    shared ``SyncState`` is the only guard against overlapping handoffs.
    """

    def __init__(
        self,
        tracker: ChangeTracker,
        channel: MarkerChannel,
        sync_state: SyncState | None = None,
        file_lister: Callable[[], Iterable[str]] | None = None,
        on_status_changed: Callable[[str], None] | None = None,
        notifier: Notifier | None = None,
        bidirectional_settle_seconds: float = 3.0,
        download_settle_seconds: float = 5.0,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize the coordinator.

        Args:
            tracker: Change tracker holding modification times and watermarks
            channel: Marker channel used to signal the external agent
            sync_state: Shared sync state (a default one is created if omitted)
            file_lister: Optional callable listing files that still exist;
                dirty files it does not list are left for a later check
            on_status_changed: Callback receiving status labels
            notifier: Optional notifier for user-facing notices
            bidirectional_settle_seconds: Settle delay after a bidirectional handoff
            download_settle_seconds: Settle delay after a download-only handoff
            clock: Callable returning the current instant in epoch ms
        """
        self.tracker = tracker
        self.channel = channel
        self.sync_state = sync_state or SyncState()
        self.file_lister = file_lister
        self.on_status_changed = on_status_changed
        self.notifier = notifier
        self.clock = clock
        self._settle_seconds = {
            HandoffMode.BIDIRECTIONAL: bidirectional_settle_seconds,
            HandoffMode.DOWNLOAD_ONLY: download_settle_seconds,
        }

        self._tick_task: asyncio.Task | None = None
        self._settle_handle: asyncio.TimerHandle | None = None
        self._settled = asyncio.Event()
        self._settled.set()
        self._status = CoordinatorState.STOPPED.value
        self.last_handoff: HandoffRequest | None = None

        self._stats = {"ticks": 0, "handoffs": 0, "files_handed_off": 0, "failures": 0, "ignored_triggers": 0}

    @property
    def state(self) -> CoordinatorState:
        """Current lifecycle state."""
        if self.sync_state.pending_sync:
            return CoordinatorState.HANDOFF_IN_FLIGHT
        if self.is_running:
            return CoordinatorState.RUNNING
        return CoordinatorState.STOPPED

    @property
    def is_running(self) -> bool:
        """Whether the periodic check is scheduled."""
        return self._tick_task is not None and not self._tick_task.done()

    @property
    def status(self) -> str:
        """Last status label reported."""
        return self._status

    def start(self) -> None:
        """
        Start (or restart) the periodic check at the configured interval.

        Raises:
            SyncError: If called outside a running event loop
        """
        loop = self._require_loop("start")

        if self._tick_task is not None and not self._tick_task.done():
            self._tick_task.cancel()

        self._tick_task = loop.create_task(self._run_ticks())
        if not self.sync_state.pending_sync:
            self._set_status(CoordinatorState.RUNNING.value)

        logger.info("Auto sync started (interval: %ss)", self.sync_state.poll_interval_seconds)

    def stop(self) -> None:
        """Stop the periodic check. An in-flight handoff settles on its own."""
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

        if not self.sync_state.pending_sync:
            self._set_status(CoordinatorState.STOPPED.value)

        logger.info("Auto sync stopped")

    def reconfigure(self, poll_interval_seconds: int | None = None, enabled: bool | None = None) -> None:
        """
        Apply new settings and restart or stop the periodic check.

        A new interval restarts the timer immediately when sync is enabled.

        Raises:
            ConfigurationError: If the interval is invalid; the previous
                interval is kept
        """
        if poll_interval_seconds is not None:
            try:
                self.sync_state.poll_interval_seconds = poll_interval_seconds
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid sync interval: {poll_interval_seconds}",
                    config_key="poll_interval_seconds",
                    expected_type="int >= 5",
                    actual_value=poll_interval_seconds,
                ) from e

        if enabled is not None:
            self.sync_state.enabled = enabled

        if self.sync_state.enabled:
            self.start()
        else:
            self.stop()

    def tick(self) -> set[str]:
        """
        Run one change check.

        Applies queued file events, then bundles every dirty file into a
        single bidirectional handoff. Skipped while disabled or while a
        handoff is in flight.

        Returns:
            Paths handed off by this check
        """
        self.tracker.drain()

        if not self.sync_state.enabled or self.sync_state.pending_sync:
            logger.debug(
                "Skipping sync check (enabled: %s, pending: %s)",
                self.sync_state.enabled,
                self.sync_state.pending_sync,
            )
            return set()

        self._stats["ticks"] += 1

        try:
            dirty = self.tracker.dirty_since()
            if dirty and self.file_lister is not None:
                dirty &= set(self.file_lister())

            if not dirty:
                self._set_status(self._idle_status())
                return set()

            # Watermarks advance before signalling so edits made during the
            # handoff window stay dirty.
            self.tracker.mark_synced(dirty, self.clock())
            self._stats["files_handed_off"] += len(dirty)

            self._set_status(f"{len(dirty)} files changed")
            logger.info("Detected %d modified files, triggering sync", len(dirty))
            self._notify(f"Detected {len(dirty)} modified file(s) - triggering sync")

            self.trigger_handoff(HandoffMode.BIDIRECTIONAL)
            return dirty

        except Exception as e:
            self._stats["failures"] += 1
            logger.error("Sync check error: %s", e)
            self._set_status(ERROR_STATUS)
            return set()

    def trigger_handoff(
        self, mode: HandoffMode = HandoffMode.BIDIRECTIONAL, metadata: dict[str, Any] | None = None
    ) -> bool:
        """
        Signal the external agent unless a handoff is already in flight.

        Requests made while in flight are ignored rather than queued. A failed
        marker write still holds the in-flight state until the settle delay.

        Args:
            mode: Transfer mode to request
            metadata: Extra keys for the marker record

        Returns:
            True if a marker was written

        Raises:
            SyncError: If called outside a running event loop
        """
        mode = HandoffMode(mode)

        if self.sync_state.pending_sync:
            self._stats["ignored_triggers"] += 1
            logger.debug("Handoff already in flight, ignoring %s request", mode.value)
            return False

        loop = self._require_loop("trigger_handoff")

        self.sync_state.pending_sync = True
        self._settled.clear()
        self._set_status(mode.status_label)

        signalled = False
        try:
            self.last_handoff = self.channel.signal_handoff(mode, metadata)
            self._stats["handoffs"] += 1
            signalled = True
            if mode is HandoffMode.BIDIRECTIONAL:
                self._notify("Sync triggered - files will be uploaded to server")
            else:
                self._notify("Checking for remote changes...")
        except MarkerError as e:
            self._stats["failures"] += 1
            logger.error("Error triggering %s handoff: %s", mode.value, e)
            self._set_status(ERROR_STATUS)
            self._notify(f"Sync trigger failed: {e.message}")
        finally:
            # the in-flight flag must always clear
            self._settle_handle = loop.call_later(self._settle_seconds[mode], self._settle)
        return signalled

    async def wait_settled(self) -> None:
        """Wait until no handoff is in flight."""
        await self._settled.wait()

    def reset_tracking(self) -> None:
        """Clear all change tracking so every file starts from the epoch."""
        self.tracker.reset()
        self._notify("Change tracking history cleared")

    def get_stats(self) -> dict[str, Any]:
        """
        Get coordinator statistics.

        Returns:
            Dictionary with state, settings and counters
        """
        return {
            "state": self.state.value,
            "status": self._status,
            "enabled": self.sync_state.enabled,
            "pending_sync": self.sync_state.pending_sync,
            "poll_interval_seconds": self.sync_state.poll_interval_seconds,
            "tracked_files": len(self.tracker),
            "dirty_files": len(self.tracker.dirty_since()),
            "last_handoff": self.last_handoff.to_marker() if self.last_handoff else None,
            "counters": self._stats.copy(),
        }

    async def _run_ticks(self) -> None:
        while True:
            await asyncio.sleep(self.sync_state.poll_interval_seconds)
            self.tick()

    def _settle(self) -> None:
        self._settle_handle = None
        self.sync_state.pending_sync = False
        self._settled.set()
        logger.debug("Handoff settled")
        self._set_status(self._idle_status())

    def _idle_status(self) -> str:
        return CoordinatorState.RUNNING.value if self.is_running else CoordinatorState.STOPPED.value

    def _set_status(self, label: str) -> None:
        if label == self._status:
            return
        self._status = label
        if self.on_status_changed is None:
            return
        try:
            self.on_status_changed(label)
        except Exception as e:
            logger.error("Status callback failed for %r: %s", label, e)

    def _notify(self, message: str) -> None:
        if self.notifier is not None:
            self.notifier.notify(message)

    def _require_loop(self, operation: str) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError as e:
            raise SyncError(
                "Sync coordination requires a running event loop", operation=operation, underlying_error=e
            ) from e
