"""
Sync agent composing change tracking, handoff coordination and remote
change monitoring for one vault.

This is the host-side counterpart of the external sync agent: it decides
when local changes should be transferred and reacts to transfers made on
other devices.
"""

import asyncio
import logging
from typing import Any

from rich.console import Console

from vault_sync.config import PersistedSettings, SettingsStore, SyncConfig
from vault_sync.models import ConfigurationError, HandoffMode, RemoteChangeNotice, SyncState
from vault_sync.monitoring import VaultFileWatcher, list_tracked_files
from vault_sync.notifications import Notifier
from vault_sync.sync import MarkerChannel, RemoteChangeWatcher, SyncCoordinator
from vault_sync.tracking import ChangeTracker

logger = logging.getLogger(__name__)

REMOTE_CHANGE_STATUS = "Remote Change"


class SyncAgent:
    """
    Wires the sync components together for a vault.

    Persisted operator settings override the configuration defaults, in the
    same way the vault plugin merges its saved data over its defaults.
    """

    def __init__(
        self,
        config: SyncConfig,
        store: SettingsStore | None = None,
        console: Console | None = None,
    ):
        """
        Initialize the agent.

        Args:
            config: Sync configuration
            store: Optional settings store (created from config if not provided)
            console: Optional rich console for notices
        """
        self.config = config
        self.store = store or SettingsStore(
            config.resolve_settings_file(),
            defaults=PersistedSettings(
                server_url=config.server_url,
                sync_interval=config.sync_interval,
                enabled=config.sync_enabled,
                show_notices=config.show_notices,
            ),
        )
        settings = self.store.settings

        self.notifier = Notifier(enabled=settings.show_notices, console=console)
        self.tracker = ChangeTracker(store=self.store)
        self.channel = MarkerChannel(config.resolve_marker_dir(), config.resolve_vault_id())
        interval = settings.sync_interval
        if not self._settles_within(interval):
            logger.warning(
                "Saved sync interval %ss does not exceed the %ss settle time, using %ss",
                interval,
                config.bidirectional_settle_seconds,
                config.sync_interval,
            )
            interval = config.sync_interval
        self.sync_state = SyncState(enabled=settings.enabled, poll_interval_seconds=interval)

        self.coordinator = SyncCoordinator(
            tracker=self.tracker,
            channel=self.channel,
            sync_state=self.sync_state,
            file_lister=lambda: list_tracked_files(config.vault_path, config),
            on_status_changed=self._on_status_changed,
            notifier=self.notifier,
            bidirectional_settle_seconds=config.bidirectional_settle_seconds,
            download_settle_seconds=config.download_settle_seconds,
        )
        self.file_watcher = VaultFileWatcher(config, self.tracker)
        self.remote_watcher = RemoteChangeWatcher(
            self.channel,
            on_remote_change=self._on_remote_change,
            poll_seconds=config.remote_poll_seconds,
        )

        self._status = self.coordinator.status
        self._status_revert: asyncio.TimerHandle | None = None
        self._remote_changes: list[RemoteChangeNotice] = []

    @property
    def status_label(self) -> str:
        """Status label shown to the operator."""
        return self._status

    async def start(self) -> None:
        """
        Start file watching, remote change polling and, if enabled, sync checks.

        Raises:
            MonitoringError: If the vault cannot be watched
        """
        logger.info("Vault sync starting for %s", self.config.vault_path)

        self.file_watcher.start_watching(self.config.vault_path)
        if self.sync_state.enabled:
            self.coordinator.start()
        self.remote_watcher.start()

        logger.info("Vault sync started")

    def stop(self) -> None:
        """Stop all monitoring. An in-flight handoff settles on its own."""
        logger.info("Vault sync stopping...")
        self.coordinator.stop()
        self.remote_watcher.stop()
        self.file_watcher.stop_watching()
        if self._status_revert is not None:
            self._status_revert.cancel()
            self._status_revert = None

    async def run(self, duration: float | None = None) -> None:
        """Run until cancelled, or for ``duration`` seconds."""
        await self.start()
        try:
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)
        finally:
            self.stop()

    def toggle(self) -> bool:
        """
        Flip the enabled flag, persist it and start or stop sync checks.

        Returns:
            The new enabled state
        """
        enabled = not self.sync_state.enabled
        self.store.update(enabled=enabled)
        self.coordinator.reconfigure(enabled=enabled)
        self.notifier.notify("Auto sync enabled" if enabled else "Auto sync disabled")
        return enabled

    def set_interval(self, seconds: int) -> bool:
        """
        Change the check interval; invalid values are rejected.

        The interval must be at least five seconds and longer than the
        bidirectional settle time.

        Returns:
            True if the interval was applied
        """
        if not self._settles_within(seconds):
            logger.warning(
                "Rejected sync interval %r: not longer than the %ss settle time",
                seconds,
                self.config.bidirectional_settle_seconds,
            )
            return False

        try:
            self.coordinator.reconfigure(poll_interval_seconds=seconds)
        except ConfigurationError as e:
            logger.warning("Rejected sync interval %r: %s", seconds, e)
            return False

        self.store.update(sync_interval=seconds)
        return True

    def set_show_notices(self, show: bool) -> None:
        self.store.update(show_notices=show)
        self.notifier.enabled = show

    def sync_now(self) -> bool:
        """Request a bidirectional transfer immediately."""
        return self.coordinator.trigger_handoff(HandoffMode.BIDIRECTIONAL)

    def download_remote(self) -> bool:
        """Request a download-only transfer immediately."""
        return self.coordinator.trigger_handoff(HandoffMode.DOWNLOAD_ONLY)

    def reset_tracking(self) -> None:
        """Clear change tracking; every file is seen as new on the next change."""
        self.coordinator.reset_tracking()

    def get_status(self) -> dict[str, Any]:
        """
        Get agent status.

        Returns:
            Dictionary with status label, settings and component statistics
        """
        settings = self.store.settings
        return {
            "status": self._status,
            "vault": str(self.config.vault_path),
            "marker_dir": str(self.channel.marker_dir),
            "server_url": settings.server_url,
            "show_notices": settings.show_notices,
            "coordinator": self.coordinator.get_stats(),
            "file_watcher": {
                "is_watching": self.file_watcher.is_watching,
                "events_queued": self.file_watcher.get_events_queued_count(),
            },
            "remote_changes": {
                "is_running": self.remote_watcher.is_running,
                "delivered": self.remote_watcher.delivered_count,
                "errors": self.remote_watcher.get_errors(),
            },
        }

    def _settles_within(self, interval: int) -> bool:
        return self.config.bidirectional_settle_seconds < interval

    def _on_status_changed(self, label: str) -> None:
        self._status = label
        logger.debug("Status: %s", label)

    def _on_remote_change(self, notice: RemoteChangeNotice) -> None:
        self._remote_changes.append(notice)
        self.notifier.notify(f"Remote change detected: {notice.file}")
        self._status = REMOTE_CHANGE_STATUS

        if self._status_revert is not None:
            self._status_revert.cancel()
            self._status_revert = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, status will revert on the next change")
            return
        self._status_revert = loop.call_later(self.config.remote_status_seconds, self._revert_status)

    def _revert_status(self) -> None:
        self._status_revert = None
        self._status = self.coordinator.status
