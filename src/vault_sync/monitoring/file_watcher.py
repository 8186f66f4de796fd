"""
File system watcher feeding vault changes into the change tracker.

Listens for file creations, modifications and moves inside the vault and
queues them on the tracker's inbox; the sync coordinator applies them on
its next check.
"""

import logging
import os
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from vault_sync.models import MonitoringError
from vault_sync.tracking.change_tracker import ChangeTracker, now_ms

logger = logging.getLogger(__name__)


class VaultFileWatcher(FileSystemEventHandler):
    """
    File system watcher for tracked vault files.

    Events arrive on the watchdog observer thread; they are only queued
    here, never applied directly.
    """

    def __init__(self, config, tracker: ChangeTracker, clock: Callable[[], int] = now_ms):
        """
        Initialize the file watcher.

        Args:
            config: Sync configuration with tracking and ignore settings
            tracker: Change tracker receiving the events
            clock: Callable returning the current instant in epoch ms
        """
        super().__init__()
        self.config = config
        self.tracker = tracker
        self.clock = clock

        self._observer: Observer | None = None
        self._vault_root: Path | None = None
        self._marker_dir: Path | None = None
        self._events_queued = 0

    def start_watching(self, vault_path: Path | None = None, recursive: bool = True) -> None:
        """
        Start watching the vault for file changes.

        Args:
            vault_path: Vault root (defaults to the configured vault)
            recursive: Whether to monitor subdirectories

        Raises:
            MonitoringError: If monitoring cannot be started
        """
        vault_path = vault_path or self.config.vault_path
        try:
            if not vault_path.exists():
                raise MonitoringError(
                    f"Vault does not exist: {vault_path}", path=str(vault_path), operation="start_watching"
                )

            if not vault_path.is_dir():
                raise MonitoringError(
                    f"Vault path is not a directory: {vault_path}", path=str(vault_path), operation="start_watching"
                )

            if self.is_watching:
                logger.debug("Already watching %s", self._vault_root)
                return

            self._vault_root = vault_path.resolve()
            self._marker_dir = self.config.resolve_marker_dir().resolve()

            self._observer = Observer()
            self._observer.schedule(self, str(self._vault_root), recursive=recursive)
            self._observer.start()
            logger.info("Started monitoring %s (recursive: %s)", vault_path, recursive)

        except MonitoringError:
            raise
        except Exception as e:
            logger.error("Failed to start file monitoring: %s", e)
            raise MonitoringError(
                f"Failed to start monitoring: {e}",
                path=str(vault_path),
                operation="start_watching",
                underlying_error=e,
            ) from e

    def stop_watching(self) -> None:
        """Stop file monitoring."""
        try:
            if self._observer and self._observer.is_alive():
                self._observer.stop()
                self._observer.join(timeout=5.0)
                logger.info("File monitoring stopped")
            self._observer = None

        except Exception as e:
            logger.error("Error stopping file monitoring: %s", e)
            raise MonitoringError("Failed to stop monitoring", operation="stop_watching", underlying_error=e) from e

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle file creation events."""
        if not event.is_directory:
            self._handle_file_event('created', Path(os.fsdecode(event.src_path)))

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle file modification events."""
        if not event.is_directory:
            self._handle_file_event('modified', Path(os.fsdecode(event.src_path)))

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle move events; the destination counts as a new file."""
        if getattr(event, 'dest_path', None) and not event.is_directory:
            self._handle_file_event('moved', Path(os.fsdecode(event.dest_path)))

    def _handle_file_event(self, event_type: str, file_path: Path) -> None:
        try:
            relative = self._relative_path(file_path)
            if relative is None or not self._should_process_file(file_path, relative):
                return

            self.tracker.submit(relative, self.clock())
            self._events_queued += 1
            logger.debug("File %s: %s", event_type, relative)

        except Exception as e:
            logger.error("Error handling file event %s for %s: %s", event_type, file_path, e)

    def _relative_path(self, file_path: Path) -> str | None:
        if self._vault_root is None:
            return None
        try:
            return file_path.resolve().relative_to(self._vault_root).as_posix()
        except ValueError:
            return None

    def _should_process_file(self, file_path: Path, relative: str) -> bool:
        """
        Check if a file event should reach the tracker.

        Args:
            file_path: Absolute path from the event
            relative: Vault-relative path

        Returns:
            True if the file is tracked
        """
        if self._marker_dir is not None and file_path.resolve().is_relative_to(self._marker_dir):
            return False
        if not self.config.is_file_tracked(relative):
            return False
        return not self.config.should_ignore_file(relative)

    @property
    def is_watching(self) -> bool:
        """Check if currently watching for file changes."""
        return self._observer is not None and self._observer.is_alive()

    @property
    def vault_root(self) -> Path | None:
        return self._vault_root

    def get_events_queued_count(self) -> int:
        """Number of events handed to the tracker so far."""
        return self._events_queued
