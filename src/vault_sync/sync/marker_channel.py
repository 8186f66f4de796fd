"""
Marker-file signalling shared with the external sync agent.

Outgoing handoff requests are written under one fixed name per mode, so a
new request replaces an older one. Incoming remote-change notices use unique
``remote-change-*.json`` names and are consumed by the remote watcher.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from vault_sync.models.exceptions import MarkerError
from vault_sync.models.sync import HandoffMode, HandoffRequest
from vault_sync.tracking.change_tracker import now_ms

logger = logging.getLogger(__name__)

REMOTE_CHANGE_PREFIX = "remote-change-"
REMOTE_CHANGE_SUFFIX = ".json"


class MarkerChannel:
    """Reads and writes marker records in the shared marker directory."""

    def __init__(self, marker_dir: Path, vault_id: str, clock=now_ms):
        """
        Initialize the channel.

        Args:
            marker_dir: Directory watched by the external sync agent
            vault_id: Vault identifier written into handoff markers
            clock: Callable returning the current instant in epoch ms
        """
        self.marker_dir = marker_dir
        self.vault_id = vault_id
        self.clock = clock

    def signal_handoff(self, mode: HandoffMode, metadata: dict[str, Any] | None = None) -> HandoffRequest:
        """
        Ask the external agent for a transfer.

        Args:
            mode: Requested transfer mode
            metadata: Extra keys written into the marker

        Returns:
            The request that was written

        Raises:
            MarkerError: If the marker cannot be encoded or written
        """
        request = HandoffRequest(
            timestamp=self.clock(),
            vault=self.vault_id,
            mode=HandoffMode(mode),
            metadata=metadata or {},
        )
        try:
            content = json.dumps(request.to_marker())
        except (TypeError, ValueError) as e:
            raise MarkerError(
                f"Failed to encode marker {request.marker_name}: {e}",
                marker_name=request.marker_name,
                operation="encode",
                underlying_error=e,
            ) from e
        self._write_atomic(request.marker_name, content)
        logger.info("Handoff requested via marker %s", self.marker_dir / request.marker_name)
        return request

    def read_handoff(self, mode: HandoffMode) -> HandoffRequest | None:
        """
        Read an outstanding handoff marker.

        Returns:
            The pending request, or None if no valid marker exists
        """
        mode = HandoffMode(mode)
        path = self.marker_dir / mode.marker_name
        if not path.exists():
            return None

        try:
            return HandoffRequest.from_marker(mode, self.read_marker(mode.marker_name))
        except (MarkerError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring invalid handoff marker %s: %s", path, e)
            return None

    def list_remote_changes(self) -> list[str]:
        """
        Names of pending remote-change markers, in enumeration order.

        Raises:
            MarkerError: If the marker directory cannot be listed
        """
        if not self.marker_dir.exists():
            return []

        try:
            names = [
                entry.name
                for entry in self.marker_dir.iterdir()
                if entry.name.startswith(REMOTE_CHANGE_PREFIX)
                and entry.name.endswith(REMOTE_CHANGE_SUFFIX)
                and entry.is_file()
            ]
        except OSError as e:
            raise MarkerError(
                f"Failed to list marker directory: {e}", operation="list", underlying_error=e
            ) from e

        return sorted(names)

    def read_marker(self, name: str) -> str:
        """
        Read the raw content of a marker.

        Raises:
            MarkerError: If the marker cannot be read
        """
        try:
            return (self.marker_dir / name).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise MarkerError(
                f"Failed to read marker {name}: {e}", marker_name=name, operation="read", underlying_error=e
            ) from e

    def remove_marker(self, name: str) -> None:
        """
        Delete a marker.

        Raises:
            MarkerError: If the marker cannot be removed
        """
        try:
            (self.marker_dir / name).unlink()
        except OSError as e:
            raise MarkerError(
                f"Failed to remove marker {name}: {e}", marker_name=name, operation="remove", underlying_error=e
            ) from e

    def _write_atomic(self, name: str, content: str) -> None:
        try:
            self.marker_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{name}.", dir=self.marker_dir)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(content)
                os.replace(tmp_name, self.marker_dir / name)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise MarkerError(
                f"Failed to write marker {name}: {e}", marker_name=name, operation="write", underlying_error=e
            ) from e
