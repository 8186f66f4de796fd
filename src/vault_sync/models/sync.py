"""
Data models for change tracking and marker-based sync signalling.

These models describe the tracked files, the handoff requests written for the
external sync agent and the remote-change notices it writes back.
"""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field

from vault_sync.models.exceptions import NoticeParseError

MIN_POLL_INTERVAL_SECONDS = 5


class HandoffMode(str, Enum):
    """Kind of transfer requested from the external sync agent."""

    BIDIRECTIONAL = "bidirectional"
    DOWNLOAD_ONLY = "download-only"

    @property
    def marker_name(self) -> str:
        """Fixed marker file name for this mode."""
        return "sync-trigger" if self is HandoffMode.BIDIRECTIONAL else "download-trigger"

    @property
    def trigger_tag(self) -> str:
        """Value written to the marker's ``trigger`` field."""
        return "obsidian-plugin" if self is HandoffMode.BIDIRECTIONAL else "download-only"

    @property
    def status_label(self) -> str:
        """Status label shown while a handoff of this mode is in flight."""
        return "Syncing..." if self is HandoffMode.BIDIRECTIONAL else "Checking Remote..."


class CoordinatorState(str, Enum):
    """Sync coordinator lifecycle state."""

    STOPPED = "Stopped"
    RUNNING = "Running"
    HANDOFF_IN_FLIGHT = "HandoffInFlight"


class WatchedFile(BaseModel):
    """
    A file known to the change tracker.

    Timestamps are epoch milliseconds; a ``last_synced_at`` of 0 means the
    file has never been handed off.
    """

    path: str = Field(..., min_length=1, description="Vault-relative file path")
    last_modified_at: int = Field(..., ge=0, description="Latest observed write/create instant (epoch ms)")
    last_synced_at: int = Field(default=0, ge=0, description="Instant of the last handoff covering this file")

    @computed_field
    @property
    def is_dirty(self) -> bool:
        """Whether the file changed since it was last handed off."""
        return self.last_modified_at > self.last_synced_at

    model_config = ConfigDict(frozen=True)


class HandoffRequest(BaseModel):
    """Request for the external agent, persisted as a fixed-name marker."""

    timestamp: int = Field(..., ge=0, description="Request instant (epoch ms)")
    vault: str = Field(..., description="Vault root identifier")
    mode: HandoffMode = Field(..., description="Requested transfer mode")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Extra caller metadata")

    @property
    def marker_name(self) -> str:
        return self.mode.marker_name

    def to_marker(self) -> dict[str, Any]:
        """Marker record content; reserved keys win over metadata."""
        record = dict(self.metadata)
        record.update({"timestamp": self.timestamp, "vault": self.vault, "trigger": self.mode.trigger_tag})
        return record

    @classmethod
    def from_marker(cls, mode: HandoffMode, content: str) -> "HandoffRequest":
        """Rebuild a request from the content of its marker."""
        record = json.loads(content)
        metadata = {k: v for k, v in record.items() if k not in ("timestamp", "vault", "trigger")}
        return cls(timestamp=record["timestamp"], vault=record["vault"], mode=mode, metadata=metadata)


# Optional notice fields and the JSON types accepted for them
NOTICE_FIELD_TYPES: dict[str, tuple[type, ...]] = {
    "timestamp": (int, float, str),
    "vault": (str,),
    "trigger": (str,),
}


class RemoteChangeNotice(BaseModel):
    """
    Notification written by the external agent for a remotely changed file.

    Identity is the marker file name, which the producer keeps unique so that
    several notices can be pending at once.
    """

    marker_name: str = Field(..., min_length=1, description="Marker file the notice was read from")
    file: str = Field(..., min_length=1, description="File changed on the remote side")
    timestamp: int | float | str | None = Field(None, description="Producer timestamp as written")
    vault: str | None = Field(None, description="Vault identifier reported by the producer")
    trigger: str | None = Field(None, description="Producer tag")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Any other keys in the marker")

    @classmethod
    def from_marker(cls, marker_name: str, content: str) -> "RemoteChangeNotice":
        """
        Parse the content of a remote-change marker.

        Args:
            marker_name: Name of the marker file
            content: Raw marker content

        Returns:
            Parsed notice

        Raises:
            NoticeParseError: If the content is not a JSON object naming a file
        """
        try:
            record = json.loads(content)
        except json.JSONDecodeError as e:
            raise NoticeParseError(
                f"Marker is not valid JSON: {e}", marker_name=marker_name, underlying_error=e
            ) from e

        if not isinstance(record, dict):
            raise NoticeParseError("Marker content must be a JSON object", marker_name=marker_name)

        fields: dict[str, Any] = {}
        metadata: dict[str, Any] = {}
        for key, value in record.items():
            if key == "file":
                continue
            # producer fields of an unexpected shape are carried in metadata
            if key in NOTICE_FIELD_TYPES and (value is None or isinstance(value, NOTICE_FIELD_TYPES[key])):
                fields[key] = value
            else:
                metadata[key] = value

        try:
            return cls(marker_name=marker_name, file=record.get("file"), metadata=metadata, **fields)
        except ValidationError as e:
            raise NoticeParseError(
                f"Invalid remote change notice: {e}", marker_name=marker_name, underlying_error=e
            ) from e

    def __str__(self) -> str:
        return f"RemoteChangeNotice({self.file} via {self.marker_name})"


class SyncState(BaseModel):
    """
    Process-wide sync state owned by the coordinator.

    Assignments are validated, so an invalid interval is rejected and the
    previous value stays in place.
    """

    enabled: bool = Field(default=True, description="Whether periodic sync checks run")
    pending_sync: bool = Field(default=False, description="True while a handoff is outstanding")
    poll_interval_seconds: int = Field(
        default=10, ge=MIN_POLL_INTERVAL_SECONDS, description="Seconds between sync checks"
    )

    model_config = ConfigDict(validate_assignment=True)
