"""Data models and exceptions for the vault sync system."""

from vault_sync.models.exceptions import (
    BaseError,
    ConfigurationError,
    MarkerError,
    MonitoringError,
    NoticeParseError,
    SyncError,
)
from vault_sync.models.sync import (
    MIN_POLL_INTERVAL_SECONDS,
    CoordinatorState,
    HandoffMode,
    HandoffRequest,
    RemoteChangeNotice,
    SyncState,
    WatchedFile,
)

__all__ = [
    "MIN_POLL_INTERVAL_SECONDS",
    "CoordinatorState",
    "HandoffMode",
    "HandoffRequest",
    "RemoteChangeNotice",
    "SyncState",
    "WatchedFile",
    "BaseError",
    "ConfigurationError",
    "MarkerError",
    "MonitoringError",
    "NoticeParseError",
    "SyncError",
]
