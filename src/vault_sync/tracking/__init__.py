"""Per-file change tracking against sync watermarks."""

from vault_sync.tracking.change_tracker import ChangeTracker, now_ms

__all__ = ["ChangeTracker", "now_ms"]
