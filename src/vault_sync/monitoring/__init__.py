"""
Monitoring package for vault change detection.

This package provides the file system watcher that feeds the change tracker
and the directory lister used to confirm tracked files still exist.
"""

from .file_watcher import VaultFileWatcher
from .vault_lister import list_tracked_files

__all__ = [
    "VaultFileWatcher",
    "list_tracked_files",
]
