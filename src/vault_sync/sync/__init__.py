"""
Sync coordination package.

Provides marker-file signalling to the external sync agent, the coordinator
that decides when to hand changed files off, and the watcher that consumes
remote-change notices.
"""

from .marker_channel import MarkerChannel
from .remote_watcher import RemoteChangeWatcher
from .sync_coordinator import SyncCoordinator

__all__ = [
    "MarkerChannel",
    "RemoteChangeWatcher",
    "SyncCoordinator",
]
