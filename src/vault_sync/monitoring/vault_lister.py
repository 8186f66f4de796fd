"""Directory listing of the tracked files currently present in a vault."""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def list_tracked_files(vault_path: Path, config) -> list[str]:
    """
    List tracked files under the vault as vault-relative POSIX paths.

    The marker directory and ignored patterns are skipped. Unreadable
    directories are logged and skipped.

    Args:
        vault_path: Vault root
        config: Sync configuration with tracking and ignore settings

    Returns:
        Sorted list of relative paths
    """
    root = vault_path.resolve()
    marker_dir = config.resolve_marker_dir().resolve()
    files = []

    def on_error(error: OSError) -> None:
        logger.error("Error reading directory %s: %s", error.filename, error)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        current = Path(dirpath)
        dirnames[:] = [name for name in dirnames if (current / name) != marker_dir]

        for name in filenames:
            relative = (current / name).relative_to(root).as_posix()
            if config.is_file_tracked(relative) and not config.should_ignore_file(relative):
                files.append(relative)

    return sorted(files)
