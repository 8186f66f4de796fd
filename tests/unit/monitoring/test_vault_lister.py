"""Unit tests for the vault file lister."""

from vault_sync.config import SyncConfig
from vault_sync.monitoring import list_tracked_files


class TestListTrackedFiles:
    """Test cases for list_tracked_files."""

    def test_lists_tracked_files_recursively(self, tmp_path):
        """Test recursive enumeration with relative POSIX paths."""
        (tmp_path / "notes" / "deep").mkdir(parents=True)
        (tmp_path / "a.md").write_text("a")
        (tmp_path / "notes" / "b.md").write_text("b")
        (tmp_path / "notes" / "deep" / "c.md").write_text("c")
        (tmp_path / "notes" / "image.png").write_bytes(b"")

        files = list_tracked_files(tmp_path, SyncConfig(vault_path=tmp_path))

        assert files == ["a.md", "notes/b.md", "notes/deep/c.md"]

    def test_skips_marker_dir_and_ignored_patterns(self, tmp_path):
        """Test that the marker directory and ignored files are excluded."""
        (tmp_path / ".obsidian").mkdir()
        (tmp_path / ".obsidian" / "workspace.md").write_text("x")
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "readme.md").write_text("x")
        (tmp_path / "keep.md").write_text("x")

        files = list_tracked_files(tmp_path, SyncConfig(vault_path=tmp_path))

        assert files == ["keep.md"]

    def test_custom_marker_dir(self, tmp_path):
        """Test a marker directory configured elsewhere in the vault."""
        (tmp_path / "sync").mkdir()
        (tmp_path / "sync" / "note.md").write_text("x")
        (tmp_path / "note.md").write_text("x")

        config = SyncConfig(vault_path=tmp_path, marker_dir=tmp_path / "sync")

        assert list_tracked_files(tmp_path, config) == ["note.md"]

    def test_empty_vault(self, tmp_path):
        """Test an empty directory."""
        assert list_tracked_files(tmp_path, SyncConfig(vault_path=tmp_path)) == []
