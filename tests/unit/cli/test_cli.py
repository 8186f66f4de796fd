"""Unit tests for the command line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from vault_sync.cli import main


class TestCli:
    """Test cases for the vault-sync commands."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    @pytest.fixture
    def vault(self, tmp_path):
        """Create a vault directory."""
        path = tmp_path / "vault"
        path.mkdir()
        return path

    @pytest.fixture
    def settings_file(self, vault):
        return vault / ".obsidian" / "vault-sync.json"

    def invoke(self, runner, vault, *args, **kwargs):
        return runner.invoke(main, ["--vault", str(vault), *args], **kwargs)

    def test_sync_now_writes_marker(self, runner, vault):
        """Test the manual bidirectional trigger."""
        result = self.invoke(runner, vault, "sync-now")

        assert result.exit_code == 0
        marker = json.loads((vault / ".obsidian" / "sync-trigger").read_text())
        assert marker["trigger"] == "obsidian-plugin"
        assert marker["vault"] == str(vault.resolve())

    def test_download_writes_marker(self, runner, vault):
        """Test the manual download-only trigger."""
        result = self.invoke(runner, vault, "download")

        assert result.exit_code == 0
        marker = json.loads((vault / ".obsidian" / "download-trigger").read_text())
        assert marker["trigger"] == "download-only"

    def test_trigger_failure_exits_nonzero(self, runner, vault):
        """Test that a marker write failure is reported."""
        with patch("vault_sync.sync.marker_channel.os.replace", side_effect=OSError("read-only")):
            result = self.invoke(runner, vault, "sync-now")

        assert result.exit_code == 1
        assert "Trigger failed" in result.output

    def test_set_interval(self, runner, vault, settings_file):
        """Test a valid interval is persisted."""
        result = self.invoke(runner, vault, "set-interval", "30")

        assert result.exit_code == 0
        assert json.loads(settings_file.read_text())["syncInterval"] == 30

    def test_set_interval_below_minimum(self, runner, vault, settings_file):
        """Test that intervals under five seconds are rejected."""
        result = self.invoke(runner, vault, "set-interval", "3")

        assert result.exit_code == 1
        assert not settings_file.exists()

    def test_toggle(self, runner, vault, settings_file):
        """Test toggling auto sync twice."""
        result = self.invoke(runner, vault, "toggle")
        assert result.exit_code == 0
        assert "Auto sync disabled" in result.output
        assert json.loads(settings_file.read_text())["enabled"] is False

        result = self.invoke(runner, vault, "toggle")
        assert "Auto sync enabled" in result.output
        assert json.loads(settings_file.read_text())["enabled"] is True

    def test_notices(self, runner, vault, settings_file):
        """Test switching notifications off."""
        result = self.invoke(runner, vault, "notices", "off")

        assert result.exit_code == 0
        assert json.loads(settings_file.read_text())["showNotices"] is False

    def test_notices_rejects_unknown_state(self, runner, vault):
        result = self.invoke(runner, vault, "notices", "maybe")

        assert result.exit_code == 2

    def test_reset_clears_watermarks(self, runner, vault, settings_file):
        """Test that reset empties the saved sync times."""
        settings_file.parent.mkdir()
        settings_file.write_text(json.dumps({"lastSyncTimes": {"a.md": 1000}, "syncInterval": 20}))

        result = self.invoke(runner, vault, "reset", "--yes")

        assert result.exit_code == 0
        saved = json.loads(settings_file.read_text())
        assert saved["lastSyncTimes"] == {}
        assert saved["syncInterval"] == 20

    def test_reset_aborted(self, runner, vault, settings_file):
        """Test that declining the prompt changes nothing."""
        result = self.invoke(runner, vault, "reset", input="n\n")

        assert result.exit_code == 1
        assert not settings_file.exists()

    def test_status(self, runner, vault):
        """Test the status table."""
        marker_dir = vault / ".obsidian"
        marker_dir.mkdir()
        (marker_dir / "remote-change-1.json").write_text("{}")
        self.invoke(runner, vault, "sync-now")

        result = self.invoke(runner, vault, "status")

        assert result.exit_code == 0
        assert "Vault Sync Status" in result.output
        assert "Remote changes queued" in result.output

    def test_status_with_invalid_settings_file(self, runner, vault, settings_file):
        """Test that a bad saved value falls back to defaults instead of failing."""
        settings_file.parent.mkdir()
        settings_file.write_text(json.dumps({"syncInterval": 1}))

        result = self.invoke(runner, vault, "status")

        assert result.exit_code == 0
        assert "10s" in result.output

    def test_invalid_environment_configuration(self, runner, vault, monkeypatch):
        """Test that a bad configuration exits with a usage error code."""
        monkeypatch.setenv("VAULT_SYNC_SYNC_INTERVAL", "2")

        result = self.invoke(runner, vault, "status")

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output
