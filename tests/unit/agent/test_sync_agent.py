"""Unit tests for the sync agent."""

import asyncio
import io
import json
from unittest.mock import Mock, patch

import pytest
from rich.console import Console
from vault_sync.agent import SyncAgent
from vault_sync.config import SettingsStore, SyncConfig
from vault_sync.models import CoordinatorState


class TestSyncAgent:
    """Test cases for SyncAgent."""

    @pytest.fixture
    def vault(self, tmp_path):
        """Create a vault with one note."""
        path = tmp_path / "vault"
        path.mkdir()
        (path / "a.md").write_text("# A")
        return path

    @pytest.fixture
    def config(self, vault):
        """Create a configuration with short delays."""
        return SyncConfig(
            vault_path=vault,
            vault_id="test-vault",
            bidirectional_settle_seconds=0.05,
            download_settle_seconds=0.05,
            remote_status_seconds=0.05,
            remote_poll_seconds=0.01,
        )

    @pytest.fixture
    def console(self):
        """Create a mock rich console."""
        return Mock(spec=Console)

    @pytest.fixture
    def agent(self, config, console):
        """Create a sync agent."""
        return SyncAgent(config, console=console)

    @pytest.fixture
    def marker_dir(self, vault):
        """Shared marker directory."""
        return vault / ".obsidian"

    @pytest.fixture
    def mock_observer(self):
        """Patch the watchdog observer."""
        with patch('vault_sync.monitoring.file_watcher.Observer') as mock_observer_class:
            mock_observer_class.return_value.is_alive.return_value = False
            yield mock_observer_class.return_value

    def test_initialization_uses_config_defaults(self, agent, config):
        """Test defaults when nothing is persisted yet."""
        assert agent.sync_state.enabled is True
        assert agent.sync_state.poll_interval_seconds == 10
        assert agent.notifier.enabled is True
        assert agent.status_label == "Stopped"
        assert agent.store.path == config.resolve_settings_file()

    def test_persisted_settings_override_config(self, config, marker_dir):
        """Test that saved operator settings win."""
        marker_dir.mkdir()
        config.resolve_settings_file().write_text(
            json.dumps({"syncInterval": 45, "enabled": False, "showNotices": False})
        )

        agent = SyncAgent(config)

        assert agent.sync_state.poll_interval_seconds == 45
        assert agent.sync_state.enabled is False
        assert agent.notifier.enabled is False

    @pytest.mark.asyncio
    async def test_start_and_stop(self, agent, mock_observer):
        """Test starting and stopping all components."""
        await agent.start()

        mock_observer.start.assert_called_once()
        assert agent.coordinator.state is CoordinatorState.RUNNING
        assert agent.remote_watcher.is_running
        assert agent.status_label == "Running"

        agent.stop()

        assert agent.coordinator.state is CoordinatorState.STOPPED
        assert not agent.remote_watcher.is_running
        assert agent.status_label == "Stopped"

    @pytest.mark.asyncio
    async def test_start_disabled(self, config, marker_dir, mock_observer):
        """Test that a disabled agent still watches for remote changes."""
        marker_dir.mkdir()
        config.resolve_settings_file().write_text(json.dumps({"enabled": False}))
        agent = SyncAgent(config)

        await agent.start()

        assert agent.coordinator.state is CoordinatorState.STOPPED
        assert agent.remote_watcher.is_running
        agent.stop()

    @pytest.mark.asyncio
    async def test_run_for_duration(self, agent, mock_observer):
        """Test a bounded run."""
        await asyncio.wait_for(agent.run(duration=0.05), timeout=2.0)

        mock_observer.stop.assert_not_called()
        assert agent.coordinator.state is CoordinatorState.STOPPED

    @pytest.mark.asyncio
    async def test_change_is_handed_off_and_persisted(self, agent, config, marker_dir):
        """Test a local change flowing through to a marker and a saved watermark."""
        agent.tracker.submit("a.md", 1000)
        agent.tracker.submit("deleted.md", 1000)

        handed_off = agent.coordinator.tick()

        assert handed_off == {"a.md"}
        marker = json.loads((marker_dir / "sync-trigger").read_text())
        assert marker["vault"] == "test-vault"
        assert marker["trigger"] == "obsidian-plugin"
        saved = SettingsStore(config.resolve_settings_file()).load_watermarks()
        assert list(saved) == ["a.md"]

        await asyncio.wait_for(agent.coordinator.wait_settled(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_sync_now_and_download(self, agent, marker_dir):
        """Test manual triggers and their coalescing."""
        assert agent.sync_now() is True
        assert agent.download_remote() is False
        assert (marker_dir / "sync-trigger").exists()
        assert not (marker_dir / "download-trigger").exists()

        await asyncio.wait_for(agent.coordinator.wait_settled(), timeout=1.0)

        assert agent.download_remote() is True
        assert (marker_dir / "download-trigger").exists()
        await asyncio.wait_for(agent.coordinator.wait_settled(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_toggle(self, agent, config):
        """Test toggling persists the flag and starts or stops checks."""
        agent.coordinator.start()

        assert agent.toggle() is False
        assert agent.coordinator.state is CoordinatorState.STOPPED
        assert SettingsStore(config.resolve_settings_file()).settings.enabled is False

        assert agent.toggle() is True
        assert agent.coordinator.state is CoordinatorState.RUNNING
        agent.coordinator.stop()

    @pytest.mark.asyncio
    async def test_set_interval(self, agent, config):
        """Test interval changes at the configuration boundary."""
        agent.coordinator.start()

        assert agent.set_interval(3) is False
        assert agent.sync_state.poll_interval_seconds == 10

        assert agent.set_interval(20) is True
        assert agent.sync_state.poll_interval_seconds == 20
        assert SettingsStore(config.resolve_settings_file()).settings.sync_interval == 20
        agent.coordinator.stop()

    @pytest.mark.asyncio
    async def test_set_interval_must_exceed_settle_time(self, vault):
        """Test that an interval the handoff would not settle within is rejected."""
        agent = SyncAgent(SyncConfig(vault_path=vault, bidirectional_settle_seconds=8.0))

        assert agent.set_interval(6) is False
        assert agent.set_interval(8) is False
        assert agent.sync_state.poll_interval_seconds == 10

        assert agent.set_interval(9) is True
        assert agent.sync_state.poll_interval_seconds == 9
        agent.coordinator.stop()

    def test_saved_interval_within_settle_time_is_replaced(self, vault, marker_dir):
        """Test that a saved interval shorter than the settle time falls back to the configured one."""
        marker_dir.mkdir()
        config = SyncConfig(vault_path=vault, bidirectional_settle_seconds=8.0, sync_interval=20)
        config.resolve_settings_file().write_text(json.dumps({"syncInterval": 6}))

        agent = SyncAgent(config)

        assert agent.sync_state.poll_interval_seconds == 20

    def test_set_show_notices(self, agent, console, config):
        """Test switching notices off."""
        agent.set_show_notices(False)
        agent.notifier.notify("hidden")

        console.print.assert_not_called()
        assert SettingsStore(config.resolve_settings_file()).settings.show_notices is False

    @pytest.mark.asyncio
    async def test_remote_change_updates_status(self, agent, console, marker_dir):
        """Test the remote change status and its revert."""
        agent.coordinator.start()
        marker_dir.mkdir(exist_ok=True)
        (marker_dir / "remote-change-1.json").write_text(json.dumps({"file": "b.md", "timestamp": 1}))

        notices = agent.remote_watcher.poll()

        assert [n.file for n in notices] == ["b.md"]
        assert agent.status_label == "Remote Change"
        assert "Remote change detected: b.md" in console.print.call_args.args[0]

        await asyncio.sleep(0.1)
        assert agent.status_label == "Running"
        agent.coordinator.stop()

    @pytest.mark.asyncio
    async def test_remote_change_with_bracketed_name(self, config, marker_dir):
        """Test that console markup characters in a file name are shown as written."""
        console = Console(file=io.StringIO(), record=True, width=200)
        agent = SyncAgent(config, console=console)
        marker_dir.mkdir(exist_ok=True)
        (marker_dir / "remote-change-1.json").write_text(json.dumps({"file": "notes/[/x] plan.md"}))

        notices = agent.remote_watcher.poll()

        assert [n.file for n in notices] == ["notes/[/x] plan.md"]
        assert agent.status_label == "Remote Change"
        assert "Remote change detected: notes/[/x] plan.md" in console.export_text()
        agent.stop()

    def test_reset_tracking(self, agent, config):
        """Test that reset clears persisted watermarks."""
        agent.tracker.record("a.md", 1000)
        agent.tracker.mark_synced(["a.md"], 2000)

        agent.reset_tracking()

        assert agent.tracker.dirty_since() == set()
        assert SettingsStore(config.resolve_settings_file()).load_watermarks() == {}

    def test_get_status(self, agent):
        """Test status reporting."""
        status = agent.get_status()

        assert status["status"] == "Stopped"
        assert status["coordinator"]["state"] == "Stopped"
        assert status["file_watcher"]["is_watching"] is False
        assert status["remote_changes"]["delivered"] == 0
        assert status["server_url"] == "http://localhost:8080"
