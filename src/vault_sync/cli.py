"""
Command line interface for vault sync.

Usage:
    vault-sync --vault PATH run [--duration SECONDS]
    vault-sync --vault PATH sync-now | download | reset | status
    vault-sync --vault PATH set-interval SECONDS | toggle | notices on|off
"""

import asyncio
import logging
import logging.config
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vault_sync.agent import SyncAgent
from vault_sync.config import PersistedSettings, SettingsStore, SyncConfig
from vault_sync.models import BaseError, ConfigurationError, HandoffMode, MarkerError
from vault_sync.sync import MarkerChannel
from vault_sync.tracking import ChangeTracker

logger = logging.getLogger(__name__)

console = Console()


def _open_store(config: SyncConfig) -> SettingsStore:
    return SettingsStore(
        config.resolve_settings_file(),
        defaults=PersistedSettings(
            server_url=config.server_url,
            sync_interval=config.sync_interval,
            enabled=config.sync_enabled,
            show_notices=config.show_notices,
        ),
    )


def _signal(config: SyncConfig, mode: HandoffMode) -> None:
    channel = MarkerChannel(config.resolve_marker_dir(), config.resolve_vault_id())
    try:
        request = channel.signal_handoff(mode)
    except MarkerError as e:
        console.print(f"❌ [red]Trigger failed:[/red] {e.message}")
        raise SystemExit(1) from e
    console.print(f"✅ Wrote [cyan]{request.marker_name}[/cyan] in {channel.marker_dir}")


@click.group()
@click.option(
    '--vault',
    '-d',
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help='Vault directory (defaults to VAULT_SYNC_VAULT_PATH or the current directory)',
)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def main(ctx: click.Context, vault: Path | None, verbose: bool):
    """Track vault changes and signal the external sync agent."""
    overrides = {}
    if vault is not None:
        overrides["vault_path"] = vault
    if verbose:
        overrides["debug_mode"] = True

    try:
        config = SyncConfig(**overrides)
    except (BaseError, ValueError) as e:
        console.print(f"❌ [red]Invalid configuration:[/red] {e}")
        raise SystemExit(2) from e

    logging.config.dictConfig(config.get_log_config())
    ctx.obj = config


@main.command()
@click.option('--duration', '-t', type=float, default=None, help='Stop after this many seconds')
@click.pass_obj
def run(config: SyncConfig, duration: float | None):
    """Watch the vault and hand changes to the sync agent until interrupted."""
    agent = SyncAgent(config, console=console)
    settings = agent.store.settings

    console.print(
        Panel.fit(
            f"📁 Vault: [cyan]{config.vault_path}[/cyan]\n"
            f"🔄 Interval: [yellow]{settings.sync_interval}s[/yellow] | "
            f"Auto sync: {'[green]enabled[/green]' if settings.enabled else '[red]disabled[/red]'}",
            title="Vault Sync",
            border_style="blue",
        )
    )

    try:
        asyncio.run(agent.run(duration))
    except KeyboardInterrupt:
        console.print("\n⚡ [yellow]Interrupted[/yellow]")
    except BaseError as e:
        console.print(f"❌ [red]Vault sync failed:[/red] {e}")
        logger.exception("Full error details:")
        raise SystemExit(1) from e


@main.command('sync-now')
@click.pass_obj
def sync_now(config: SyncConfig):
    """Request a bidirectional sync immediately."""
    _signal(config, HandoffMode.BIDIRECTIONAL)


@main.command()
@click.pass_obj
def download(config: SyncConfig):
    """Request a download of remote changes only."""
    _signal(config, HandoffMode.DOWNLOAD_ONLY)


@main.command()
@click.confirmation_option(prompt='Clear all change tracking history?')
@click.pass_obj
def reset(config: SyncConfig):
    """Clear change tracking history."""
    ChangeTracker(store=_open_store(config)).reset()
    console.print("🧹 Change tracking history cleared")


@main.command('set-interval')
@click.argument('seconds', type=int)
@click.pass_obj
def set_interval(config: SyncConfig, seconds: int):
    """Set how often to check for file changes (seconds, at least 5)."""
    try:
        _open_store(config).update(sync_interval=seconds)
    except ConfigurationError as e:
        console.print(f"❌ [red]{e.message}[/red]")
        raise SystemExit(1) from e
    console.print(f"✅ Check interval set to [yellow]{seconds}s[/yellow]")


@main.command()
@click.pass_obj
def toggle(config: SyncConfig):
    """Enable or disable automatic sync."""
    store = _open_store(config)
    settings = store.update(enabled=not store.settings.enabled)
    console.print("Auto sync enabled" if settings.enabled else "Auto sync disabled")


@main.command()
@click.argument('state', type=click.Choice(['on', 'off']))
@click.pass_obj
def notices(config: SyncConfig, state: str):
    """Turn user-facing notifications on or off."""
    _open_store(config).update(show_notices=state == 'on')
    console.print(f"Notifications {state}")


@main.command()
@click.pass_obj
def status(config: SyncConfig):
    """Show settings, tracked watermarks and pending markers."""
    store = _open_store(config)
    settings = store.settings
    channel = MarkerChannel(config.resolve_marker_dir(), config.resolve_vault_id())

    table = Table(title="📊 Vault Sync Status", show_header=True)
    table.add_column("Setting", style="cyan", width=22)
    table.add_column("Value", style="white")

    table.add_row("Vault", str(config.vault_path))
    table.add_row("Marker directory", str(channel.marker_dir))
    table.add_row("Server URL", settings.server_url)
    table.add_row("Auto sync", "enabled" if settings.enabled else "disabled")
    table.add_row("Check interval", f"{settings.sync_interval}s")
    table.add_row("Notifications", "on" if settings.show_notices else "off")
    table.add_row("Synced files", str(len(settings.last_sync_times)))

    for mode in HandoffMode:
        request = channel.read_handoff(mode)
        table.add_row(f"Pending {mode.value}", str(request.timestamp) if request else "-")

    try:
        table.add_row("Remote changes queued", str(len(channel.list_remote_changes())))
    except MarkerError as e:
        table.add_row("Remote changes queued", f"[red]{e.message}[/red]")

    console.print(table)


if __name__ == '__main__':
    main()
