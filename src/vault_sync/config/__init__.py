"""Configuration management and persisted settings."""

from vault_sync.config.settings import LogLevel, SyncConfig, get_config, reload_config, set_config
from vault_sync.config.store import PersistedSettings, SettingsStore

__all__ = [
    "SyncConfig",
    "LogLevel",
    "get_config",
    "reload_config",
    "set_config",
    "PersistedSettings",
    "SettingsStore",
]
