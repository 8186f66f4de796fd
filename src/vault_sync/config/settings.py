"""
Configuration management for the vault sync system.

Handles environment variables and .env loading, and provides default
settings with validation for the tracker, coordinator and marker channel.
"""

import fnmatch
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from vault_sync.models.exceptions import raise_config_error
from vault_sync.models.sync import MIN_POLL_INTERVAL_SECONDS


class LogLevel(str, Enum):
    """Logging level enumeration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SyncConfig(BaseSettings):
    """
    Central configuration class for the vault sync system.

    Values here are process defaults. Operator-editable values (interval,
    enabled flag, notices, server URL) are overridden by the persisted
    settings file when it exists.
    """

    model_config = SettingsConfigDict(
        env_prefix="VAULT_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        use_enum_values=True,
    )

    # === Vault Configuration ===
    vault_path: Path = Field(default=Path("."), description="Root directory of the vault")
    vault_id: str | None = Field(default=None, description="Vault identifier written into markers")
    marker_dir: Path | None = Field(default=None, description="Shared marker directory (default <vault>/.obsidian)")
    settings_file: Path | None = Field(
        default=None, description="Persisted settings file (default <marker_dir>/vault-sync.json)"
    )
    tracked_file_extensions: list[str] = Field(default=[".md"], description="File extensions to track")
    ignored_patterns: list[str] = Field(
        default=["*.tmp", "*.swp", ".git/*", ".trash/*", ".DS_Store"], description="File patterns to ignore"
    )

    # === Sync Configuration ===
    server_url: str = Field(default="http://localhost:8080", description="Web server URL (informational)")
    sync_interval: int = Field(
        default=10, ge=MIN_POLL_INTERVAL_SECONDS, le=3600, description="Seconds between sync checks"
    )
    sync_enabled: bool = Field(default=True, description="Run periodic sync checks on start")
    show_notices: bool = Field(default=True, description="Show user-facing notifications")
    remote_poll_seconds: float = Field(default=3.0, gt=0, le=60.0, description="Remote change poll interval")
    bidirectional_settle_seconds: float = Field(
        default=3.0, gt=0, le=60.0, description="Settle timeout after a bidirectional handoff"
    )
    download_settle_seconds: float = Field(
        default=5.0, gt=0, le=60.0, description="Settle timeout after a download-only handoff"
    )
    remote_status_seconds: float = Field(
        default=3.0, ge=0, le=60.0, description="How long the 'Remote Change' status is shown"
    )

    # === Logging Configuration ===
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_file: Path | None = Field(default=None, description="Log file path (stderr if None)")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log message format"
    )
    debug_mode: bool = Field(default=False, description="Enable debug mode with verbose logging")

    @field_validator('tracked_file_extensions')
    @classmethod
    def validate_file_extensions(cls, v):
        """Ensure file extensions start with dot."""
        validated = []
        for ext in v:
            if not ext.startswith('.'):
                ext = f'.{ext}'
            validated.append(ext.lower())
        return validated

    @model_validator(mode='after')
    def validate_settle_times(self):
        """
        Ensure the default interval outlasts a bidirectional handoff.

        SyncAgent applies the same rule to saved and changed intervals.
        """
        if self.bidirectional_settle_seconds >= self.sync_interval:
            raise_config_error(
                "bidirectional_settle_seconds must be shorter than sync_interval",
                config_key="bidirectional_settle_seconds",
                expected_type="float < sync_interval",
                actual_value=self.bidirectional_settle_seconds,
            )
        return self

    def resolve_vault_id(self) -> str:
        """Identifier written into handoff markers."""
        return self.vault_id or str(self.vault_path.resolve())

    def resolve_marker_dir(self) -> Path:
        """Directory shared with the external sync agent."""
        if self.marker_dir is not None:
            return self.marker_dir
        return self.vault_path / ".obsidian"

    def resolve_settings_file(self) -> Path:
        """Location of the persisted operator settings."""
        if self.settings_file is not None:
            return self.settings_file
        return self.resolve_marker_dir() / "vault-sync.json"

    def is_file_tracked(self, file_path: str | Path) -> bool:
        """Check if a file type is tracked for changes."""
        extension = Path(file_path).suffix.lower()
        return extension in self.tracked_file_extensions

    def should_ignore_file(self, file_path: str | Path) -> bool:
        """Check if a file should be ignored based on patterns."""
        path_str = Path(file_path).as_posix()
        return any(fnmatch.fnmatch(path_str, pattern) for pattern in self.ignored_patterns)

    def get_log_config(self) -> dict[str, Any]:
        """Get logging configuration dictionary."""
        level = LogLevel.DEBUG.value if self.debug_mode else LogLevel(self.log_level).value
        config = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": self.log_format}},
            "handlers": {
                "default": {
                    "level": level,
                    "formatter": "standard",
                    "class": "logging.StreamHandler" if not self.log_file else "logging.FileHandler",
                }
            },
            "loggers": {"vault_sync": {"handlers": ["default"], "level": level, "propagate": False}},
        }

        if self.log_file:
            config["handlers"]["default"]["filename"] = str(self.log_file)

        return config


# Global configuration instance
_config: SyncConfig | None = None


def get_config() -> SyncConfig:
    """
    Get the global configuration instance.

    Creates a new instance on first call and reuses it for subsequent calls.
    """
    global _config
    if _config is None:
        _config = SyncConfig()
    return _config


def reload_config(**overrides: Any) -> SyncConfig:
    """Force reload the configuration from environment/files."""
    global _config
    _config = SyncConfig(**overrides)
    return _config


def set_config(config: SyncConfig) -> None:
    """
    Set a custom configuration instance.

    Primarily used for testing or advanced configuration scenarios.
    """
    global _config
    _config = config
