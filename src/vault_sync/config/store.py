"""
Persisted operator settings.

Stores the values an operator can change at runtime (interval, enabled flag,
notices, server URL) together with the per-file sync watermarks, using the
camelCase JSON layout of the vault plugin data file.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vault_sync.models.exceptions import ConfigurationError
from vault_sync.models.sync import MIN_POLL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class PersistedSettings(BaseModel):
    """Operator settings and watermark table as stored on disk."""

    server_url: str = Field(default="http://localhost:8080", alias="serverUrl")
    sync_interval: int = Field(default=10, ge=MIN_POLL_INTERVAL_SECONDS, alias="syncInterval")
    enabled: bool = Field(default=True)
    show_notices: bool = Field(default=True, alias="showNotices")
    last_sync_times: dict[str, int] = Field(default_factory=dict, alias="lastSyncTimes")

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)


class SettingsStore:
    """
    JSON-file backed store for ``PersistedSettings``.

    Missing keys fall back to the supplied defaults; a corrupt file is logged
    and replaced by the defaults on the next save.
    """

    def __init__(self, path: Path, defaults: PersistedSettings | None = None):
        self.path = path
        self.defaults = defaults or PersistedSettings()
        self._settings: PersistedSettings | None = None

    @property
    def settings(self) -> PersistedSettings:
        """Current settings, loaded on first access."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> PersistedSettings:
        """
        Load settings from disk merged over the defaults.

        Returns:
            The loaded settings (defaults when the file is absent or invalid)
        """
        data = self.defaults.model_dump(by_alias=True)

        if self.path.exists():
            try:
                stored = json.loads(self.path.read_text(encoding="utf-8"))
                if not isinstance(stored, dict):
                    raise ValueError("settings file must contain a JSON object")
                self._settings = PersistedSettings.model_validate({**data, **stored})
                logger.debug("Loaded settings from %s", self.path)
                return self._settings
            except (OSError, ValueError, ValidationError) as e:
                logger.warning("Ignoring unreadable settings file %s: %s", self.path, e)

        self._settings = PersistedSettings.model_validate(data)
        return self._settings

    def save(self) -> None:
        """
        Write the current settings atomically.

        Raises:
            OSError: If the file cannot be written
        """
        payload = self.settings.model_dump_json(by_alias=True, indent=2)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug("Saved settings to %s", self.path)

    def update(self, **changes) -> PersistedSettings:
        """
        Validate and apply changes, then save.

        Invalid values are rejected and nothing is changed.

        Raises:
            ConfigurationError: If a value fails validation
        """
        try:
            candidate = self.settings.model_copy(update=changes)
            PersistedSettings.model_validate(candidate.model_dump())
        except ValidationError as e:
            key = next(iter(changes), None)
            raise ConfigurationError(
                f"Invalid settings value: {e.errors()[0]['msg']}",
                config_key=key,
                actual_value=changes.get(key) if key else None,
            ) from e

        self._settings = candidate
        self.save()
        return candidate

    def load_watermarks(self) -> dict[str, int]:
        """Persisted ``lastSyncTimes`` table."""
        return dict(self.settings.last_sync_times)

    def save_watermarks(self, watermarks: dict[str, int]) -> None:
        """Replace the persisted watermark table and save."""
        self.settings.last_sync_times = dict(watermarks)
        self.save()
