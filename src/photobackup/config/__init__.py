"""Configuration management for photo back-ups."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import (
    CURRENT_TIME_ZONE,
    BackupConfiguration,
    FolderStructure,
    LoggingSettings,
    MediaCategory,
    PhotoBackupConfig,
    invalidates_change_token,
)
from .resolver import overrides_from_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.photobackup/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # Photo back-up configuration file
    # Generated automatically; manage via `photobackup config edit` or `photobackup config set`.
    """
)


class ConfigManager:
    """Read and write ``config.yaml`` and resolve the effective settings."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            config_path: Location of the YAML file.
            env: Environment consulted for ``PHOTOBACKUP__`` overrides.
        """
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> PhotoBackupConfig:
        """Return the effective configuration.

        Args:
            cli_overrides: Values that win over every other source.
            include_env: Whether ``PHOTOBACKUP__`` variables are applied.
            ensure_file: Whether to write a default file when none exists.
            env_overrides: Environment to use instead of the manager's own.

        Returns:
            PhotoBackupConfig: Validated configuration.

        Raises:
            ConfigError: If the file or any override is invalid.
        """
        if ensure_file:
            self.ensure_exists()

        env_layer = None
        if include_env:
            env_layer = overrides_from_env(
                env_overrides if env_overrides is not None else self._env
            )
        return resolve_with_precedence(
            defaults=PhotoBackupConfig(),
            file_overrides=self.load_file_overrides(),
            env_overrides=env_layer,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the raw mapping stored in the YAML file, or {} when absent."""
        text = self.read_text()
        if not text:
            return {}
        try:
            raw = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def save(self, config: PhotoBackupConfig | Mapping[str, Any]) -> None:
        """Write settings to disk under the generated header and timestamp."""
        if isinstance(config, PhotoBackupConfig):
            data = config.model_dump(mode="json")
        else:
            data = dict(config)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(data, sort_keys=False)
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{body}", encoding="utf-8"
        )

    def ensure_exists(self) -> Path:
        """Write the default settings unless a configuration file already exists."""
        if not self._config_path.exists():
            self.save(PhotoBackupConfig())
        return self._config_path

    def read_text(self) -> str:
        """Return the configuration file contents, or "" when it is missing."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "CURRENT_TIME_ZONE",
    "BackupConfiguration",
    "FolderStructure",
    "LoggingSettings",
    "MediaCategory",
    "PhotoBackupConfig",
    "invalidates_change_token",
    "resolve_with_precedence",
    "ConfigError",
]
