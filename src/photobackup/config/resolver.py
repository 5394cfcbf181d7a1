"""Layering of configuration sources."""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import PhotoBackupConfig

ENV_PREFIX = "PHOTOBACKUP__"


def resolve_with_precedence(
    *,
    defaults: PhotoBackupConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> PhotoBackupConfig:
    """Layer configuration sources over the defaults and validate the result.

    Later layers win: defaults < file < environment < CLI. Keys may be nested
    mappings or dotted paths such as ``backup.album_id``.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML file.
        env_overrides: Values derived from ``PHOTOBACKUP__`` variables.
        cli_overrides: Values given on the command line.

    Returns:
        PhotoBackupConfig: Validated configuration.

    Raises:
        ConfigError: If a layer is malformed or the merged values are invalid.
    """
    merged: dict[str, Any] = defaults.model_dump(mode="json")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for label, layer in layers:
        if layer:
            merged = _deep_merge(merged, _expand_dotted(layer, label))

    try:
        return PhotoBackupConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def overrides_from_env(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``PHOTOBACKUP__SECTION__KEY`` variables into nested overrides.

    Values are parsed as YAML scalars so ``true`` or ``[photo, video]`` keep
    their types; unparsable values are used verbatim.
    """
    overrides: dict[str, Any] = {}
    for name, raw in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        path = [part.lower() for part in name[len(ENV_PREFIX) :].split("__") if part]
        if not path:
            continue
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        overrides = _deep_merge(overrides, _nest(path, value))
    return overrides


def _expand_dotted(layer: Mapping[str, Any], label: str) -> dict[str, Any]:
    if not isinstance(layer, Mapping):
        raise ConfigError(f"{label.capitalize()} overrides must be a mapping.")
    expanded: dict[str, Any] = {}
    for key, value in layer.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label.capitalize()} override keys must be strings.")
        if isinstance(value, Mapping):
            value = _expand_dotted(value, label)
        expanded = _deep_merge(expanded, _nest(key.split("."), value))
    return expanded


def _nest(path: list[str], value: Any) -> dict[str, Any]:
    node: Any = value
    for segment in reversed(path):
        node = {segment: node}
    return node


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "resolve_with_precedence", "overrides_from_env"]
