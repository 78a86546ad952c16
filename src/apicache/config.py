"""Configuration loading with XDG paths, atomic writes, and precedence resolution.

This module handles persistent configuration for apicache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.apicache/`` on macOS and Windows. See :func:`get_config_dir`.
* **Config files** -- JSON documents deserialised into
  :class:`~apicache.models.ApiCacheConfig` by :func:`load_config` and
  written by :func:`save_config`.
* **Precedence resolution** -- :func:`resolve_config` merges explicit
  overrides, environment variables, an explicit config file, the
  project-local file and the user file into the effective configuration.

Only keys that a layer actually sets take part in the merge, so a project
file that only changes ``cache.directory`` keeps the rate-limiter settings
from the user file.
"""

from __future__ import annotations

import json
import logging
import os
import platform
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from apicache.exceptions import ConfigError
from apicache.fileio import atomic_write
from apicache.models import ApiCacheConfig

logger = logging.getLogger(__name__)

_APP_NAME = "apicache"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "apicache.json"

CONFIG_PATH_ENV = "APICACHE_CONFIG"
"""Environment variable naming an explicit config file."""

ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "APICACHE_CACHE_ENABLED": ("cache", "enabled"),
    "APICACHE_CACHE_DIR": ("cache", "directory"),
    "APICACHE_RATE_LIMIT_ENABLED": ("rate_limiter", "enabled"),
    "APICACHE_MIN_WAIT_MS": ("rate_limiter", "min_wait_ms_between_calls"),
    "APICACHE_RANDOM_MS": ("rate_limiter", "random_ms_addition"),
}
"""Environment variables mapped to ``(section, field)`` of the config."""


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the user configuration directory.

    On Linux/BSD: ``$XDG_CONFIG_HOME/apicache/`` (default ``~/.config/apicache/``).
    On macOS/Windows: ``~/.apicache/``.

    The directory is not created; reading a missing user config simply
    yields no settings.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        return base / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def user_config_path() -> Path:
    """Path to the user-wide config file."""
    return get_config_dir() / _CONFIG_FILENAME


def project_config_path() -> Path:
    """Path to the project-local config file in the working directory."""
    return Path.cwd() / _PROJECT_CONFIG_FILENAME


# --- Load / save ---


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def _validate(data: dict[str, Any], source: str) -> ApiCacheConfig:
    try:
        return ApiCacheConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config from {source}: {exc}") from exc


def load_config(path: Union[str, Path]) -> ApiCacheConfig:
    """Load and validate a single config file.

    Args:
        path: JSON file to read.

    Returns:
        The deserialised :class:`~apicache.models.ApiCacheConfig`.

    Raises:
        ConfigError: If the file does not exist, contains invalid JSON, or
            fails Pydantic validation.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    return _validate(_read_json(path), str(path))


def save_config(config: ApiCacheConfig, path: Union[str, Path]) -> None:
    """Persist a configuration atomically.

    Args:
        config: The configuration to save.
        path: Destination JSON file.
    """
    data = config.model_dump(mode="json")
    atomic_write(Path(path), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def _explicit_fields(data: dict[str, Any], source: str) -> dict[str, Any]:
    """Normalise one layer to the snake_case keys it explicitly sets."""
    return _validate(data, source).model_dump(exclude_unset=True)


def _deep_merge(base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in layer.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_layer() -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for var, (section, field) in ENV_OVERRIDES.items():
        value = os.environ.get(var)
        if value:
            layer.setdefault(section, {})[field] = value.strip()
    return layer


def resolve_config(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> ApiCacheConfig:
    """Resolve the effective configuration with the full precedence chain.

    Precedence (high to low):
        1. *overrides* (a partial config dict, e.g. from the host application)
        2. Environment variables (see :data:`ENV_OVERRIDES`)
        3. Explicit config file (*config_path*, else ``$APICACHE_CONFIG``)
        4. Project config (``./apicache.json``)
        5. User config (``~/.config/apicache/config.json``)
        6. Defaults

    Args:
        config_path: Optional explicit config file. Unlike the project and
            user files it must exist.
        overrides: Optional partial config applied last.

    Returns:
        The merged :class:`~apicache.models.ApiCacheConfig`.

    Raises:
        ConfigError: If any layer contains invalid JSON or values.
    """
    layers: list[tuple[str, dict[str, Any]]] = []

    for path in (user_config_path(), project_config_path()):
        if path.is_file():
            layers.append((str(path), _read_json(path)))

    explicit = config_path or os.environ.get(CONFIG_PATH_ENV)
    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        layers.append((str(path), _read_json(path)))

    env = _env_layer()
    if env:
        layers.append(("environment", env))
    if overrides:
        layers.append(("overrides", overrides))

    merged: dict[str, Any] = {}
    for source, data in layers:
        logger.debug("Applying config layer from %s", source)
        merged = _deep_merge(merged, _explicit_fields(data, source))

    return _validate(merged, "merged configuration")
