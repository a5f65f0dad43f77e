"""Configuration discovery with XDG paths and precedence resolution.

specgraph is a library, so configuration is optional: every entry point
accepts explicit :class:`~specgraph.models.LoaderConfig` /
:class:`~specgraph.models.ParserConfig` instances. When a caller wants the
user's or the project's settings, :func:`resolve_config` assembles them:

* **Global config** -- ``$XDG_CONFIG_HOME/specgraph/config.json`` on
  Linux/BSD, ``~/.specgraph/config.json`` elsewhere. See
  :func:`get_config_dir` and :func:`load_global_config`.
* **Project config** -- ``./specgraph.json`` in the working directory. See
  :func:`load_project_config`.
* **Environment** -- ``SPECGRAPH_TIMEOUT`` and ``SPECGRAPH_VERIFY_SSL``.
* **Explicit arguments** passed to :func:`resolve_config`.

Both files hold the JSON form of :class:`~specgraph.models.SpecgraphConfig`.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from specgraph.exceptions import ConfigError
from specgraph.models import SpecgraphConfig

_APP_NAME = "specgraph"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "specgraph.json"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the configuration directory (not created on disk).

    On Linux/BSD: ``$XDG_CONFIG_HOME/specgraph/`` (default ``~/.config/specgraph/``).
    On macOS/Windows: ``~/.specgraph/``.

    Returns:
        Absolute path to the configuration directory.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        return base / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


# --- Config files ---


def _read_json(path: Path) -> Any:
    """Read and decode a JSON file, mapping failures to :class:`ConfigError`."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def load_global_config() -> SpecgraphConfig:
    """Load the user-wide configuration from the config directory.

    Returns:
        The deserialised :class:`~specgraph.models.SpecgraphConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = get_config_dir() / _CONFIG_FILENAME
    if not path.is_file():
        return SpecgraphConfig()
    data = _read_json(path)
    try:
        return SpecgraphConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./specgraph.json``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge *override* into a copy of *base*, recursing into nested dicts."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_bool(name: str) -> Optional[bool]:
    """Read a boolean environment variable, ``None`` when unset."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"Environment variable {name} must be a boolean, got {raw!r}")


def _env_float(name: str) -> Optional[float]:
    """Read a numeric environment variable, ``None`` when unset."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"Environment variable {name} must be a number, got {raw!r}") from exc


# --- Precedence resolution ---


def resolve_config(
    timeout: Optional[float] = None,
    verify_ssl: Optional[bool] = None,
) -> SpecgraphConfig:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. Explicit arguments (``timeout``, ``verify_ssl``)
        2. Environment variables (``SPECGRAPH_TIMEOUT``, ``SPECGRAPH_VERIFY_SSL``)
        3. Project config (``./specgraph.json``)
        4. User config (``~/.config/specgraph/config.json``)
        5. Defaults

    Returns:
        The effective :class:`~specgraph.models.SpecgraphConfig`.

    Raises:
        ConfigError: If any layer is malformed.
    """
    # 5 + 4. Defaults and user config
    config = load_global_config()

    # 3. Project-local config
    project = load_project_config()
    if project is not None:
        merged = _deep_merge(config.model_dump(mode="json"), project)
        try:
            config = SpecgraphConfig.model_validate(merged)
        except ValidationError as exc:
            raise ConfigError(f"Invalid project config: {exc}") from exc

    loader_overrides: dict[str, Any] = {}

    # 2. Environment
    env_timeout = _env_float("SPECGRAPH_TIMEOUT")
    if env_timeout is not None:
        loader_overrides["timeout"] = env_timeout
    env_verify = _env_bool("SPECGRAPH_VERIFY_SSL")
    if env_verify is not None:
        loader_overrides["verify_ssl"] = env_verify

    # 1. Explicit arguments
    if timeout is not None:
        loader_overrides["timeout"] = timeout
    if verify_ssl is not None:
        loader_overrides["verify_ssl"] = verify_ssl

    if loader_overrides:
        config = config.model_copy(
            update={"loader": config.loader.model_copy(update=loader_overrides)}
        )
    return config
