from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for older runtimes
    import tomli as tomllib  # type: ignore

from app_config_parser import parse_app_config
from app_config_schema import (
    DEFAULT_CONFIG_FILE,
    AppConfig,
    AppConfigurationError,
    PomodoroSettings,
    StorageSettings,
    UIServerSettings,
    XPSettings,
)

CONFIG_FILE_ENV = "TICKET_HERO_CONFIG_FILE"

__all__ = [
    "AppConfig",
    "AppConfigurationError",
    "CONFIG_FILE_ENV",
    "PomodoroSettings",
    "StorageSettings",
    "UIServerSettings",
    "XPSettings",
    "load_app_config",
    "resolve_config_path",
]


def resolve_config_path(
    config_path: str | None = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> tuple[Path, bool]:
    """Return the config path and whether it was requested explicitly."""
    env = environ if environ is not None else os.environ
    env_path = env.get(CONFIG_FILE_ENV, "").strip() or None
    raw = config_path or env_path or DEFAULT_CONFIG_FILE
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    return path, bool(config_path or env_path)


def load_app_config(
    config_path: str | None = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    path, explicit = resolve_config_path(config_path, environ=environ)
    if not path.exists():
        if explicit:
            raise AppConfigurationError(f"Config file not found: {path}")
        # No config.toml next to the user: run on documented defaults.
        return parse_app_config({}, base_dir=path.parent, source_file="")
    if not path.is_file():
        raise AppConfigurationError(f"Config path is not a file: {path}")

    try:
        with open(path, "rb") as fh:
            raw = tomllib.load(fh)
    except Exception as error:
        raise AppConfigurationError(f"Failed to parse config TOML: {error}") from error

    if not isinstance(raw, Mapping):
        raise AppConfigurationError("Root config TOML object must be a table.")

    return parse_app_config(raw, base_dir=path.parent, source_file=str(path))
