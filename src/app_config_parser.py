"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from app_config_schema import (
    DEFAULT_DATA_FILE,
    AppConfig,
    AppConfigurationError,
    PomodoroSettings,
    StorageSettings,
    UIServerSettings,
    XPSettings,
)


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str,
) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    pomodoro = _parse_pomodoro_settings(_section(raw, "pomodoro"))
    xp = _parse_xp_settings(_section(raw, "xp"))
    storage = _parse_storage_settings(_section(raw, "storage"), base_dir=base_dir)
    ui_server = _parse_ui_server_settings(_section(raw, "ui_server"))

    return AppConfig(
        pomodoro=pomodoro,
        xp=xp,
        storage=storage,
        ui_server=ui_server,
        source_file=source_file,
    )


def _parse_pomodoro_settings(section: Mapping[str, Any]) -> PomodoroSettings:
    settings = PomodoroSettings(
        work_duration_minutes=_as_positive_float(
            section.get("work_duration_minutes", 25),
            "pomodoro.work_duration_minutes",
        ),
        short_break_duration_minutes=_as_positive_float(
            section.get("short_break_duration_minutes", 5),
            "pomodoro.short_break_duration_minutes",
        ),
        long_break_duration_minutes=_as_positive_float(
            section.get("long_break_duration_minutes", 15),
            "pomodoro.long_break_duration_minutes",
        ),
        periods_before_long_break=_as_positive_int(
            section.get("periods_before_long_break", 4),
            "pomodoro.periods_before_long_break",
        ),
        poll_interval_seconds=_as_positive_float(
            section.get("poll_interval_seconds", 0.1),
            "pomodoro.poll_interval_seconds",
        ),
        render_interval_seconds=_as_positive_float(
            section.get("render_interval_seconds", 1.0),
            "pomodoro.render_interval_seconds",
        ),
    )

    # Sub-second minute values would collapse to a zero-length period.
    for field, seconds in (
        ("work_duration_minutes", settings.work_duration_seconds),
        ("short_break_duration_minutes", settings.short_break_duration_seconds),
        ("long_break_duration_minutes", settings.long_break_duration_seconds),
    ):
        if seconds <= 0:
            raise AppConfigurationError(
                f"pomodoro.{field} must be at least one second long."
            )

    if settings.poll_interval_seconds > settings.render_interval_seconds:
        raise AppConfigurationError(
            "pomodoro.poll_interval_seconds must not exceed "
            "pomodoro.render_interval_seconds."
        )
    return settings


def _parse_xp_settings(section: Mapping[str, Any]) -> XPSettings:
    return XPSettings(
        base_xp_per_story_point=_as_positive_int(
            section.get("base_xp_per_story_point", 10),
            "xp.base_xp_per_story_point",
        ),
        early_completion_bonus_percent=_as_positive_int(
            section.get("early_completion_bonus_percent", 20),
            "xp.early_completion_bonus_percent",
        ),
        xp_level_threshold_multiplier=_as_positive_int(
            section.get("xp_level_threshold_multiplier", 100),
            "xp.xp_level_threshold_multiplier",
        ),
    )


def _parse_storage_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> StorageSettings:
    data_file = _as_str(section.get("data_file", DEFAULT_DATA_FILE), "storage.data_file")
    if not data_file:
        raise AppConfigurationError("storage.data_file cannot be empty.")
    return StorageSettings(data_file=_resolve_path(base_dir, data_file))


def _parse_ui_server_settings(section: Mapping[str, Any]) -> UIServerSettings:
    return UIServerSettings(
        enabled=_as_bool(section.get("enabled", False), "ui_server.enabled"),
        host=_as_str(section.get("host", "127.0.0.1"), "ui_server.host"),
        port=_as_int(section.get("port", 8765), "ui_server.port"),
    )


def _section(root: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise AppConfigurationError(f"[{name}] must be a table.")
    return raw


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a number.")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a number.") from error
    raise AppConfigurationError(f"{field} must be a number.")


def _as_positive_int(value: Any, field: str) -> int:
    number = _as_int(value, field)
    if number <= 0:
        raise AppConfigurationError(f"{field} must be greater than zero, got: {number}")
    return number


def _as_positive_float(value: Any, field: str) -> float:
    number = _as_float(value, field)
    # NaN fails every comparison, so test for the accepted range.
    if not number > 0:
        raise AppConfigurationError(f"{field} must be greater than zero, got: {number}")
    return number


def _resolve_path(base_dir: Path, raw: str) -> str:
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)
