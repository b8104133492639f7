"""Dataclass schema objects used by runtime configuration loading."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_DATA_FILE = "ticket-hero-data.json"


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class PomodoroSettings:
    """Interval timer durations and cadences from `[pomodoro]`."""
    work_duration_minutes: float = 25.0
    short_break_duration_minutes: float = 5.0
    long_break_duration_minutes: float = 15.0
    periods_before_long_break: int = 4
    poll_interval_seconds: float = 0.1
    render_interval_seconds: float = 1.0

    @property
    def work_duration_seconds(self) -> int:
        return _minutes_to_seconds(self.work_duration_minutes)

    @property
    def short_break_duration_seconds(self) -> int:
        return _minutes_to_seconds(self.short_break_duration_minutes)

    @property
    def long_break_duration_seconds(self) -> int:
        return _minutes_to_seconds(self.long_break_duration_minutes)


@dataclass(frozen=True)
class XPSettings:
    """Experience point scoring rules from `[xp]`."""
    base_xp_per_story_point: int = 10
    early_completion_bonus_percent: int = 20
    xp_level_threshold_multiplier: int = 100


@dataclass(frozen=True)
class StorageSettings:
    """Location of the JSON data file from `[storage]`."""
    data_file: str = DEFAULT_DATA_FILE


@dataclass(frozen=True)
class UIServerSettings:
    """Live update websocket server settings from `[ui_server]`."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8765


@dataclass(frozen=True)
class AppConfig:
    """Complete typed runtime configuration loaded from `config.toml`."""
    pomodoro: PomodoroSettings
    xp: XPSettings
    storage: StorageSettings
    ui_server: UIServerSettings
    source_file: str


def _minutes_to_seconds(minutes: float) -> int:
    return int(round(minutes * 60))
