import tempfile
import textwrap
import unittest
from pathlib import Path
from unittest.mock import patch

from app_config import (
    CONFIG_FILE_ENV,
    AppConfigurationError,
    load_app_config,
    resolve_config_path,
)


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class AppConfigLoadingTests(unittest.TestCase):
    def test_load_app_config_reads_all_sections(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            config_path = root / "config.toml"
            _write_text(
                config_path,
                textwrap.dedent(
                    """
                    [pomodoro]
                    work_duration_minutes = 50
                    short_break_duration_minutes = 10
                    long_break_duration_minutes = 30
                    periods_before_long_break = 2
                    poll_interval_seconds = 0.2
                    render_interval_seconds = 0.5

                    [xp]
                    base_xp_per_story_point = 12
                    early_completion_bonus_percent = 25
                    xp_level_threshold_multiplier = 150

                    [storage]
                    data_file = "data/hero.json"

                    [ui_server]
                    enabled = true
                    host = "0.0.0.0"
                    port = 9000
                    """
                ).strip(),
            )

            app_config = load_app_config(str(config_path))

            self.assertEqual(str(config_path), app_config.source_file)
            self.assertEqual(3000, app_config.pomodoro.work_duration_seconds)
            self.assertEqual(600, app_config.pomodoro.short_break_duration_seconds)
            self.assertEqual(1800, app_config.pomodoro.long_break_duration_seconds)
            self.assertEqual(2, app_config.pomodoro.periods_before_long_break)
            self.assertEqual(0.2, app_config.pomodoro.poll_interval_seconds)
            self.assertEqual(0.5, app_config.pomodoro.render_interval_seconds)
            self.assertEqual(12, app_config.xp.base_xp_per_story_point)
            self.assertEqual(25, app_config.xp.early_completion_bonus_percent)
            self.assertEqual(150, app_config.xp.xp_level_threshold_multiplier)
            self.assertEqual(
                str((root / "data/hero.json").resolve()),
                app_config.storage.data_file,
            )
            self.assertTrue(app_config.ui_server.enabled)
            self.assertEqual("0.0.0.0", app_config.ui_server.host)
            self.assertEqual(9000, app_config.ui_server.port)

    def test_empty_config_uses_documented_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            config_path = root / "config.toml"
            _write_text(config_path, "")

            app_config = load_app_config(str(config_path))

            self.assertEqual(1500, app_config.pomodoro.work_duration_seconds)
            self.assertEqual(300, app_config.pomodoro.short_break_duration_seconds)
            self.assertEqual(900, app_config.pomodoro.long_break_duration_seconds)
            self.assertEqual(4, app_config.pomodoro.periods_before_long_break)
            self.assertEqual(10, app_config.xp.base_xp_per_story_point)
            self.assertEqual(20, app_config.xp.early_completion_bonus_percent)
            self.assertEqual(100, app_config.xp.xp_level_threshold_multiplier)
            self.assertEqual(
                str((root / "ticket-hero-data.json").resolve()),
                app_config.storage.data_file,
            )
            self.assertFalse(app_config.ui_server.enabled)

    def test_fractional_minutes_round_to_whole_seconds(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(
                config_path,
                "[pomodoro]\nwork_duration_minutes = 0.5\n",
            )

            app_config = load_app_config(str(config_path))

            self.assertEqual(30, app_config.pomodoro.work_duration_seconds)

    def test_rejects_non_positive_durations(self) -> None:
        for raw in ("0", "-5", "true", '"soon"'):
            with self.subTest(raw=raw):
                with tempfile.TemporaryDirectory() as temp_dir:
                    config_path = Path(temp_dir) / "config.toml"
                    _write_text(
                        config_path,
                        f"[pomodoro]\nwork_duration_minutes = {raw}\n",
                    )

                    with self.assertRaisesRegex(
                        AppConfigurationError,
                        "pomodoro.work_duration_minutes",
                    ):
                        load_app_config(str(config_path))

    def test_rejects_duration_shorter_than_one_second(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(
                config_path,
                "[pomodoro]\nshort_break_duration_minutes = 0.001\n",
            )

            with self.assertRaisesRegex(AppConfigurationError, "at least one second"):
                load_app_config(str(config_path))

    def test_rejects_poll_interval_longer_than_render_interval(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(
                config_path,
                textwrap.dedent(
                    """
                    [pomodoro]
                    poll_interval_seconds = 2.0
                    render_interval_seconds = 1.0
                    """
                ).strip(),
            )

            with self.assertRaisesRegex(AppConfigurationError, "poll_interval_seconds"):
                load_app_config(str(config_path))

    def test_rejects_zero_periods_before_long_break(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(
                config_path,
                "[pomodoro]\nperiods_before_long_break = 0\n",
            )

            with self.assertRaisesRegex(
                AppConfigurationError,
                "pomodoro.periods_before_long_break",
            ):
                load_app_config(str(config_path))

    def test_rejects_section_that_is_not_a_table(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(config_path, 'xp = "lots"\n')

            with self.assertRaisesRegex(AppConfigurationError, r"\[xp\] must be a table"):
                load_app_config(str(config_path))

    def test_invalid_toml_is_reported_as_configuration_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(config_path, "[pomodoro\nwork = ")

            with self.assertRaisesRegex(AppConfigurationError, "Failed to parse"):
                load_app_config(str(config_path))

    def test_missing_explicit_config_is_an_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            missing = Path(temp_dir) / "nope.toml"

            with self.assertRaisesRegex(AppConfigurationError, "Config file not found"):
                load_app_config(str(missing))

    def test_missing_config_from_environment_is_an_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            missing = Path(temp_dir) / "nope.toml"

            with self.assertRaises(AppConfigurationError):
                load_app_config(environ={CONFIG_FILE_ENV: str(missing)})

    def test_missing_default_config_falls_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            default_path = Path(temp_dir) / "config.toml"
            with patch(
                "app_config.resolve_config_path",
                return_value=(default_path, False),
            ):
                app_config = load_app_config(environ={})

            self.assertEqual("", app_config.source_file)
            self.assertEqual(1500, app_config.pomodoro.work_duration_seconds)
            self.assertEqual(
                str((Path(temp_dir) / "ticket-hero-data.json").resolve()),
                app_config.storage.data_file,
            )

    def test_resolve_config_path_prefers_argument_over_environment(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            argument = Path(temp_dir) / "a.toml"
            from_env = Path(temp_dir) / "b.toml"

            path, explicit = resolve_config_path(
                str(argument),
                environ={CONFIG_FILE_ENV: str(from_env)},
            )
            self.assertEqual(argument, path)
            self.assertTrue(explicit)

            path, explicit = resolve_config_path(environ={CONFIG_FILE_ENV: str(from_env)})
            self.assertEqual(from_env, path)
            self.assertTrue(explicit)

    def test_resolve_config_path_defaults_to_working_directory(self) -> None:
        path, explicit = resolve_config_path(environ={})

        self.assertEqual("config.toml", path.name)
        self.assertTrue(path.is_absolute())
        self.assertFalse(explicit)


if __name__ == "__main__":
    unittest.main()
