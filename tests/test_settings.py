"""Tests for settings, logging setup and the command line entry point."""

import logging

import orjson
import pytest


@pytest.fixture
def settings_file(tmp_path):
    return tmp_path / "tiled_lua.ini"


@pytest.fixture
def restore_logging():
    """Undo handler changes made by setup_logging."""
    root = logging.getLogger()
    saved = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in saved:
            handler.close()
    root.handlers[:] = saved
    root.setLevel(level)


class TestSettingsInitialization:
    """Test settings initialization and basic operations."""

    def test_defaults(self, settings_file) -> None:
        from tiled_lua.settings import AppSettings

        settings = AppSettings(settings_file=settings_file)
        assert settings.export.profile_name == "default"
        assert settings.export.polygon_format == ""
        assert settings.console_logging
        assert not settings.file_logging
        assert settings.get_settings_file_path().endswith("tiled_lua.ini")

    def test_values_persist(self, settings_file) -> None:
        from tiled_lua.settings import AppSettings

        settings = AppSettings(settings_file=settings_file)
        settings.export.profile_name = "moai"
        settings.export.polygon_format = "pairs"
        settings.console_use_colors = False
        settings.sync()

        reloaded = AppSettings(settings_file=settings_file)
        assert reloaded.export.profile_name == "moai"
        assert reloaded.export.polygon_format == "pairs"
        assert not reloaded.console_use_colors

    def test_profiles_are_separate(self, settings_file) -> None:
        from tiled_lua.settings import AppSettings

        AppSettings(settings_file=settings_file).export.profile_name = "tiled"
        other = AppSettings(profile="other", settings_file=settings_file)
        assert other.export.profile_name == "default"

    def test_invalid_values_are_ignored(self, settings_file) -> None:
        from tiled_lua.settings import AppSettings

        settings = AppSettings(settings_file=settings_file)
        settings.export.profile_name = "unknown"
        settings.export.polygon_format = "triangles"
        settings.console_log_level = "LOUD"
        assert settings.export.profile_name == "default"
        assert settings.export.polygon_format == ""
        assert settings.console_log_level == "WARNING"

    def test_log_file_path(self, settings_file) -> None:
        from tiled_lua.settings import AppSettings

        settings = AppSettings(settings_file=settings_file)
        assert settings.log_file_path == "logs/tiled_lua.csv"

        settings.log_file_path = "out/run.csv"
        assert AppSettings(settings_file=settings_file).log_file_path == "out/run.csv"

        settings.log_file_path = ""
        assert settings.log_file_path == "logs/tiled_lua.csv"


class TestExportProfileSettings:
    def test_build_default_profile(self, settings_file) -> None:
        from tiled_lua.export import PROFILES
        from tiled_lua.settings import AppSettings

        settings = AppSettings(settings_file=settings_file)
        assert settings.export.build_profile() == PROFILES["default"]

    def test_build_with_overrides(self, settings_file) -> None:
        from tiled_lua.export import DataFormat, PolygonFormat
        from tiled_lua.settings import AppSettings

        settings = AppSettings(settings_file=settings_file)
        settings.export.polygon_format = "optimal"
        profile = settings.export.build_profile("moai")
        assert profile.data_format is DataFormat.MOAI
        assert profile.polygon_format is PolygonFormat.OPTIMAL

        profile = settings.export.build_profile("moai", "full")
        assert profile.polygon_format is PolygonFormat.FULL

    def test_build_unknown_profile(self, settings_file) -> None:
        from tiled_lua.settings import AppSettings, ConfigError

        settings = AppSettings(settings_file=settings_file)
        with pytest.raises(ConfigError):
            settings.export.build_profile("nonexistent")
        with pytest.raises(ConfigError):
            settings.export.build_profile("default", "triangles")


class TestSettingsValidation:
    def test_valid_defaults(self, settings_file) -> None:
        from tiled_lua.settings import AppSettings

        result = AppSettings(settings_file=settings_file).validate()
        assert result.is_valid
        assert result.errors == []

    def test_unknown_stored_profile(self, settings_file) -> None:
        from tiled_lua.settings import AppSettings

        settings = AppSettings(settings_file=settings_file)
        settings.settings.setValue("export/profile", "bogus")
        settings.settings.setValue("export/polygon_format", "triangles")
        result = settings.validate()
        assert not result.is_valid
        assert len(result.errors) == 2

    def test_all_logging_disabled_warns(self, settings_file) -> None:
        from tiled_lua.settings import AppSettings

        settings = AppSettings(settings_file=settings_file)
        settings.console_logging = False
        result = settings.validate()
        assert result.is_valid
        assert result.warnings


class TestUtilsLogging:
    """Test logging configuration."""

    def test_console_logging(self, settings_file, restore_logging) -> None:
        from tiled_lua.settings import AppSettings
        from tiled_lua.utils.logging_config import ColoredFormatter, setup_logging

        settings = AppSettings(settings_file=settings_file)
        settings.console_log_level = "ERROR"
        setup_logging(settings)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert handlers[0].level == logging.ERROR
        assert isinstance(handlers[0].formatter, ColoredFormatter)
        assert logging.getLogger("tiled_lua").level == logging.DEBUG

    def test_file_logging(self, settings_file, tmp_path, monkeypatch, restore_logging) -> None:
        from tiled_lua.settings import AppSettings
        from tiled_lua.utils.logging_config import setup_logging

        monkeypatch.chdir(tmp_path)
        settings = AppSettings(settings_file=settings_file)
        settings.console_logging = False
        settings.file_logging = True
        setup_logging(settings)

        logging.getLogger("tiled_lua.test").info('quoted "value"')
        for handler in logging.getLogger().handlers:
            handler.flush()

        text = (tmp_path / settings.log_file_path).read_text(encoding="utf-8")
        assert '"tiled_lua.test"' in text
        assert 'quoted ""value""' in text

    def test_file_logging_custom_path(self, settings_file, tmp_path, restore_logging) -> None:
        from tiled_lua.settings import AppSettings
        from tiled_lua.utils.logging_config import setup_logging

        target = tmp_path / "nested" / "export.csv"
        settings = AppSettings(settings_file=settings_file)
        settings.console_logging = False
        settings.file_logging = True
        settings.log_file_path = target
        setup_logging(settings)

        logging.getLogger("tiled_lua.test").warning("custom")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert '"custom"' in target.read_text(encoding="utf-8")

    def test_csv_formatter(self) -> None:
        from tiled_lua.utils.logging_config import CSVFormatter

        record = logging.LogRecord("tiled_lua.x", logging.WARNING, __file__, 12, "a;b", None, None)
        line = CSVFormatter(datefmt="%Y").format(record)
        assert line.endswith('"tiled_lua.x";"12";"a;b"')
        assert ";WARNING ;" in line


class TestCommandLine:
    """Test the `tiled-lua` entry point."""

    def _write_map(self, tmp_path):
        data = {
            "type": "map",
            "orientation": "orthogonal",
            "width": 1,
            "height": 1,
            "tilewidth": 8,
            "tileheight": 8,
            "tilesets": [{"firstgid": 1, "name": "t", "tilewidth": 8, "tileheight": 8, "tilecount": 1}],
            "layers": [{"type": "tilelayer", "name": "L", "width": 1, "height": 1, "data": [1]}],
        }
        path = tmp_path / "level.tmj"
        path.write_bytes(orjson.dumps(data))
        return path

    def test_export(self, tmp_path, settings_file, restore_logging) -> None:
        from tiled_lua.__main__ import main

        path = self._write_map(tmp_path)
        assert main([str(path), "--settings", str(settings_file)]) == 0
        text = (tmp_path / "level.lua").read_text(encoding="utf-8")
        assert "{ 1 }" in text

    def test_export_with_profile(self, tmp_path, settings_file, restore_logging) -> None:
        from tiled_lua.__main__ import main

        path = self._write_map(tmp_path)
        out = tmp_path / "out.lua"
        assert main([str(path), str(out), "--profile", "moai", "--settings", str(settings_file)]) == 0
        assert '["L"] = {' in out.read_text(encoding="utf-8")

    def test_missing_input(self, tmp_path, settings_file, restore_logging) -> None:
        from tiled_lua.__main__ import main

        assert main([str(tmp_path / "none.tmj"), "--settings", str(settings_file)]) == 1

    def test_invalid_settings(self, tmp_path, settings_file, restore_logging) -> None:
        from tiled_lua.__main__ import main
        from tiled_lua.settings import AppSettings

        settings = AppSettings(settings_file=settings_file)
        settings.settings.setValue("export/profile", "bogus")
        settings.sync()

        path = self._write_map(tmp_path)
        assert main([str(path), "--settings", str(settings_file)]) == 1
        assert not (tmp_path / "level.lua").exists()
