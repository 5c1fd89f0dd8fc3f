"""
Logging-related settings for tiled_lua.

Console output is on by default; the CSV log file is opt-in and its
location can be changed per settings profile.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE_PATH = "logs/tiled_lua.csv"

VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings:
    """Console and file logging options."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _get_str(self, key: str, default: str = "") -> str:
        value = self.settings.value(key, default)
        return str(value) if value is not None else default

    def _get_bool(self, key: str, default: bool = False) -> bool:
        # INI files hand booleans back as strings
        value = self.settings.value(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes")
        return bool(value) if value is not None else default

    def _set(self, key: str, value: Union[str, bool]) -> None:
        self.settings.setValue(key, value)
        self.settings.sync()

    # === CONSOLE ===

    @property
    def console_logging(self) -> bool:
        """Check if console logging is enabled."""
        return self._get_bool("logging/console_enabled", True)

    @console_logging.setter
    def console_logging(self, value: bool) -> None:
        """Enable or disable the console handler."""
        self._set("logging/console_enabled", value)

    @property
    def console_log_level(self) -> str:
        """Minimum level shown on the console, WARNING by default."""
        return self._get_str("logging/console_level", "WARNING")

    @console_log_level.setter
    def console_log_level(self, value: str) -> None:
        """Set the console level; unknown level names are ignored."""
        level = value.upper()
        if level not in VALID_LEVELS:
            logger.warning(
                f"Invalid console log level: {value}, keeping current: {self.console_log_level}"
            )
            return
        self._set("logging/console_level", level)

    @property
    def console_use_colors(self) -> bool:
        return self._get_bool("logging/console_use_colors", True)

    @console_use_colors.setter
    def console_use_colors(self, value: bool) -> None:
        """Toggle ANSI colors for level names."""
        self._set("logging/console_use_colors", value)

    # === FILE ===

    @property
    def file_logging(self) -> bool:
        """Check if the CSV log file is written."""
        return self._get_bool("logging/file_enabled", False)

    @file_logging.setter
    def file_logging(self, value: bool) -> None:
        self._set("logging/file_enabled", value)

    @property
    def log_file_path(self) -> str:
        """Location of the CSV log file, relative paths against the working directory."""
        return self._get_str("logging/file_path", DEFAULT_LOG_FILE_PATH) or DEFAULT_LOG_FILE_PATH

    @log_file_path.setter
    def log_file_path(self, value: Union[str, Path]) -> None:
        """Set the log file location; an empty value restores the default."""
        path = str(value).strip() if value else ""
        if path and not path.lower().endswith(".csv"):
            logger.warning(f"Log file {path} does not use the .csv suffix")
        self._set("logging/file_path", path)

    @property
    def log_file_absolute_path(self) -> Path:
        return Path(self.log_file_path).resolve()
