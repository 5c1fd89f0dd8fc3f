"""
Core settings management for tiled_lua.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from PySide6.QtCore import QSettings

from .types import ValidationResult
from .validation import SettingsValidator
from .export import ExportSettings
from .logging import LoggingSettings

logger = logging.getLogger(__name__)


class AppSettings:
    """
    Configuration management using QSettings.

    Provides type-safe access to exporter settings with cross-platform
    storage. An explicit INI file can be used instead of the native store,
    which is what the command line `--settings` option does.
    """

    def __init__(
        self,
        profile: str = "default",
        settings_file: Optional[Union[str, Path]] = None,
    ):
        """Initialize settings for a profile.

        Args:
            profile: Settings profile name (default: "default")
            settings_file: Optional INI file to read and write instead of
                the platform's native settings store
        """
        if settings_file is not None:
            self.settings = QSettings(str(settings_file), QSettings.Format.IniFormat)
        else:
            self.settings = QSettings("tiled_lua", "tiled_lua")
        self.profile = profile

        # Use profile as a group: tiled_lua/<profile>/...
        self.settings.beginGroup(profile)

        self._validator = SettingsValidator(self)
        self._export = ExportSettings(self.settings)
        self._logging = LoggingSettings(self.settings)

        logger.debug(
            f"Settings initialized for profile '{profile}', stored at: {self.settings.fileName()}"
        )

    # === SUBSYSTEM ACCESS ===

    @property
    def export(self) -> ExportSettings:
        """Access export settings subsystem."""
        return self._export

    @property
    def logging(self) -> LoggingSettings:
        """Access logging settings subsystem."""
        return self._logging

    # === LOGGING SETTINGS (delegated) ===

    @property
    def console_logging(self) -> bool:
        """Check if console logging is enabled."""
        return self._logging.console_logging

    @console_logging.setter
    def console_logging(self, value: bool) -> None:
        self._logging.console_logging = value

    @property
    def console_log_level(self) -> str:
        """Get console logging level."""
        return self._logging.console_log_level

    @console_log_level.setter
    def console_log_level(self, value: str) -> None:
        self._logging.console_log_level = value

    @property
    def console_use_colors(self) -> bool:
        return self._logging.console_use_colors

    @console_use_colors.setter
    def console_use_colors(self, value: bool) -> None:
        self._logging.console_use_colors = value

    @property
    def file_logging(self) -> bool:
        """Check if file logging is enabled."""
        return self._logging.file_logging

    @file_logging.setter
    def file_logging(self, value: bool) -> None:
        self._logging.file_logging = value

    @property
    def log_file_path(self) -> str:
        return self._logging.log_file_path

    @log_file_path.setter
    def log_file_path(self, value: Union[str, Path]) -> None:
        self._logging.log_file_path = value

    @property
    def log_file_absolute_path(self) -> Path:
        return self._logging.log_file_absolute_path

    # === VALIDATION AND UTILITIES ===

    def validate(self) -> ValidationResult:
        """Validate current configuration."""
        return self._validator.validate()

    def get_settings_file_path(self) -> str:
        """Get path to settings file for debugging."""
        return self.settings.fileName()

    def sync(self) -> None:
        """Force synchronization of settings to storage."""
        self.settings.sync()
