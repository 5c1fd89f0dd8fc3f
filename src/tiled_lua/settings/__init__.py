"""
Settings package for tiled_lua.

Configuration is stored with Qt's QSettings, either in the platform's
native store or in an explicit INI file.

Usage:
    from tiled_lua.settings import AppSettings

    settings = AppSettings()
    profile = settings.export.build_profile()
"""

from .core import AppSettings
from .types import ConfigError, ValidationResult
from .export import ExportSettings
from .logging import LoggingSettings

__all__ = [
    "AppSettings",
    "ConfigError",
    "ValidationResult",
    "ExportSettings",
    "LoggingSettings",
]
