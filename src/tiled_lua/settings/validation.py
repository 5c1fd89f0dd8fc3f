"""
Settings validation system for tiled_lua.
"""

import logging
from typing import List, TYPE_CHECKING

from ..export.profiles import PROFILES, PolygonFormat
from .logging import VALID_LEVELS
from .types import ValidationResult

if TYPE_CHECKING:
    from .core import AppSettings

logger = logging.getLogger(__name__)


class SettingsValidator:
    """Validates configuration settings."""

    def __init__(self, settings: "AppSettings"):
        self.settings = settings

    def validate(self) -> ValidationResult:
        """Validate current configuration."""
        errors: List[str] = []
        warnings: List[str] = []

        profile_name = self.settings.export.profile_name
        if profile_name not in PROFILES:
            errors.append(f"Unknown output profile: {profile_name}")

        polygon_format = self.settings.export.polygon_format
        if polygon_format and polygon_format not in {f.value for f in PolygonFormat}:
            errors.append(f"Unknown polygon format: {polygon_format}")

        level = self.settings.console_log_level
        if level.upper() not in VALID_LEVELS:
            warnings.append(f"Invalid console log level: {level}, INFO will be used")

        if not self.settings.console_logging and not self.settings.file_logging:
            warnings.append("All logging output is disabled")

        return ValidationResult(
            is_valid=len(errors) == 0, errors=errors, warnings=warnings
        )
