"""
Export-related settings for tiled_lua.
"""

import logging
from typing import TYPE_CHECKING, Optional

from ..export.profiles import PROFILES, OutputProfile, PolygonFormat, get_profile
from .types import ConfigError

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"


class ExportSettings:
    """Manages the default output profile and its overrides."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _get_str(self, key: str, default: str = "") -> str:
        """Type-safe string retrieval from settings."""
        value = self.settings.value(key, default)
        return str(value) if value is not None else default

    @property
    def profile_name(self) -> str:
        """Name of the output profile used when none is given explicitly."""
        return self._get_str("export/profile", DEFAULT_PROFILE)

    @profile_name.setter
    def profile_name(self, value: str) -> None:
        if value in PROFILES:
            self.settings.setValue("export/profile", value)
            self.settings.sync()
        else:
            logger.warning(f"Unknown output profile: {value}, keeping current: {self.profile_name}")

    @property
    def polygon_format(self) -> str:
        """Polygon encoding overriding the profile's own, empty for none."""
        return self._get_str("export/polygon_format", "")

    @polygon_format.setter
    def polygon_format(self, value: str) -> None:
        if not value or value in {f.value for f in PolygonFormat}:
            self.settings.setValue("export/polygon_format", value)
            self.settings.sync()
        else:
            logger.warning(f"Unknown polygon format: {value}, keeping current: {self.polygon_format!r}")

    @property
    def tiled_version(self) -> str:
        """Value written as `tiledversion`; empty keeps the map's own."""
        return self._get_str("export/tiled_version", "")

    @tiled_version.setter
    def tiled_version(self, value: str) -> None:
        self.settings.setValue("export/tiled_version", value)
        self.settings.sync()

    def build_profile(self, profile_name: Optional[str] = None, polygon_format: Optional[str] = None) -> OutputProfile:
        """Build the effective output profile.

        Args:
            profile_name: Profile to use instead of the stored one
            polygon_format: Polygon encoding to use instead of the stored one

        Raises:
            ConfigError: If a name does not match a known profile or format
        """
        name = profile_name or self.profile_name
        try:
            profile = get_profile(name)
        except KeyError as e:
            raise ConfigError(str(e)) from e

        fmt = polygon_format if polygon_format is not None else self.polygon_format
        if fmt:
            try:
                profile = profile.with_polygon_format(PolygonFormat(fmt))
            except ValueError as e:
                raise ConfigError(f"Unknown polygon format: {fmt!r}") from e
        return profile
