"""
Lua map exporter.

Entry point for writing a map to a `.lua` file. Failures of the output
medium are reported through `write()` returning False plus
`error_string`; the destination is only replaced once the whole
document was written.
"""

import io
import logging
from pathlib import Path
from typing import Optional, Union

from ..model.models import Map
from .errors import OutOfRangeIndex, ProtocolViolation, SinkError
from .profiles import OutputProfile
from .save_file import SaveFile
from .serializer import MapSerializer


class LuaMapExporter:
    """Writes maps as Lua files using one output profile."""

    name_filter = "Lua files (*.lua)"

    def __init__(self, profile: Optional[OutputProfile] = None, tiled_version: str = ""):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.profile = profile or OutputProfile()
        self.tiled_version = tiled_version
        self._error = ""

    @property
    def error_string(self) -> str:
        """Message describing why the last `write()` failed."""
        return self._error

    def write(self, map_: Map, file_name: Union[str, Path]) -> bool:
        """Export `map_` to `file_name`.

        Returns:
            True on success, False if the file could not be opened, written
            or saved (see `error_string`)

        Raises:
            OutOfRangeIndex: If the map references tiles outside its tilesets
            ProtocolViolation: On a table writer usage error
        """
        path = Path(file_name)
        self._error = ""

        try:
            sink = SaveFile(path)
        except OSError as e:
            self._error = "Could not open file for writing."
            self.logger.error(f"Could not open {path} for writing: {e}")
            return False

        with sink:
            serializer = MapSerializer(self.profile, map_dir=path.parent, tiled_version=self.tiled_version)
            try:
                serializer.serialize(map_, sink)
                sink.commit()
            except SinkError as e:
                self._error = str(e)
                self.logger.error(f"Export to {path} failed: {e}")
                return False
            except (OutOfRangeIndex, ProtocolViolation) as e:
                self._error = str(e)
                self.logger.error(f"Export to {path} aborted: {e}")
                raise

        self.logger.info(f"Exported map to {path} using profile '{self.profile.name}'")
        return True


def export_to_string(
    map_: Map,
    profile: Optional[OutputProfile] = None,
    map_dir: Optional[Union[str, Path]] = None,
    tiled_version: str = "",
) -> str:
    """Serialize `map_` into a Lua source string."""
    buffer = io.StringIO()
    MapSerializer(profile, map_dir=map_dir, tiled_version=tiled_version).serialize(map_, buffer)
    return buffer.getvalue()
