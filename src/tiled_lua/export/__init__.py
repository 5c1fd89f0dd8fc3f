"""
Lua export of tile maps.

Provides the gid mapper, the streaming Lua table writer, output profiles
and the serializer/exporter built on top of them.
"""

from .errors import (
    ExportError, OutOfRangeIndex, ProtocolViolation,
    SinkError, SinkWriteError, SinkCommitError,
)
from .gid_mapper import (
    CellRef, IdRange, GidMapper, pack_cell_value, unpack_cell_value,
    FLIPPED_HORIZONTALLY_FLAG, FLIPPED_VERTICALLY_FLAG, FLIPPED_DIAGONALLY_FLAG,
    FLIP_FLAGS, GID_MASK,
)
from .table_writer import LuaTableWriter
from .profiles import (
    OutputProfile, DataFormat, PolygonFormat, DataLayout, LayerImages,
    PROFILES, get_profile,
)
from .serializer import MapSerializer, include_tile
from .save_file import SaveFile
from .exporter import LuaMapExporter, export_to_string

__all__ = [
    # Errors
    'ExportError',
    'OutOfRangeIndex',
    'ProtocolViolation',
    'SinkError',
    'SinkWriteError',
    'SinkCommitError',

    # Gid mapping
    'CellRef',
    'IdRange',
    'GidMapper',
    'pack_cell_value',
    'unpack_cell_value',
    'FLIPPED_HORIZONTALLY_FLAG',
    'FLIPPED_VERTICALLY_FLAG',
    'FLIPPED_DIAGONALLY_FLAG',
    'FLIP_FLAGS',
    'GID_MASK',

    # Writing
    'LuaTableWriter',
    'MapSerializer',
    'include_tile',
    'SaveFile',
    'LuaMapExporter',
    'export_to_string',

    # Profiles
    'OutputProfile',
    'DataFormat',
    'PolygonFormat',
    'DataLayout',
    'LayerImages',
    'PROFILES',
    'get_profile',
]
