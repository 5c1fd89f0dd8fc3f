"""
tiled_lua: export Tiled maps as Lua tables

Loads Tiled JSON maps and writes them as Lua source files returning a
single table, in the generic layout or in MOAI-oriented variants.
"""

__version__ = "0.1.0"
__author__ = "tiled_lua Contributors"

from .export import (
    GidMapper, LuaTableWriter, MapSerializer, LuaMapExporter,
    OutputProfile, get_profile, export_to_string,
)
from .model import Map, MapLoader
from .utils.logging_config import setup_logging

__all__ = [
    # Export
    'GidMapper',
    'LuaTableWriter',
    'MapSerializer',
    'LuaMapExporter',
    'OutputProfile',
    'get_profile',
    'export_to_string',

    # Model
    'Map',
    'MapLoader',

    # Logging
    'setup_logging',
]
