"""Map model and loading for tiled_lua."""

from .models import (
    Properties,
    Orientation,
    StaggerAxis,
    StaggerIndex,
    ObjectShape,
    Color,
    Frame,
    Terrain,
    Tile,
    Tileset,
    Cell,
    EMPTY_CELL,
    Layer,
    TileLayer,
    MapObject,
    ObjectGroup,
    ImageLayer,
    Map,
)
from .loader import MapLoader, GidDecoder, parse_properties

__all__ = [
    "Properties",
    "Orientation",
    "StaggerAxis",
    "StaggerIndex",
    "ObjectShape",
    "Color",
    "Frame",
    "Terrain",
    "Tile",
    "Tileset",
    "Cell",
    "EMPTY_CELL",
    "Layer",
    "TileLayer",
    "MapObject",
    "ObjectGroup",
    "ImageLayer",
    "Map",
    "MapLoader",
    "GidDecoder",
    "parse_properties",
]
