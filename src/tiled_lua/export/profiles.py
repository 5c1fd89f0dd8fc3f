"""
Output profiles selecting the shape of the exported Lua document.

Each variant is a value of one of the enums below; a profile bundles one
choice per variant. Every profile writes the same map information, the
choice only changes naming, nesting and size of the output.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Tuple


class DataFormat(Enum):
    """Overall naming and keying scheme."""
    TILED = "tiled"
    """Stock Tiled layout: positional tilesets/layers, `tilewidth` keys."""

    MOAI = "moai"
    """MOAI friendly layout: tables keyed by image/layer name, `cellwidth` keys."""


class PolygonFormat(Enum):
    """Encoding of polygon and polyline points."""
    FULL = "full"
    """{ { x = 1, y = 1 }, { x = 2, y = 2 } }"""

    PAIRS = "pairs"
    """{ { 1, 1 }, { 2, 2 } }"""

    OPTIMAL = "optimal"
    """{ x = { 1, 2 }, y = { 1, 2 } }"""

    SEQUENCE = "sequence"
    """{ 1, 1, 2, 2 }"""


class DataLayout(Enum):
    """Layout of tile layer data."""
    FLAT = "flat"
    """One flat sequence, a line break after every map row."""

    ROWS = "rows"
    """One compact table per map row."""

    NUMBERED_ROWS = "numbered_rows"
    """One compact table per map row, starting with the 1-based row number."""


class LayerImages(Enum):
    """Which tileset images are named on a tile layer (MOAI only)."""
    NONE = "none"
    FIRST = "first"
    """`image` key when the layer uses exactly one tileset."""

    ALL = "all"
    """`images` table listing the image of every used tileset."""


@dataclass(frozen=True)
class OutputProfile:
    """Complete set of output format choices for one export."""
    name: str = "default"
    data_format: DataFormat = DataFormat.TILED
    polygon_format: PolygonFormat = PolygonFormat.FULL
    data_layout: DataLayout = DataLayout.ROWS
    flip_flags: bool = True
    flatten_tile_offset: bool = False
    layer_images: LayerImages = LayerImages.NONE

    @property
    def is_moai(self) -> bool:
        return self.data_format is DataFormat.MOAI

    @property
    def cell_size_keys(self) -> Tuple[str, str]:
        """Keys used for the map cell size."""
        if self.is_moai:
            return ("cellwidth", "cellheight")
        return ("tilewidth", "tileheight")

    def with_polygon_format(self, polygon_format: PolygonFormat) -> "OutputProfile":
        return replace(self, polygon_format=polygon_format)


PROFILES: Dict[str, OutputProfile] = {
    "default": OutputProfile(),
    "tiled": OutputProfile(
        name="tiled",
        data_layout=DataLayout.FLAT,
    ),
    "moai": OutputProfile(
        name="moai",
        data_format=DataFormat.MOAI,
        polygon_format=PolygonFormat.SEQUENCE,
        data_layout=DataLayout.NUMBERED_ROWS,
        flip_flags=False,
        flatten_tile_offset=True,
        layer_images=LayerImages.FIRST,
    ),
}


def get_profile(name: str) -> OutputProfile:
    """Return a named profile.

    Raises:
        KeyError: If no profile has that name
    """
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(f"Unknown output profile: {name!r} (known: {', '.join(PROFILES)})")
