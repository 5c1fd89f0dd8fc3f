"""
Data models for tile maps.

Mirrors the structure of a Tiled map: tilesets with optional per-tile
data, and an ordered list of tile, object and image layers. The models
hold data only; loading lives in `loader` and writing in `tiled_lua.export`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


Properties = Dict[str, Any]


class Orientation(Enum):
    """Map orientation."""
    UNKNOWN = "unknown"
    ORTHOGONAL = "orthogonal"
    ISOMETRIC = "isometric"
    STAGGERED = "staggered"
    HEXAGONAL = "hexagonal"


class StaggerAxis(Enum):
    X = "x"
    Y = "y"


class StaggerIndex(Enum):
    ODD = "odd"
    EVEN = "even"


class ObjectShape(Enum):
    """Shape of a map object."""
    RECTANGLE = "rectangle"
    POLYGON = "polygon"
    POLYLINE = "polyline"
    ELLIPSE = "ellipse"


@dataclass(frozen=True)
class Color:
    """RGBA color with 8-bit channels."""
    red: int
    green: int
    blue: int
    alpha: int = 255

    @property
    def is_opaque(self) -> bool:
        return self.alpha == 255

    @classmethod
    def from_hex(cls, value: str) -> "Color":
        """Parse `#rrggbb` or Tiled's `#aarrggbb` notation.

        Raises:
            ValueError: If the string is not a hex color
        """
        text = value.strip().lstrip("#")
        try:
            if len(text) == 6:
                return cls(int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
            if len(text) == 8:
                return cls(
                    int(text[2:4], 16), int(text[4:6], 16), int(text[6:8], 16), int(text[0:2], 16)
                )
        except ValueError:
            pass
        raise ValueError(f"Invalid color: {value!r}")

    def channels(self) -> Tuple[int, ...]:
        """Channel values, alpha only when not fully opaque."""
        if self.is_opaque:
            return (self.red, self.green, self.blue)
        return (self.red, self.green, self.blue, self.alpha)


# =============================================================================
# Tileset Models
# =============================================================================

@dataclass
class Frame:
    """One frame of a tile animation."""
    tile_id: int
    duration: int


@dataclass
class Terrain:
    """Terrain type defined in a tileset."""
    name: str = ""
    tile: int = -1
    properties: Properties = field(default_factory=lambda: {})


@dataclass
class Tile:
    """Per-tile data of a tileset.

    Only tiles that carry something beyond their index need an instance;
    `Tileset.tile_at` hands out blank tiles for the rest.

    terrain holds the terrain index of the four corners (top-left,
    top-right, bottom-left, bottom-right), -1 for none. None means the tile
    has no terrain information at all. probability None means default.
    """
    id: int
    properties: Properties = field(default_factory=lambda: {})
    image: str = ""
    width: int = 0
    height: int = 0
    terrain: Optional[Tuple[int, int, int, int]] = None
    probability: Optional[float] = None
    object_group: Optional["ObjectGroup"] = None
    frames: List[Frame] = field(default_factory=lambda: [])

    @property
    def is_animated(self) -> bool:
        return bool(self.frames)


@dataclass
class Tileset:
    """Tileset descriptor.

    image and file_name are absolute (or caller-relative) paths; the
    exporter relativizes them against the output location.
    """
    name: str = ""
    tile_width: int = 0
    tile_height: int = 0
    tile_count: int = 0
    spacing: int = 0
    margin: int = 0
    file_name: str = ""
    image: str = ""
    image_width: int = 0
    image_height: int = 0
    transparent_color: Optional[Color] = None
    tile_offset: Tuple[int, int] = (0, 0)
    properties: Properties = field(default_factory=lambda: {})
    terrains: List[Terrain] = field(default_factory=lambda: [])
    tiles: Dict[int, Tile] = field(default_factory=lambda: {})

    def tile_at(self, tile_id: int) -> Tile:
        """Return tile data by local id, a blank tile if none was defined."""
        tile = self.tiles.get(tile_id)
        if tile is None:
            return Tile(id=tile_id)
        return tile

    def add_tile(self, tile: Tile) -> Tile:
        self.tiles[tile.id] = tile
        if tile.id >= self.tile_count:
            self.tile_count = tile.id + 1
        return tile


# =============================================================================
# Layer Models
# =============================================================================

@dataclass
class Cell:
    """One placed tile: tileset plus local tile id and orientation flags.

    A cell without tileset is empty.
    """
    tileset: Optional[Tileset] = None
    tile_id: int = 0
    flipped_horizontally: bool = False
    flipped_vertically: bool = False
    flipped_diagonally: bool = False

    @property
    def is_empty(self) -> bool:
        return self.tileset is None

    @property
    def tile(self) -> Optional[Tile]:
        if self.tileset is None:
            return None
        return self.tileset.tile_at(self.tile_id)


EMPTY_CELL = Cell()


@dataclass
class Layer:
    """Attributes shared by all layer kinds."""
    name: str = ""
    x: int = 0
    y: int = 0
    visible: bool = True
    opacity: float = 1.0
    properties: Properties = field(default_factory=lambda: {})

    type_name = "layer"


@dataclass
class TileLayer(Layer):
    """Grid of cells stored row by row."""
    width: int = 0
    height: int = 0
    cells: List[Cell] = field(default_factory=lambda: [])

    type_name = "tilelayer"

    def __post_init__(self) -> None:
        """Pad missing cells so every grid position can be read."""
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Invalid layer size: {self.width}x{self.height}")
        expected = self.width * self.height
        if len(self.cells) < expected:
            self.cells.extend(Cell() for _ in range(expected - len(self.cells)))

    def cell_at(self, x: int, y: int) -> Cell:
        """Return the cell at (x, y), an empty cell outside the grid."""
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.cells[y * self.width + x]
        return EMPTY_CELL

    def set_cell(self, x: int, y: int, cell: Cell) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Cell ({x}, {y}) outside {self.width}x{self.height} layer")
        self.cells[y * self.width + x] = cell

    def used_tilesets(self) -> List[Tileset]:
        """Tilesets referenced by this layer, in order of first use."""
        used: List[Tileset] = []
        for cell in self.cells:
            tileset = cell.tileset
            if tileset is not None and not any(t is tileset for t in used):
                used.append(tileset)
        return used


@dataclass
class MapObject:
    """Positioned shape on an object layer.

    polygon points are relative to (x, y) and only meaningful for
    polygon and polyline shapes.
    """
    id: int = 0
    name: str = ""
    type: str = ""
    shape: ObjectShape = ObjectShape.RECTANGLE
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    rotation: float = 0.0
    cell: Cell = field(default_factory=Cell)
    visible: bool = True
    polygon: List[Tuple[float, float]] = field(default_factory=lambda: [])
    properties: Properties = field(default_factory=lambda: {})


@dataclass
class ObjectGroup(Layer):
    """Layer holding map objects; also used for per-tile collision shapes."""
    objects: List[MapObject] = field(default_factory=lambda: [])

    type_name = "objectgroup"


@dataclass
class ImageLayer(Layer):
    """Layer showing a single image."""
    image: str = ""
    transparent_color: Optional[Color] = None

    type_name = "imagelayer"


# =============================================================================
# Map Model
# =============================================================================

@dataclass
class Map:
    """Complete tile map."""
    orientation: Orientation = Orientation.ORTHOGONAL
    width: int = 0
    height: int = 0
    tile_width: int = 0
    tile_height: int = 0
    hex_side_length: int = 0
    stagger_axis: StaggerAxis = StaggerAxis.Y
    stagger_index: StaggerIndex = StaggerIndex.ODD
    background_color: Optional[Color] = None
    next_object_id: int = 1
    tiled_version: str = ""
    properties: Properties = field(default_factory=lambda: {})
    tilesets: List[Tileset] = field(default_factory=lambda: [])
    layers: List[Layer] = field(default_factory=lambda: [])
