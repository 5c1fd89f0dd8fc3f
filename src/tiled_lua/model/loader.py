"""Loading maps from Tiled JSON files.

Handles deserialization of `.tmj`/`.json` maps and `.tsj`/`.json` external
tilesets into the map model. Packed gids are decoded back into tileset
references and flip flags; asset paths are made absolute against the file
they were read from.
"""

import base64
import gzip
import logging
import os
import struct
import zlib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union, cast

import orjson
from PIL import Image

from ..export.gid_mapper import unpack_cell_value
from .models import (
    Cell, Color, Frame, ImageLayer, Layer, Map, MapObject, ObjectGroup,
    ObjectShape, Orientation, Properties, StaggerAxis, StaggerIndex, Terrain,
    Tile, TileLayer, Tileset,
)

E = TypeVar("E", Orientation, StaggerAxis, StaggerIndex)


def _enum(enum_cls: Type[E], value: Any, default: E) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _color(value: Any) -> Optional[Color]:
    if not value:
        return None
    return Color.from_hex(str(value))


def parse_properties(raw: Any) -> Properties:
    """Convert a Tiled property list (or legacy dict) into a plain dict.

    Args:
        raw: List of {name, type, value} dicts, a name -> value dict, or None

    Returns:
        Ordered dict of property name to typed value
    """
    if not raw:
        return {}
    if isinstance(raw, dict):
        return dict(cast(Dict[str, Any], raw))

    properties: Properties = {}
    for item in cast(List[Dict[str, Any]], raw):
        name = str(item.get("name", ""))
        value = item.get("value")
        prop_type = item.get("type", "string")
        if prop_type == "int" and value is not None:
            value = int(value)
        elif prop_type == "float" and value is not None:
            value = float(value)
        elif prop_type == "bool":
            value = bool(value)
        elif prop_type == "class" and isinstance(value, dict):
            value = dict(cast(Dict[str, Any], value))
        properties[name] = value
    return properties


class GidDecoder:
    """Decodes packed gids of a loaded map into cells.

    Uses the firstgid values stored in the file, which may leave gaps
    between tilesets.
    """

    def __init__(self, entries: List[Tuple[int, Tileset]]):
        self._entries = sorted(entries, key=lambda entry: entry[0])

    def cell(self, value: int) -> Cell:
        """Return the cell for a packed gid.

        Raises:
            ValueError: If the gid is not covered by any tileset
        """
        gid, flip_h, flip_v, flip_d = unpack_cell_value(value)
        if gid == 0:
            return Cell()

        for first_gid, tileset in reversed(self._entries):
            if gid >= first_gid:
                tile_id = gid - first_gid
                if tile_id >= tileset.tile_count:
                    break
                return Cell(tileset, tile_id, flip_h, flip_v, flip_d)
        raise ValueError(f"Gid {gid} does not belong to any tileset")


class MapLoader:
    """Loads Tiled JSON maps into `Map` instances."""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # === FILES ===

    def _read_json(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        try:
            data = orjson.loads(path.read_bytes())
        except orjson.JSONDecodeError as e:
            raise ValueError(f"Failed to parse JSON from {path}: {e}")
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object in {path}")
        return cast(Dict[str, Any], data)

    @staticmethod
    def _resolve(base_dir: Path, source: Any) -> str:
        if not source:
            return ""
        path = Path(str(source))
        if not path.is_absolute():
            path = base_dir / path
        return os.path.normpath(str(path))

    def _image_size(self, image_path: str) -> Tuple[int, int]:
        """Read the pixel size of an image that the JSON did not describe."""
        try:
            with Image.open(image_path) as image:
                return image.size
        except (OSError, ValueError) as e:
            self.logger.warning(f"Could not read image size of {image_path}: {e}")
            return (0, 0)

    # === MAP ===

    def load(self, path: Union[str, Path]) -> Map:
        """Load a map from a Tiled JSON file.

        Args:
            path: Path to the map file

        Returns:
            Loaded Map instance

        Raises:
            FileNotFoundError: If the map or one of its external tilesets is missing
            ValueError: If the JSON is invalid or uses unsupported features
        """
        path = Path(path)
        self.logger.info(f"Loading map from: {path}")
        data = self._read_json(path)

        if data.get("type", "map") != "map":
            raise ValueError(f"{path} is not a Tiled map (type {data.get('type')!r})")
        if data.get("infinite"):
            raise ValueError(f"Infinite maps are not supported: {path}")

        base_dir = path.parent.resolve()
        map_ = Map(
            orientation=_enum(Orientation, data.get("orientation"), Orientation.UNKNOWN),
            width=int(data.get("width", 0)),
            height=int(data.get("height", 0)),
            tile_width=int(data.get("tilewidth", 0)),
            tile_height=int(data.get("tileheight", 0)),
            hex_side_length=int(data.get("hexsidelength", 0)),
            stagger_axis=_enum(StaggerAxis, data.get("staggeraxis"), StaggerAxis.Y),
            stagger_index=_enum(StaggerIndex, data.get("staggerindex"), StaggerIndex.ODD),
            background_color=_color(data.get("backgroundcolor")),
            next_object_id=int(data.get("nextobjectid", 1)),
            tiled_version=str(data.get("tiledversion", "")),
            properties=parse_properties(data.get("properties")),
        )

        # Tilesets first, so tile data and layers can decode gids
        entries: List[Tuple[int, Tileset]] = []
        pending_tiles: List[Tuple[Tileset, Any, Path]] = []
        for ts_data in data.get("tilesets", []):
            first_gid = int(ts_data.get("firstgid", 1))
            if "source" in ts_data:
                ts_path = Path(self._resolve(base_dir, ts_data["source"]))
                tileset, raw_tiles = self._read_tileset(self._read_json(ts_path), ts_path.parent)
                tileset.file_name = str(ts_path)
                ts_base = ts_path.parent
            else:
                tileset, raw_tiles = self._read_tileset(ts_data, base_dir)
                ts_base = base_dir
            map_.tilesets.append(tileset)
            entries.append((first_gid, tileset))
            pending_tiles.append((tileset, raw_tiles, ts_base))

        decoder = GidDecoder(entries)
        for tileset, raw_tiles, ts_base in pending_tiles:
            self._read_tiles(tileset, raw_tiles, decoder, ts_base)

        self._read_layers(data.get("layers", []), decoder, base_dir, map_.layers)

        self.logger.info(
            f"Loaded {map_.width}x{map_.height} map with {len(map_.tilesets)} tileset(s) "
            f"and {len(map_.layers)} layer(s)"
        )
        return map_

    def load_tileset(self, path: Union[str, Path]) -> Tileset:
        """Load a standalone JSON tileset.

        Tile collision objects referencing gids cannot be resolved without a
        map and are rejected.
        """
        path = Path(path)
        tileset, raw_tiles = self._read_tileset(self._read_json(path), path.parent.resolve())
        tileset.file_name = str(path.resolve())
        self._read_tiles(tileset, raw_tiles, GidDecoder([]), path.parent.resolve())
        return tileset

    # === TILESETS ===

    def _read_tileset(self, data: Dict[str, Any], base_dir: Path) -> Tuple[Tileset, Any]:
        offset = data.get("tileoffset") or {}
        tileset = Tileset(
            name=str(data.get("name", "")),
            tile_width=int(data.get("tilewidth", 0)),
            tile_height=int(data.get("tileheight", 0)),
            tile_count=int(data.get("tilecount", 0)),
            spacing=int(data.get("spacing", 0)),
            margin=int(data.get("margin", 0)),
            image=self._resolve(base_dir, data.get("image")),
            image_width=int(data.get("imagewidth", 0)),
            image_height=int(data.get("imageheight", 0)),
            transparent_color=_color(data.get("transparentcolor")),
            tile_offset=(int(offset.get("x", 0)), int(offset.get("y", 0))),
            properties=parse_properties(data.get("properties")),
            terrains=[
                Terrain(
                    name=str(t.get("name", "")),
                    tile=int(t.get("tile", -1)),
                    properties=parse_properties(t.get("properties")),
                )
                for t in data.get("terrains", [])
            ],
        )

        if tileset.image and not (tileset.image_width and tileset.image_height):
            tileset.image_width, tileset.image_height = self._image_size(tileset.image)

        # Old files omit tilecount; derive it from the image grid
        if not tileset.tile_count and tileset.image and tileset.tile_width and tileset.tile_height:
            step_x = tileset.tile_width + tileset.spacing
            step_y = tileset.tile_height + tileset.spacing
            columns = (tileset.image_width - 2 * tileset.margin + tileset.spacing) // step_x
            rows = (tileset.image_height - 2 * tileset.margin + tileset.spacing) // step_y
            tileset.tile_count = max(0, columns) * max(0, rows)

        return tileset, data.get("tiles")

    def _read_tiles(self, tileset: Tileset, raw_tiles: Any, decoder: GidDecoder, base_dir: Path) -> None:
        if not raw_tiles:
            return

        # Older files store tiles as a dict keyed by the tile id
        if isinstance(raw_tiles, dict):
            items = [
                dict(cast(Dict[str, Any], value), id=int(key))
                for key, value in cast(Dict[str, Any], raw_tiles).items()
            ]
        else:
            items = cast(List[Dict[str, Any]], raw_tiles)

        for item in items:
            tile = Tile(
                id=int(item["id"]),
                properties=parse_properties(item.get("properties")),
                image=self._resolve(base_dir, item.get("image")),
                width=int(item.get("imagewidth", 0)),
                height=int(item.get("imageheight", 0)),
            )
            if tile.image and not (tile.width and tile.height):
                tile.width, tile.height = self._image_size(tile.image)

            terrain = item.get("terrain")
            if terrain is not None:
                if len(terrain) != 4:
                    raise ValueError(f"Tile {tile.id} of '{tileset.name}' has {len(terrain)} terrain corners")
                tile.terrain = cast(Tuple[int, int, int, int], tuple(int(t) for t in terrain))

            if item.get("probability") is not None:
                tile.probability = float(item["probability"])

            if item.get("objectgroup"):
                tile.object_group = cast(
                    ObjectGroup, self._read_layer(item["objectgroup"], decoder, base_dir)
                )

            tile.frames = [
                Frame(tile_id=int(frame["tileid"]), duration=int(frame["duration"]))
                for frame in item.get("animation", [])
            ]
            tileset.add_tile(tile)

    # === LAYERS ===

    def _read_layers(
        self,
        raw_layers: List[Dict[str, Any]],
        decoder: GidDecoder,
        base_dir: Path,
        out: List[Layer],
        visible: bool = True,
        opacity: float = 1.0,
    ) -> None:
        for layer_data in raw_layers:
            if layer_data.get("type") == "group":
                self.logger.warning(
                    f"Flattening group layer '{layer_data.get('name', '')}' into its parent"
                )
                self._read_layers(
                    layer_data.get("layers", []),
                    decoder,
                    base_dir,
                    out,
                    visible and bool(layer_data.get("visible", True)),
                    opacity * float(layer_data.get("opacity", 1.0)),
                )
                continue

            layer = self._read_layer(layer_data, decoder, base_dir)
            layer.visible = layer.visible and visible
            layer.opacity *= opacity
            out.append(layer)

    def _read_layer(self, data: Dict[str, Any], decoder: GidDecoder, base_dir: Path) -> Layer:
        layer_type = data.get("type", "objectgroup")
        common: Dict[str, Any] = {
            "name": str(data.get("name", "")),
            "x": int(data.get("x", 0)),
            "y": int(data.get("y", 0)),
            "visible": bool(data.get("visible", True)),
            "opacity": float(data.get("opacity", 1.0)),
            "properties": parse_properties(data.get("properties")),
        }

        if layer_type == "tilelayer":
            width = int(data.get("width", 0))
            height = int(data.get("height", 0))
            values = self._decode_layer_data(data)
            if len(values) != width * height:
                raise ValueError(
                    f"Layer '{common['name']}' has {len(values)} cells, expected {width * height}"
                )
            return TileLayer(
                width=width,
                height=height,
                cells=[decoder.cell(value) for value in values],
                **common,
            )

        if layer_type == "objectgroup":
            return ObjectGroup(
                objects=[self._read_object(obj, decoder) for obj in data.get("objects", [])],
                **common,
            )

        if layer_type == "imagelayer":
            return ImageLayer(
                image=self._resolve(base_dir, data.get("image")),
                transparent_color=_color(data.get("transparentcolor")),
                **common,
            )

        raise ValueError(f"Unsupported layer type: {layer_type!r}")

    @staticmethod
    def _decode_layer_data(data: Dict[str, Any]) -> List[int]:
        """Return the raw packed gids of a tile layer."""
        if "chunks" in data:
            raise ValueError("Chunked layer data (infinite maps) is not supported")

        raw = data.get("data", [])
        if isinstance(raw, list):
            return [int(v) for v in cast(List[Any], raw)]

        if data.get("encoding") != "base64":
            raise ValueError(f"Unsupported layer encoding: {data.get('encoding')!r}")

        payload = base64.b64decode(str(raw))
        compression = data.get("compression", "")
        if compression == "zlib":
            payload = zlib.decompress(payload)
        elif compression == "gzip":
            payload = gzip.decompress(payload)
        elif compression:
            raise ValueError(f"Unsupported layer compression: {compression!r}")

        if len(payload) % 4:
            raise ValueError("Layer data length is not a multiple of 4 bytes")
        return list(struct.unpack(f"<{len(payload) // 4}I", payload))

    @staticmethod
    def _read_object(data: Dict[str, Any], decoder: GidDecoder) -> MapObject:
        if "polygon" in data:
            shape = ObjectShape.POLYGON
            points = data["polygon"]
        elif "polyline" in data:
            shape = ObjectShape.POLYLINE
            points = data["polyline"]
        else:
            shape = ObjectShape.ELLIPSE if data.get("ellipse") else ObjectShape.RECTANGLE
            points = []

        return MapObject(
            id=int(data.get("id", 0)),
            name=str(data.get("name", "")),
            type=str(data.get("type", data.get("class", ""))),
            shape=shape,
            x=float(data.get("x", 0)),
            y=float(data.get("y", 0)),
            width=float(data.get("width", 0)),
            height=float(data.get("height", 0)),
            rotation=float(data.get("rotation", 0)),
            cell=decoder.cell(int(data["gid"])) if data.get("gid") else Cell(),
            visible=bool(data.get("visible", True)),
            polygon=[(float(p["x"]), float(p["y"])) for p in points],
            properties=parse_properties(data.get("properties")),
        )
