"""
Serialization of a map model into a Lua table document.

The serializer makes one forward pass over the map: tilesets are
registered with the gid mapper first, then tilesets and layers are
written in model order through a `LuaTableWriter`.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from ..model.models import (
    Cell, Color, ImageLayer, Layer, Map, MapObject, ObjectGroup, ObjectShape,
    Orientation, Properties, Tile, TileLayer, Tileset,
)
from .gid_mapper import CellRef, GidMapper
from .profiles import DataLayout, LayerImages, OutputProfile, PolygonFormat
from .table_writer import LuaTableWriter

FORMAT_VERSION = "1.1"
LUA_VERSION = "5.1"


def include_tile(tile: Tile) -> bool:
    """Check whether a tile carries anything worth writing.

    Tiles failing this check are left out of the `tiles` table for brevity.
    """
    if tile.properties:
        return True
    if tile.image:
        return True
    if tile.object_group is not None:
        return True
    if tile.is_animated:
        return True
    if tile.terrain is not None:
        return True
    if tile.probability is not None:
        return True
    return False


def cell_ref(cell: Cell) -> CellRef:
    """Convert a model cell into the mapper's 1-based reference."""
    if cell.is_empty:
        return CellRef()
    return CellRef(
        cell.tileset,
        cell.tile_id + 1,
        cell.flipped_horizontally,
        cell.flipped_vertically,
        cell.flipped_diagonally,
    )


class MapSerializer:
    """Writes one map as a Lua table using an `OutputProfile`.

    A serializer keeps per-export state (gid ranges, output directory), so
    concurrent exports need one instance each. Calling `serialize` again
    resets that state.
    """

    def __init__(
        self,
        profile: Optional[OutputProfile] = None,
        map_dir: Optional[Union[str, Path]] = None,
        tiled_version: str = "",
    ):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.profile = profile or OutputProfile()
        self.map_dir = Path(map_dir) if map_dir is not None else None
        self.tiled_version = tiled_version
        self.gid_mapper = GidMapper()

    def serialize(self, map_: Map, sink: Any) -> None:
        """Write the whole document for `map_` to `sink`.

        Raises:
            OutOfRangeIndex: If a cell references an unknown tile
            ProtocolViolation: On writer misuse
            SinkWriteError: If the sink fails
        """
        self.gid_mapper.clear()
        for tileset in map_.tilesets:
            self.gid_mapper.register_collection(tileset, tileset.tile_count)

        self.logger.debug(
            f"Serializing {map_.width}x{map_.height} map with {len(map_.tilesets)} tileset(s) "
            f"and {len(map_.layers)} layer(s) using profile '{self.profile.name}'"
        )

        writer = LuaTableWriter(sink)
        writer.start_document()
        self._write_map(writer, map_)
        writer.end_document()

    # === PATHS ===

    def _relative(self, path: str) -> str:
        """Path of an asset relative to the output directory, `/` separated."""
        if not path:
            return ""
        if self.map_dir is None or not os.path.isabs(path):
            return path.replace(os.sep, "/")
        try:
            rel = os.path.relpath(path, self.map_dir)
        except ValueError:
            # Different drive on Windows
            rel = path
        return rel.replace(os.sep, "/")

    def _image_name(self, path: str) -> str:
        return self._relative(path).split("/")[-1]

    # === MAP ===

    def _write_map(self, writer: LuaTableWriter, map_: Map) -> None:
        writer.write_key_and_value("version", FORMAT_VERSION)
        writer.write_key_and_value("luaversion", LUA_VERSION)
        writer.write_key_and_value("tiledversion", self.tiled_version or map_.tiled_version)
        writer.write_key_and_value("orientation", map_.orientation.value)
        writer.write_key_and_value("width", map_.width)
        writer.write_key_and_value("height", map_.height)

        width_key, height_key = self.profile.cell_size_keys
        writer.write_key_and_value(width_key, map_.tile_width)
        writer.write_key_and_value(height_key, map_.tile_height)
        writer.write_key_and_value("nextobjectid", map_.next_object_id)

        if map_.orientation is Orientation.HEXAGONAL:
            writer.write_key_and_value("hexsidelength", map_.hex_side_length)

        if map_.orientation in (Orientation.STAGGERED, Orientation.HEXAGONAL):
            writer.write_key_and_value("staggeraxis", map_.stagger_axis.value)
            writer.write_key_and_value("staggerindex", map_.stagger_index.value)

        if map_.background_color is not None:
            self._write_color(writer, "backgroundcolor", map_.background_color)

        self._write_properties(writer, map_.properties)

        writer.start_table("tilesets")
        for tileset in map_.tilesets:
            self._write_tileset(writer, tileset, self.gid_mapper.first_id(tileset))
        writer.end_table()

        writer.start_table("layers")
        for prio, layer in enumerate(map_.layers, start=1):
            if isinstance(layer, TileLayer):
                self._write_tile_layer(writer, layer, prio)
            elif isinstance(layer, ObjectGroup):
                self._write_object_group(writer, layer, prio)
            elif isinstance(layer, ImageLayer):
                self._write_image_layer(writer, layer, prio)
            else:
                self.logger.warning(f"Skipping unsupported layer '{layer.name}' ({type(layer).__name__})")
        writer.end_table()

    def _write_color(self, writer: LuaTableWriter, key: str, color: Color) -> None:
        writer.start_table(key)
        writer.set_compact(True)
        for channel in color.channels():
            writer.write_value(channel)
        writer.end_table()

    def _write_properties(self, writer: LuaTableWriter, properties: Properties, key: Optional[str] = "properties") -> None:
        if key is not None:
            writer.start_table(key)
        for name, value in properties.items():
            if isinstance(value, dict):
                writer.start_quoted_table(str(name))
                self._write_properties(writer, value, key=None)
                writer.end_table()
            elif isinstance(value, (bool, int, float, str)):
                writer.write_quoted_key_and_value(str(name), value)
            else:
                writer.write_quoted_key_and_value(str(name), "" if value is None else str(value))
        if key is not None:
            writer.end_table()

    # === TILESETS ===

    def _write_tileset(self, writer: LuaTableWriter, tileset: Tileset, first_gid: int) -> None:
        moai = self.profile.is_moai

        if moai and tileset.image:
            writer.start_quoted_table(self._image_name(tileset.image))
        else:
            writer.start_table()

        writer.write_key_and_value("name", tileset.name)
        if not moai:
            writer.write_key_and_value("firstgid", first_gid)

        if tileset.file_name:
            writer.write_key_and_value("filename", self._relative(tileset.file_name))

        # External tilesets are written in full as well
        writer.write_key_and_value("tilewidth", tileset.tile_width)
        writer.write_key_and_value("tileheight", tileset.tile_height)
        writer.write_key_and_value("spacing", tileset.spacing)
        writer.write_key_and_value("margin", tileset.margin)

        if tileset.image:
            if not moai:
                writer.write_key_and_value("image", self._relative(tileset.image))
            writer.write_key_and_value("imagewidth", tileset.image_width)
            writer.write_key_and_value("imageheight", tileset.image_height)
            if moai:
                writer.write_key_and_value(
                    "deckwidth", tileset.image_width // tileset.tile_width if tileset.tile_width else 0
                )
                writer.write_key_and_value(
                    "deckheight", tileset.image_height // tileset.tile_height if tileset.tile_height else 0
                )

        if tileset.transparent_color is not None:
            self._write_color(writer, "transparentcolor", tileset.transparent_color)

        offset_x, offset_y = tileset.tile_offset
        if self.profile.flatten_tile_offset:
            writer.write_key_and_value("xoffset", offset_x)
            writer.write_key_and_value("yoffset", offset_y)
        else:
            writer.start_table("tileoffset")
            writer.write_key_and_value("x", offset_x)
            writer.write_key_and_value("y", offset_y)
            writer.end_table()

        self._write_properties(writer, tileset.properties)

        writer.start_table("terrains")
        for terrain in tileset.terrains:
            writer.start_table()
            writer.write_key_and_value("name", terrain.name)
            writer.write_key_and_value("tile", terrain.tile)
            self._write_properties(writer, terrain.properties)
            writer.end_table()
        writer.end_table()

        writer.start_table("tiles")
        for tile_id in sorted(tileset.tiles):
            tile = tileset.tiles[tile_id]
            if include_tile(tile):
                self._write_tile(writer, tile)
        writer.end_table()

        writer.end_table()

    def _write_tile(self, writer: LuaTableWriter, tile: Tile) -> None:
        if self.profile.is_moai:
            writer.start_quoted_table(f"id = {tile.id + 1}")
        else:
            writer.start_table()
            writer.write_key_and_value("id", tile.id)

        if tile.properties:
            self._write_properties(writer, tile.properties)

        if tile.image:
            writer.write_key_and_value("image", self._relative(tile.image))
            if tile.width and tile.height:
                writer.write_key_and_value("width", tile.width)
                writer.write_key_and_value("height", tile.height)

        if tile.terrain is not None:
            writer.start_table("terrain")
            writer.set_compact(True)
            for corner in tile.terrain:
                writer.write_value(corner)
            writer.end_table()

        if tile.probability is not None:
            writer.write_key_and_value("probability", tile.probability)

        if tile.object_group is not None:
            self._write_object_group(writer, tile.object_group, 0, key="objectGroup")

        if tile.is_animated:
            writer.start_table("animation")
            for frame in tile.frames:
                writer.start_table()
                writer.write_key_and_value("tileid", frame.tile_id)
                writer.write_key_and_value("duration", frame.duration)
                writer.end_table()
            writer.end_table()

        writer.end_table()

    # === LAYERS ===

    def _start_layer(self, writer: LuaTableWriter, layer: Layer, prio: int, key: Optional[str] = None) -> None:
        """Open a layer table and write its name or priority."""
        if key is not None:
            writer.start_table(key)
        elif self.profile.is_moai:
            writer.start_quoted_table(layer.name)
        else:
            writer.start_table()

        if self.profile.is_moai and key is None:
            if prio:
                writer.write_key_and_value("prio", prio)
        else:
            # A fixed key does not carry the layer name
            writer.write_key_and_value("name", layer.name)

        writer.write_key_and_value("type", layer.type_name)

    def _write_tile_layer(self, writer: LuaTableWriter, layer: TileLayer, prio: int) -> None:
        self._start_layer(writer, layer, prio)

        if self.profile.is_moai:
            self._write_layer_images(writer, layer)

        writer.write_key_and_value("x", layer.x)
        writer.write_key_and_value("y", layer.y)
        writer.write_key_and_value("width", layer.width)
        writer.write_key_and_value("height", layer.height)
        writer.write_key_and_value("visible", layer.visible)
        writer.write_key_and_value("opacity", layer.opacity)
        self._write_properties(writer, layer.properties)

        writer.write_key_and_value("encoding", "lua")

        if self.profile.is_moai:
            self._write_special_tiles(writer, layer)

        self._write_layer_data(writer, layer)

        writer.end_table()

    def _write_layer_images(self, writer: LuaTableWriter, layer: TileLayer) -> None:
        mode = self.profile.layer_images
        if mode is LayerImages.NONE:
            return

        used = [t for t in layer.used_tilesets() if t.image]
        if mode is LayerImages.FIRST:
            if len(used) == 1:
                writer.write_key_and_value("image", self._image_name(used[0].image))
        else:
            used.sort(key=self.gid_mapper.first_id)
            writer.start_table("images")
            for tileset in used:
                writer.write_value(self._image_name(tileset.image))
            writer.end_table()

    def _write_special_tiles(self, writer: LuaTableWriter, layer: TileLayer) -> None:
        """List cells whose tile has custom properties.

        The owning tileset is found through the gid ranges, which are
        scanned by ascending firstgid.
        """
        opened = False
        for y in range(layer.height):
            for x in range(layer.width):
                gid = self.gid_mapper.to_global_origin(cell_ref(layer.cell_at(x, y)))
                if gid == 0:
                    continue
                owner = self.gid_mapper.from_global(gid)
                tile = owner.collection.tile_at(owner.local_index - 1)
                if not tile.properties:
                    continue
                if not opened:
                    writer.start_table("specialtiles")
                    opened = True
                writer.start_quoted_table(f"y = {y + 1}, x = {x + 1}")
                writer.write_key_and_value("id", gid)
                writer.end_table()
        if opened:
            writer.end_table()

    def _write_layer_data(self, writer: LuaTableWriter, layer: TileLayer) -> None:
        layout = self.profile.data_layout
        if self.profile.flip_flags:
            to_gid = self.gid_mapper.to_global
        else:
            to_gid = self.gid_mapper.to_global_origin

        writer.start_table("data")
        for y in range(layer.height):
            if layout is DataLayout.FLAT:
                if y > 0 and layer.width:
                    writer.prepare_new_line()
            else:
                writer.start_table()
                writer.set_compact(True)
                if layout is DataLayout.NUMBERED_ROWS:
                    writer.write_value(y + 1)

            for x in range(layer.width):
                writer.write_value(to_gid(cell_ref(layer.cell_at(x, y))))

            if layout is not DataLayout.FLAT:
                writer.end_table()
        writer.end_table()

    def _write_object_group(
        self, writer: LuaTableWriter, group: ObjectGroup, prio: int, key: Optional[str] = None
    ) -> None:
        self._start_layer(writer, group, prio, key)
        writer.write_key_and_value("visible", group.visible)
        writer.write_key_and_value("opacity", group.opacity)
        self._write_properties(writer, group.properties)

        writer.start_table("objects")
        for map_object in group.objects:
            self._write_map_object(writer, map_object)
        writer.end_table()

        writer.end_table()

    def _write_image_layer(self, writer: LuaTableWriter, layer: ImageLayer, prio: int) -> None:
        self._start_layer(writer, layer, prio)
        writer.write_key_and_value("x", layer.x)
        writer.write_key_and_value("y", layer.y)
        writer.write_key_and_value("visible", layer.visible)
        writer.write_key_and_value("opacity", layer.opacity)
        writer.write_key_and_value("image", self._relative(layer.image))

        if layer.transparent_color is not None:
            self._write_color(writer, "transparentcolor", layer.transparent_color)

        self._write_properties(writer, layer.properties)
        writer.end_table()

    # === OBJECTS ===

    def _write_map_object(self, writer: LuaTableWriter, map_object: MapObject) -> None:
        writer.start_table()
        if not self.profile.is_moai:
            writer.write_key_and_value("id", map_object.id)
        writer.write_key_and_value("name", map_object.name)
        writer.write_key_and_value("type", map_object.type)
        writer.write_key_and_value("shape", map_object.shape.value)

        writer.write_key_and_value("x", map_object.x)
        writer.write_key_and_value("y", map_object.y)
        writer.write_key_and_value("width", map_object.width)
        writer.write_key_and_value("height", map_object.height)
        writer.write_key_and_value("rotation", map_object.rotation)

        if not map_object.cell.is_empty:
            writer.write_key_and_value("gid", self.gid_mapper.to_global(cell_ref(map_object.cell)))

        writer.write_key_and_value("visible", map_object.visible)

        if map_object.polygon and map_object.shape in (ObjectShape.POLYGON, ObjectShape.POLYLINE):
            writer.start_table(map_object.shape.value)
            self._write_points(writer, map_object.polygon)
            writer.end_table()

        self._write_properties(writer, map_object.properties)
        writer.end_table()

    def _write_points(self, writer: LuaTableWriter, points: list) -> None:
        """Write polygon points inside the already opened polygon table."""
        polygon_format = self.profile.polygon_format

        if polygon_format is PolygonFormat.FULL:
            for px, py in points:
                writer.start_table()
                writer.set_compact(True)
                writer.write_key_and_value("x", px)
                writer.write_key_and_value("y", py)
                writer.end_table()
        elif polygon_format is PolygonFormat.PAIRS:
            for px, py in points:
                writer.start_table()
                writer.set_compact(True)
                writer.write_value(px)
                writer.write_value(py)
                writer.end_table()
        elif polygon_format is PolygonFormat.OPTIMAL:
            for axis, index in (("x", 0), ("y", 1)):
                writer.start_table(axis)
                writer.set_compact(True)
                for point in points:
                    writer.write_value(point[index])
                writer.end_table()
        else:
            writer.set_compact(True)
            for px, py in points:
                writer.write_value(px)
                writer.write_value(py)
