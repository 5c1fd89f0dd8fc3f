"""Tests for loading Tiled JSON maps."""

import base64
import gzip
import os
import struct
import zlib
from pathlib import Path
from typing import Any, Dict

import orjson
import pytest


def _map_data(**overrides: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "type": "map",
        "orientation": "orthogonal",
        "width": 2,
        "height": 1,
        "tilewidth": 16,
        "tileheight": 16,
        "tiledversion": "1.10.2",
        "nextobjectid": 3,
        "backgroundcolor": "#ff0000",
        "properties": [
            {"name": "title", "type": "string", "value": "Cave"},
            {"name": "level", "type": "int", "value": 3},
        ],
        "tilesets": [
            {
                "firstgid": 1,
                "name": "ground",
                "tilewidth": 16,
                "tileheight": 16,
                "tilecount": 4,
                "image": "ground.png",
                "imagewidth": 32,
                "imageheight": 32,
                "tiles": [
                    {"id": 1, "properties": [{"name": "solid", "type": "bool", "value": True}]}
                ],
            }
        ],
        "layers": [
            {"type": "tilelayer", "name": "Ground", "width": 2, "height": 1, "data": [1, 2147483650]},
            {
                "type": "objectgroup",
                "name": "Objects",
                "objects": [
                    {
                        "id": 1,
                        "name": "wall",
                        "x": 0,
                        "y": 0,
                        "polygon": [{"x": 0, "y": 0}, {"x": 16, "y": 0}],
                    }
                ],
            },
        ],
    }
    data.update(overrides)
    return data


def _write(path: Path, data: Dict[str, Any]) -> Path:
    path.write_bytes(orjson.dumps(data))
    return path


def _tile_layer(data: Any, **extra: Any) -> Dict[str, Any]:
    layer = {"type": "tilelayer", "name": "Ground", "width": 2, "height": 1, "data": data}
    layer.update(extra)
    return layer


class TestMapLoading:
    """Test reading map level data."""

    def test_load_basic_map(self, tmp_path) -> None:
        from tiled_lua.model import Color, MapLoader, Orientation

        map_ = MapLoader().load(_write(tmp_path / "cave.tmj", _map_data()))
        assert map_.orientation is Orientation.ORTHOGONAL
        assert (map_.width, map_.height) == (2, 1)
        assert map_.tiled_version == "1.10.2"
        assert map_.next_object_id == 3
        assert map_.background_color == Color(255, 0, 0)
        assert map_.properties == {"title": "Cave", "level": 3}
        assert len(map_.layers) == 2

    def test_tileset_and_tiles(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        map_ = MapLoader().load(_write(tmp_path / "cave.tmj", _map_data()))
        tileset = map_.tilesets[0]
        assert tileset.name == "ground"
        assert tileset.tile_count == 4
        assert tileset.image == os.path.normpath(str(tmp_path.resolve() / "ground.png"))
        assert tileset.tile_at(1).properties == {"solid": True}
        assert tileset.tile_at(0).properties == {}

    def test_cells_and_flags(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        map_ = MapLoader().load(_write(tmp_path / "cave.tmj", _map_data()))
        layer = map_.layers[0]
        first, second = layer.cell_at(0, 0), layer.cell_at(1, 0)
        assert first.tileset is map_.tilesets[0]
        assert first.tile_id == 0
        assert not first.flipped_horizontally
        assert second.tile_id == 1
        assert second.flipped_horizontally
        assert not second.flipped_vertically

    def test_polygon_object(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader, ObjectShape

        map_ = MapLoader().load(_write(tmp_path / "cave.tmj", _map_data()))
        obj = map_.layers[1].objects[0]
        assert obj.shape is ObjectShape.POLYGON
        assert obj.polygon == [(0.0, 0.0), (16.0, 0.0)]

    def test_group_layers_are_flattened(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        group = {
            "type": "group",
            "name": "group",
            "visible": False,
            "opacity": 0.5,
            "layers": [_tile_layer([0, 0])],
        }
        map_ = MapLoader().load(_write(tmp_path / "cave.tmj", _map_data(layers=[group])))
        assert len(map_.layers) == 1
        assert not map_.layers[0].visible
        assert map_.layers[0].opacity == 0.5

    def test_round_trip_through_export(self, tmp_path) -> None:
        """Test loaded gids and flags come out unchanged."""
        from tiled_lua.export import export_to_string
        from tiled_lua.model import MapLoader

        path = _write(tmp_path / "cave.tmj", _map_data())
        text = export_to_string(MapLoader().load(path), map_dir=tmp_path.resolve())
        assert "{ 1, 2147483650 }" in text
        assert 'image = "ground.png"' in text


class TestLayerEncodings:
    """Test decoding of tile layer data."""

    @pytest.mark.parametrize("compression", ["", "zlib", "gzip"])
    def test_base64(self, tmp_path, compression: str) -> None:
        from tiled_lua.model import MapLoader

        payload = struct.pack("<2I", 2, 0x40000001)
        if compression == "zlib":
            payload = zlib.compress(payload)
        elif compression == "gzip":
            payload = gzip.compress(payload)
        layer = _tile_layer(
            base64.b64encode(payload).decode("ascii"),
            encoding="base64",
            compression=compression,
        )
        map_ = MapLoader().load(_write(tmp_path / "cave.tmj", _map_data(layers=[layer])))
        cells = map_.layers[0].cells
        assert cells[0].tile_id == 1
        assert cells[1].tile_id == 0
        assert cells[1].flipped_vertically

    def test_unsupported_compression(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        layer = _tile_layer("AAAA", encoding="base64", compression="zstd")
        with pytest.raises(ValueError):
            MapLoader().load(_write(tmp_path / "cave.tmj", _map_data(layers=[layer])))

    def test_wrong_cell_count(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        with pytest.raises(ValueError):
            MapLoader().load(_write(tmp_path / "cave.tmj", _map_data(layers=[_tile_layer([1])])))

    def test_unknown_gid(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        with pytest.raises(ValueError):
            MapLoader().load(_write(tmp_path / "cave.tmj", _map_data(layers=[_tile_layer([1, 9])])))


class TestTilesetSources:
    """Test external tilesets and image probing."""

    def test_external_tileset(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        ts_path = _write(
            tmp_path / "ground.tsj",
            {
                "name": "ground",
                "tilewidth": 16,
                "tileheight": 16,
                "tilecount": 4,
                "image": "ground.png",
                "imagewidth": 32,
                "imageheight": 32,
                "tiles": [{"id": 0, "animation": [{"tileid": 0, "duration": 50}, {"tileid": 1, "duration": 50}]}],
            },
        )
        data = _map_data(tilesets=[{"firstgid": 1, "source": "ground.tsj"}])
        map_ = MapLoader().load(_write(tmp_path / "cave.tmj", data))
        tileset = map_.tilesets[0]
        assert tileset.file_name == os.path.normpath(str(ts_path.resolve()))
        assert tileset.tile_at(0).is_animated

    def test_missing_external_tileset(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        data = _map_data(tilesets=[{"firstgid": 1, "source": "missing.tsj"}])
        with pytest.raises(FileNotFoundError):
            MapLoader().load(_write(tmp_path / "cave.tmj", data))

    def test_image_size_probe(self, tmp_path) -> None:
        """Test tile count is derived from the image when the file omits it."""
        from PIL import Image

        from tiled_lua.model import MapLoader

        Image.new("RGB", (48, 32)).save(tmp_path / "ground.png")
        tileset = {
            "firstgid": 1,
            "name": "ground",
            "tilewidth": 16,
            "tileheight": 16,
            "image": "ground.png",
        }
        map_ = MapLoader().load(_write(tmp_path / "cave.tmj", _map_data(tilesets=[tileset])))
        assert (map_.tilesets[0].image_width, map_.tilesets[0].image_height) == (48, 32)
        assert map_.tilesets[0].tile_count == 6

    def test_load_standalone_tileset(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        path = _write(
            tmp_path / "props.tsj",
            {"name": "props", "tilewidth": 8, "tileheight": 8, "tilecount": 2,
             "tiles": [{"id": 1, "terrain": [0, 0, -1, -1], "probability": 0.25}]},
        )
        tileset = MapLoader().load_tileset(path)
        assert tileset.name == "props"
        assert tileset.tile_at(1).terrain == (0, 0, -1, -1)
        assert tileset.tile_at(1).probability == 0.25


class TestLoadErrors:
    def test_missing_file(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        with pytest.raises(FileNotFoundError):
            MapLoader().load(tmp_path / "none.tmj")

    def test_invalid_json(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        path = tmp_path / "broken.tmj"
        path.write_text("{ not json", encoding="utf-8")
        with pytest.raises(ValueError):
            MapLoader().load(path)

    def test_infinite_map(self, tmp_path) -> None:
        from tiled_lua.model import MapLoader

        with pytest.raises(ValueError):
            MapLoader().load(_write(tmp_path / "cave.tmj", _map_data(infinite=True)))


class TestPropertyParsing:
    def test_typed_list(self) -> None:
        from tiled_lua.model import parse_properties

        raw = [
            {"name": "speed", "type": "float", "value": 1},
            {"name": "door", "type": "bool", "value": False},
            {"name": "spawn", "type": "class", "value": {"x": 1}},
        ]
        assert parse_properties(raw) == {"speed": 1.0, "door": False, "spawn": {"x": 1}}

    def test_legacy_dict(self) -> None:
        from tiled_lua.model import parse_properties

        assert parse_properties({"a": "1"}) == {"a": "1"}
        assert parse_properties(None) == {}
