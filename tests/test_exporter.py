"""Tests for writing exported maps to disk."""

import os

import pytest


def _map():
    from tiled_lua.model import Cell, Map, TileLayer, Tileset

    tileset = Tileset(name="ground", tile_width=8, tile_height=8, tile_count=2)
    layer = TileLayer(name="Ground", width=2, height=1)
    layer.set_cell(1, 0, Cell(tileset, 1))
    map_ = Map(width=2, height=1, tile_width=8, tile_height=8)
    map_.tilesets.append(tileset)
    map_.layers.append(layer)
    return map_


class TestLuaMapExporter:
    """Test the file level exporter."""

    def test_write_creates_file(self, tmp_path) -> None:
        from tiled_lua.export import LuaMapExporter

        target = tmp_path / "level.lua"
        exporter = LuaMapExporter()
        assert exporter.write(_map(), target)
        assert exporter.error_string == ""

        text = target.read_text(encoding="utf-8")
        assert text.startswith("return {\n")
        assert text.endswith("}\n")
        assert "{ 0, 2 }" in text
        assert os.listdir(tmp_path) == ["level.lua"]

    def test_write_replaces_existing_file(self, tmp_path) -> None:
        from tiled_lua.export import LuaMapExporter, get_profile

        target = tmp_path / "level.lua"
        target.write_text("old", encoding="utf-8")
        assert LuaMapExporter(get_profile("moai")).write(_map(), target)
        assert "cellwidth = 8" in target.read_text(encoding="utf-8")

    def test_unopenable_destination(self, tmp_path) -> None:
        from tiled_lua.export import LuaMapExporter

        exporter = LuaMapExporter()
        assert not exporter.write(_map(), tmp_path / "missing" / "level.lua")
        assert exporter.error_string == "Could not open file for writing."

    def test_commit_failure_keeps_old_file(self, tmp_path, monkeypatch) -> None:
        """Test a failed save reports an error and leaves the old file alone."""
        from tiled_lua.export import LuaMapExporter

        target = tmp_path / "level.lua"
        target.write_text("old", encoding="utf-8")

        def failing_replace(src, dst):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr("tiled_lua.export.save_file.os.replace", failing_replace)

        exporter = LuaMapExporter()
        assert not exporter.write(_map(), target)
        assert "No space left on device" in exporter.error_string
        assert target.read_text(encoding="utf-8") == "old"
        assert os.listdir(tmp_path) == ["level.lua"]

    def test_write_failure_midway_keeps_old_file(self, tmp_path, monkeypatch) -> None:
        """Test an output error during serialization aborts without partial output."""
        from tiled_lua.export import LuaMapExporter, SaveFile

        target = tmp_path / "level.lua"
        target.write_text("old", encoding="utf-8")

        original_write = SaveFile.write
        calls = []

        def failing_write(self, text):
            calls.append(text)
            if len(calls) > 5:
                raise OSError(28, "No space left on device")
            return original_write(self, text)

        monkeypatch.setattr(SaveFile, "write", failing_write)

        exporter = LuaMapExporter()
        assert not exporter.write(_map(), target)
        assert "No space left on device" in exporter.error_string
        assert target.read_text(encoding="utf-8") == "old"
        assert os.listdir(tmp_path) == ["level.lua"]

    def test_invalid_map_propagates_and_discards(self, tmp_path) -> None:
        """Test data errors are raised and no partial output is kept."""
        from tiled_lua.export import LuaMapExporter, OutOfRangeIndex
        from tiled_lua.model import Cell, Tileset

        map_ = _map()
        map_.layers[0].set_cell(0, 0, Cell(Tileset(name="stray", tile_count=1), 0))
        target = tmp_path / "level.lua"
        target.write_text("old", encoding="utf-8")

        exporter = LuaMapExporter()
        with pytest.raises(OutOfRangeIndex):
            exporter.write(map_, target)
        assert exporter.error_string
        assert target.read_text(encoding="utf-8") == "old"
        assert os.listdir(tmp_path) == ["level.lua"]


class TestSaveFile:
    """Test the atomic file sink."""

    def test_commit(self, tmp_path) -> None:
        from tiled_lua.export import SaveFile

        target = tmp_path / "out.lua"
        with SaveFile(target) as sink:
            sink.write("return {}\n")
            assert not target.exists()
            sink.commit()
        assert target.read_text(encoding="utf-8") == "return {}\n"
        assert not sink.is_open

    def test_leaving_without_commit_discards(self, tmp_path) -> None:
        from tiled_lua.export import SaveFile

        target = tmp_path / "out.lua"
        with SaveFile(target) as sink:
            sink.write("partial")
        assert not target.exists()
        assert os.listdir(tmp_path) == []

    def test_commit_twice(self, tmp_path) -> None:
        from tiled_lua.export import SaveFile, SinkCommitError

        sink = SaveFile(tmp_path / "out.lua")
        sink.commit()
        with pytest.raises(SinkCommitError):
            sink.commit()
