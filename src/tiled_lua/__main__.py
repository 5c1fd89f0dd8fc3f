"""
Command line entry point for tiled_lua.
Usage: python -m tiled_lua map.tmj [output.lua] [--profile moai]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .export import LuaMapExporter, PolygonFormat, PROFILES
from .model import MapLoader
from .settings import AppSettings, ConfigError
from .utils.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tiled-lua",
        description="Export a Tiled JSON map as a Lua table.",
    )
    parser.add_argument("input", type=Path, help="Tiled map (.tmj/.json)")
    parser.add_argument(
        "output", type=Path, nargs="?",
        help="Destination .lua file (default: input with .lua suffix)",
    )
    parser.add_argument(
        "--profile", choices=sorted(PROFILES),
        help="Output profile (default: from settings)",
    )
    parser.add_argument(
        "--polygon-format", choices=[f.value for f in PolygonFormat],
        help="Override the profile's polygon encoding",
    )
    parser.add_argument("--settings", type=Path, help="INI settings file to use")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    logger = logging.getLogger(f"{__name__}.main")

    settings = AppSettings(settings_file=args.settings)
    setup_logging(settings)
    logger.debug(f"Configuration loaded from {settings.get_settings_file_path()}")

    validation = settings.validate()
    for warning in validation.warnings:
        logger.warning(f"  {warning}")
    if not validation.is_valid:
        logger.error("Configuration validation failed:")
        for error in validation.errors:
            logger.error(f"  {error}")
        return 1

    try:
        profile = settings.export.build_profile(args.profile, args.polygon_format)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    try:
        map_ = MapLoader().load(args.input)
    except (OSError, ValueError) as e:
        logger.error(f"Could not load {args.input}: {e}")
        return 1

    output = args.output or args.input.with_suffix(".lua")
    exporter = LuaMapExporter(profile, tiled_version=settings.export.tiled_version)
    if not exporter.write(map_, output):
        logger.error(exporter.error_string)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
