"""Utility helpers for tiled_lua."""

from .logging_config import ColoredFormatter, CSVFormatter, setup_logging

__all__ = ["ColoredFormatter", "CSVFormatter", "setup_logging"]
