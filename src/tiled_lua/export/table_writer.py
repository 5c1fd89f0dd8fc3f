"""
Streaming writer for nested Lua table documents.

The document is a single `return { ... }` statement. Each open table is
tracked as a frame on a stack so commas, braces and indentation stay
correct without buffering. A frame in compact mode replaces every line
break (and the indentation after it) by a single space.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from .errors import ProtocolViolation, SinkWriteError

INDENT = "  "

LUA_KEYWORDS = frozenset({
    "and", "break", "do", "else", "elseif", "end", "false", "for",
    "function", "goto", "if", "in", "local", "nil", "not", "or",
    "repeat", "return", "then", "true", "until", "while",
})

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
}


def is_bare_identifier(key: str) -> bool:
    """Check whether `key` can be written as an unquoted table key."""
    return bool(_IDENTIFIER_RE.match(key)) and key not in LUA_KEYWORDS


def quote(text: str) -> str:
    """Quote a string as a Lua string literal."""
    return '"' + "".join(_ESCAPES.get(c, c) for c in text) + '"'


def format_number(value: float) -> str:
    """Render a number in a locale-independent form Lua reads back."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "0/0"
    if math.isinf(value):
        return "math.huge" if value > 0 else "-math.huge"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def format_value(value: Any) -> str:
    """Render a scalar value.

    Raises:
        TypeError: If the value is not a bool, number or string
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, str):
        return quote(value)
    raise TypeError(f"Cannot write value of type {type(value).__name__}")


@dataclass
class _Frame:
    """One open table."""
    depth: int
    compact: bool = False
    has_entries: bool = False
    needs_separator: bool = False


class LuaTableWriter:
    """Writes a nested Lua table to a text sink.

    The sink only needs a `write(str)` method. Calls must be bracketed by
    exactly one `start_document()` / `end_document()` pair and tables must
    be closed in the reverse order they were opened; anything else raises
    `ProtocolViolation` before touching the sink.

    Example:
        >>> writer = LuaTableWriter(io.StringIO())
        >>> writer.start_document()
        >>> writer.write_key_and_value("width", 10)
        >>> writer.start_table("color")
        >>> writer.set_compact(True)
        >>> writer.write_value(255)
        >>> writer.write_value(0)
        >>> writer.end_table()
        >>> writer.end_document()

    produces::

        return {
          width = 10,
          color = { 255, 0 }
        }
    """

    def __init__(self, sink: Any):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._sink = sink
        self._frames: List[_Frame] = []
        self._started = False
        self._finished = False
        self._at_line_start = False

    # === STATE ===

    @property
    def depth(self) -> int:
        """Number of currently open tables, the root table included."""
        return len(self._frames)

    @property
    def compact(self) -> bool:
        return bool(self._frames) and self._frames[-1].compact

    def _current(self) -> _Frame:
        if not self._started:
            raise ProtocolViolation("Write before start_document()")
        if self._finished:
            raise ProtocolViolation("Write after end_document()")
        return self._frames[-1]

    # === DOCUMENT ===

    def start_document(self) -> None:
        """Open the root `return {` table."""
        if self._started:
            raise ProtocolViolation("start_document() called twice")
        self._started = True
        self._write("return {")
        self._frames.append(_Frame(depth=1))
        self._at_line_start = False

    def end_document(self) -> None:
        """Close the root table and finish the document."""
        self._current()
        if len(self._frames) != 1:
            raise ProtocolViolation(
                f"end_document() with {len(self._frames) - 1} table(s) still open"
            )
        self._close_frame()
        self._write("\n")
        self._finished = True

    # === TABLES ===

    def start_table(self, key: Optional[str] = None) -> None:
        """Open a table, keyed by a bare identifier or positional if no key."""
        if key is None:
            self._open_frame("{")
        else:
            self._check_bare_key(key)
            self._open_frame(f"{key} = {{")

    def start_quoted_table(self, key: str) -> None:
        """Open a table under a quoted key: `["key"] = {`."""
        self._open_frame(f"[{quote(key)}] = {{")

    def end_table(self) -> None:
        """Close the most recently opened table."""
        self._current()
        if len(self._frames) < 2:
            raise ProtocolViolation("end_table() without matching start_table()")
        self._close_frame()

    def set_compact(self, enabled: bool) -> None:
        """Toggle compact mode for the current table and tables opened in it."""
        self._current().compact = enabled

    # === VALUES ===

    def write_value(self, value: Any) -> None:
        """Write one positional scalar."""
        frame = self._current()
        text = format_value(value)
        self._prepare_new_value(frame)
        self._write(text)
        self._mark_written(frame)

    def write_key_and_value(self, key: str, value: Any) -> None:
        """Write `key = value` with a bare identifier key."""
        frame = self._current()
        self._check_bare_key(key)
        text = format_value(value)
        self._prepare_new_line(frame)
        self._write(f"{key} = {text}")
        self._mark_written(frame)

    def write_quoted_key_and_value(self, key: str, value: Any) -> None:
        """Write `["key"] = value`; used for keys coming from user data."""
        frame = self._current()
        text = format_value(value)
        self._prepare_new_line(frame)
        self._write(f"[{quote(key)}] = {text}")
        self._mark_written(frame)

    def prepare_new_line(self) -> None:
        """Emit any pending comma and start a new line in the current table."""
        self._prepare_new_line(self._current())

    # === INTERNALS ===

    def _check_bare_key(self, key: str) -> None:
        if not is_bare_identifier(key):
            raise ProtocolViolation(f"Key {key!r} is not a valid bare identifier")

    def _open_frame(self, opening: str) -> None:
        parent = self._current()
        self._prepare_new_line(parent)
        self._write(opening)
        self._frames.append(_Frame(depth=parent.depth + 1, compact=parent.compact))
        self._at_line_start = False

    def _close_frame(self) -> None:
        frame = self._frames.pop()
        if frame.has_entries:
            self._newline(frame.depth - 1, frame.compact)
        self._write("}")
        if self._frames:
            self._mark_written(self._frames[-1])

    def _mark_written(self, frame: _Frame) -> None:
        frame.has_entries = True
        frame.needs_separator = True
        self._at_line_start = False

    def _prepare_new_line(self, frame: _Frame) -> None:
        if frame.needs_separator:
            self._write(",")
            frame.needs_separator = False
        if not self._at_line_start:
            self._newline(frame.depth, frame.compact)

    def _prepare_new_value(self, frame: _Frame) -> None:
        if frame.needs_separator:
            self._write(", ")
            frame.needs_separator = False
        elif not self._at_line_start:
            self._newline(frame.depth, frame.compact)

    def _newline(self, depth: int, compact: bool) -> None:
        if compact:
            self._write(" ")
        else:
            self._write("\n" + INDENT * depth)
        self._at_line_start = True

    def _write(self, text: str) -> None:
        try:
            self._sink.write(text)
        except OSError as e:
            self.logger.error(f"Failed writing to output: {e}")
            raise SinkWriteError(str(e) or "Could not write to output") from e
