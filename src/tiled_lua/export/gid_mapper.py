"""
Global tile identifier (gid) mapping.

Every tileset of a map owns a contiguous block of map-wide identifiers.
The first tileset starts at 1; 0 is reserved for "no tile". Orientation
flags live in the three high bits of a packed cell value and are only
packed and unpacked here.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Tuple

from .errors import OutOfRangeIndex

FLIPPED_HORIZONTALLY_FLAG = 0x80000000
FLIPPED_VERTICALLY_FLAG = 0x40000000
FLIPPED_DIAGONALLY_FLAG = 0x20000000
FLIP_FLAGS = FLIPPED_HORIZONTALLY_FLAG | FLIPPED_VERTICALLY_FLAG | FLIPPED_DIAGONALLY_FLAG
GID_MASK = 0x1FFFFFFF


@dataclass(frozen=True)
class CellRef:
    """Reference to a tile inside one collection.

    local_index is 1-based within the collection; 0 means "no tile".
    """
    collection: Any = None
    local_index: int = 0
    flipped_horizontally: bool = False
    flipped_vertically: bool = False
    flipped_diagonally: bool = False

    @property
    def is_empty(self) -> bool:
        return self.local_index == 0

    def stripped(self) -> "CellRef":
        """Return the same reference without orientation flags."""
        return CellRef(self.collection, self.local_index)


@dataclass(frozen=True)
class IdRange:
    """Block of gids owned by one collection."""
    first_id: int
    count: int
    collection: Any

    @property
    def last_id(self) -> int:
        return self.first_id + self.count - 1

    def contains(self, gid: int) -> bool:
        return self.first_id <= gid <= self.last_id


def pack_cell_value(
    gid: int, flipped_horizontally: bool = False,
    flipped_vertically: bool = False, flipped_diagonally: bool = False
) -> int:
    """Combine a gid and orientation flags into one cell value."""
    value = gid & GID_MASK
    if flipped_horizontally:
        value |= FLIPPED_HORIZONTALLY_FLAG
    if flipped_vertically:
        value |= FLIPPED_VERTICALLY_FLAG
    if flipped_diagonally:
        value |= FLIPPED_DIAGONALLY_FLAG
    return value


def unpack_cell_value(value: int) -> Tuple[int, bool, bool, bool]:
    """Split a packed cell value into (gid, flip_h, flip_v, flip_d)."""
    return (
        value & GID_MASK,
        bool(value & FLIPPED_HORIZONTALLY_FLAG),
        bool(value & FLIPPED_VERTICALLY_FLAG),
        bool(value & FLIPPED_DIAGONALLY_FLAG),
    )


class GidMapper:
    """Maps (collection, local index) pairs to map-wide gids and back.

    Ranges are appended in registration order and never reordered, so
    a linear scan visits them by ascending first_id. Collection counts
    are small, so the scan is cheaper than hashing every cell.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._ranges: List[IdRange] = []

    def __len__(self) -> int:
        return len(self._ranges)

    @property
    def ranges(self) -> Tuple[IdRange, ...]:
        return tuple(self._ranges)

    def clear(self) -> None:
        """Drop all registered ranges."""
        self._ranges.clear()

    def register_collection(self, collection: Any, size: int) -> int:
        """Append a range of `size` gids for `collection`.

        Args:
            collection: Tileset (or any object) owning the range
            size: Number of tiles in the collection

        Returns:
            The first gid assigned to the collection

        Raises:
            ValueError: If size is negative or the collection is already registered
            OutOfRangeIndex: If the range would overlap the flag bits
        """
        if size < 0:
            raise ValueError(f"Invalid collection size: {size}")
        if any(r.collection is collection for r in self._ranges):
            raise ValueError(f"Collection already registered: {collection!r}")

        if self._ranges:
            last = self._ranges[-1]
            first_id = last.first_id + last.count
        else:
            first_id = 1

        if first_id + size - 1 > GID_MASK:
            raise OutOfRangeIndex(
                f"Collection of {size} tiles starting at gid {first_id} exceeds the gid space"
            )

        self._ranges.append(IdRange(first_id, size, collection))
        self.logger.debug(f"Registered collection with {size} tiles at firstgid {first_id}")
        return first_id

    def range_for(self, collection: Any) -> IdRange:
        """Return the range owned by `collection`.

        Raises:
            OutOfRangeIndex: If the collection was never registered
        """
        for id_range in self._ranges:
            if id_range.collection is collection:
                return id_range
        raise OutOfRangeIndex(f"Collection not registered: {collection!r}")

    def first_id(self, collection: Any) -> int:
        return self.range_for(collection).first_id

    def to_global(self, cell: CellRef) -> int:
        """Translate a cell to its gid, keeping orientation flags."""
        gid = self.to_global_origin(cell)
        if gid == 0:
            return 0
        return pack_cell_value(
            gid,
            cell.flipped_horizontally,
            cell.flipped_vertically,
            cell.flipped_diagonally,
        )

    def to_global_origin(self, cell: CellRef) -> int:
        """Translate a cell to its gid with all orientation flags stripped."""
        if cell.is_empty:
            return 0

        id_range = self.range_for(cell.collection)
        if not 1 <= cell.local_index <= id_range.count:
            raise OutOfRangeIndex(
                f"Local index {cell.local_index} outside collection of {id_range.count} tiles"
            )
        return id_range.first_id + cell.local_index - 1

    def from_global(self, value: int) -> CellRef:
        """Recover the collection and local index of a (packed) gid.

        Raises:
            OutOfRangeIndex: If no registered range contains the gid
        """
        gid, flip_h, flip_v, flip_d = unpack_cell_value(value)
        if gid == 0:
            return CellRef()

        for id_range in self._ranges:
            if id_range.contains(gid):
                return CellRef(
                    id_range.collection,
                    gid - id_range.first_id + 1,
                    flip_h,
                    flip_v,
                    flip_d,
                )
        raise OutOfRangeIndex(f"Gid {gid} is not owned by any registered collection")
