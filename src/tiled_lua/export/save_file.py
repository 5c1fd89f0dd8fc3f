"""
Atomic replace-or-discard file output.

Text is written to a temporary file next to the destination. `commit()`
moves it over the destination in one step; `discard()` (or leaving the
context without committing) removes it, so a previously valid file is
never replaced by a partial one.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from .errors import SinkCommitError

logger = logging.getLogger(__name__)


class SaveFile:
    """Text sink writing to a temporary file until committed.

    Raises:
        OSError: From the constructor, if the temporary file cannot be created
    """

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8"):
        self.path = Path(path)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        self.temp_path = Path(tmp_name)
        try:
            self._file = os.fdopen(fd, "w", encoding=encoding, newline="\n")
        except OSError:
            os.close(fd)
            self._remove_temp()
            raise
        self._done = False

    def __enter__(self) -> "SaveFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._done:
            self.discard()

    @property
    def is_open(self) -> bool:
        return not self._done

    def write(self, text: str) -> int:
        return self._file.write(text)

    def commit(self) -> None:
        """Flush the temporary file and move it over the destination.

        Raises:
            SinkCommitError: If flushing or replacing fails; the temporary
                file is removed in that case
        """
        if self._done:
            raise SinkCommitError(f"{self.path} was already committed or discarded")
        self._done = True
        try:
            self._file.flush()
            os.fsync(self._file.fileno())
            self._file.close()
            os.replace(self.temp_path, self.path)
        except OSError as e:
            self._close_quietly()
            self._remove_temp()
            raise SinkCommitError(f"Could not save {self.path}: {e.strerror or e}") from e
        logger.debug(f"Committed {self.path}")

    def discard(self) -> None:
        """Drop everything written so far."""
        if self._done:
            return
        self._done = True
        self._close_quietly()
        self._remove_temp()
        logger.debug(f"Discarded partial output for {self.path}")

    def _close_quietly(self) -> None:
        try:
            self._file.close()
        except OSError as e:
            logger.debug(f"Ignoring close error on {self.temp_path}: {e}")

    def _remove_temp(self) -> None:
        try:
            self.temp_path.unlink()
        except FileNotFoundError:
            pass
