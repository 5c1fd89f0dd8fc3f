"""
Exception types raised while exporting a map.
"""


class ExportError(Exception):
    """Base class for all export failures."""
    pass


class OutOfRangeIndex(ExportError):
    """Raised when a tile index has no matching registered gid range."""
    pass


class ProtocolViolation(ExportError):
    """Raised when the table writer is driven out of order."""
    pass


class SinkError(ExportError):
    """Raised when the output medium fails."""
    pass


class SinkWriteError(SinkError):
    """Raised when writing to the output medium fails."""
    pass


class SinkCommitError(SinkError):
    """Raised when the finished output cannot be committed to its destination."""
    pass
