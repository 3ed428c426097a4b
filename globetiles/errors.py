"""Exception types raised by the tile pipeline."""


class GlobeTilesError(Exception):
    """Base class for all globetiles errors."""


class DecodeError(GlobeTilesError, ValueError):
    """Malformed geometry command stream (unknown opcode, truncated params)."""

    def __init__(self, message: str, offset: int | None = None):
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
        self.offset = offset


class FetchError(GlobeTilesError):
    """A tile could not be fetched or decoded by its source."""


class ProjectionPreconditionError(GlobeTilesError, ValueError):
    """Inverse Mercator was asked for a zoom level <= 0."""
