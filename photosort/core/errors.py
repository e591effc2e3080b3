"""Sort engine errors."""


class PhotoSortError(Exception):
    """Base exception for sort engine failures."""


class JournalCorruptError(PhotoSortError):
    """Raised when the progress snapshot exists but cannot be parsed."""


class JournalWriteError(PhotoSortError):
    """Raised when the progress snapshot cannot be rewritten."""


class DestinationError(PhotoSortError):
    """Raised when the destination root cannot be created or used."""


class UnitError(PhotoSortError):
    """Raised for a failure confined to a single source file."""
