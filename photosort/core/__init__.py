"""Core domain models and protocols."""
from .protocols import (
    MetadataReader,
    ContentHasher,
    Journal,
    ProgressReporter,
)
from .models import (
    FormatTag,
    DateSource,
    UnitOutcome,
    SourceFile,
    ResolvedDate,
    JournalEntry,
    OriginRecord,
    Placement,
    UnitResult,
    SortStats,
)
from .config import SortConfig
from .errors import (
    PhotoSortError,
    JournalCorruptError,
    JournalWriteError,
    DestinationError,
    UnitError,
)

__all__ = [
    # Protocols
    "MetadataReader",
    "ContentHasher",
    "Journal",
    "ProgressReporter",
    # Models
    "FormatTag",
    "DateSource",
    "UnitOutcome",
    "SourceFile",
    "ResolvedDate",
    "JournalEntry",
    "OriginRecord",
    "Placement",
    "UnitResult",
    "SortStats",
    # Config
    "SortConfig",
    # Errors
    "PhotoSortError",
    "JournalCorruptError",
    "JournalWriteError",
    "DestinationError",
    "UnitError",
]
