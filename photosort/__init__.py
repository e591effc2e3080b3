"""Photo sorting: date, deduplicate and file photos into year folders.

Resumable: every placed file is recorded in a journal at the destination
root, so an interrupted run picks up where it stopped.
"""

__version__ = "1.0.0"

# Core exports
from .core.config import SortConfig
from .core.models import (
    FormatTag,
    DateSource,
    ResolvedDate,
    JournalEntry,
    UnitOutcome,
    UnitResult,
    SortStats,
)
from .core.errors import PhotoSortError, JournalCorruptError, JournalWriteError

# Engine exports
from .engines.formats import classify
from .engines.hash_engine import SHA256ContentHasher
from .engines.metadata import ExifMetadataReader

# Service exports
from .services.date_resolver import DateResolver
from .services.planner import PlacementPlanner
from .services.sorter import SortEngine, SortDependencies, create_dependencies

# Persistence exports
from .persistence.journal import JournalStore

# Logging exports
from .logging.rich_logger import RichProgressReporter, QuietProgressReporter

__all__ = [
    # Core
    "SortConfig",
    "FormatTag",
    "DateSource",
    "ResolvedDate",
    "JournalEntry",
    "UnitOutcome",
    "UnitResult",
    "SortStats",
    "PhotoSortError",
    "JournalCorruptError",
    "JournalWriteError",
    # Engines
    "classify",
    "SHA256ContentHasher",
    "ExifMetadataReader",
    # Services
    "DateResolver",
    "PlacementPlanner",
    "SortEngine",
    "SortDependencies",
    "create_dependencies",
    # Persistence
    "JournalStore",
    # Logging
    "RichProgressReporter",
    "QuietProgressReporter",
]
