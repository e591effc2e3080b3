"""Domain models - immutable data classes."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class FormatTag(Enum):
    """Supported photo formats, keyed by lower-case extension."""
    JPG = "jpg"
    JPEG = "jpeg"
    HEIC = "heic"
    HEIF = "heif"
    CR2 = "cr2"
    CR3 = "cr3"
    NEF = "nef"
    ARW = "arw"
    DNG = "dng"
    ORF = "orf"
    RW2 = "rw2"
    RAF = "raf"
    TIFF = "tiff"
    TIF = "tif"


class DateSource(Enum):
    """Which tier of the date cascade produced a date.

    Values are the tags persisted in the progress snapshot.
    """
    EXIF = "exif"
    FOLDER_NAME = "dirname"
    FILESYSTEM = "filesystem"


class UnitOutcome(Enum):
    """Terminal state of one source file."""
    COMMITTED = "committed"
    DUPLICATE = "duplicate"
    UNSUPPORTED = "unsupported"
    ALREADY_PROCESSED = "already_processed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class SourceFile:
    """Read-only view of a discovered source file."""
    path: Path
    size: int
    format_tag: FormatTag
    source_root: Path

    @property
    def extension(self) -> str:
        return self.path.suffix.lower().lstrip(".")


@dataclass(frozen=True, slots=True)
class ResolvedDate:
    """A capture timestamp and the cascade tier that produced it."""
    timestamp: datetime
    source: DateSource

    @property
    def year(self) -> int:
        return self.timestamp.year

    @property
    def base_name(self) -> str:
        """Canonical stem: YYYY-MM-DD_HH-MM-SS."""
        return self.timestamp.strftime("%Y-%m-%d_%H-%M-%S")


@dataclass(frozen=True, slots=True)
class JournalEntry:
    """One committed unit of work."""
    source: str
    dest: str
    size: int
    hash: str
    date_source: str


@dataclass(frozen=True, slots=True)
class OriginRecord:
    """Traceability line mapping a placed file to where it came from."""
    new_name: str
    original_path: str

    def format(self) -> str:
        return f"{self.new_name} <- {self.original_path}"


@dataclass(frozen=True, slots=True)
class Placement:
    """Planned destination for one source file."""
    year: str
    name: str
    counter: int = 0
    existing: bool = False  # adopt a matching file already on disk

    @property
    def relative_path(self) -> str:
        return f"{self.year}/{self.name}"


@dataclass(frozen=True, slots=True)
class UnitResult:
    """Result of processing a single source file."""
    path: Path
    outcome: UnitOutcome
    dest: Optional[str] = None
    resolved: Optional[ResolvedDate] = None
    reason: Optional[str] = None
    adopted: bool = False

    @property
    def is_success(self) -> bool:
        return self.outcome != UnitOutcome.FAILED


@dataclass(slots=True)
class SortStats:
    """Mutable run-state counters for one sort invocation."""
    discovered: int = 0
    processed: int = 0
    unsupported: int = 0
    duplicates: int = 0
    already_processed: int = 0
    committed: int = 0
    failed: int = 0
    adopted: int = 0
    origin_warnings: int = 0
    by_method: dict[str, int] = field(default_factory=dict)
    years: set[str] = field(default_factory=set)
    interrupted: bool = False
    elapsed_seconds: float = 0.0

    def record(self, result: UnitResult) -> None:
        """Fold a unit result into the counters."""
        self.processed += 1
        match result.outcome:
            case UnitOutcome.COMMITTED:
                self.committed += 1
                if result.adopted:
                    self.adopted += 1
                if result.resolved is not None:
                    method = result.resolved.source.value
                    self.by_method[method] = self.by_method.get(method, 0) + 1
                if result.dest:
                    self.years.add(result.dest.split("/", 1)[0])
            case UnitOutcome.DUPLICATE:
                self.duplicates += 1
            case UnitOutcome.UNSUPPORTED:
                self.unsupported += 1
            case UnitOutcome.ALREADY_PROCESSED:
                self.already_processed += 1
            case UnitOutcome.FAILED:
                self.failed += 1

    def summary(self) -> dict[str, int]:
        return {
            "discovered": self.discovered,
            "processed": self.processed,
            "committed": self.committed,
            "already_processed": self.already_processed,
            "duplicates": self.duplicates,
            "unsupported": self.unsupported,
            "failed": self.failed,
        }
