"""Protocol definitions (interfaces) for dependency injection."""
from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Iterator, Optional, Protocol

from .models import JournalEntry


class MetadataReader(Protocol):
    """Interface for reading embedded capture-time metadata.

    Implementations:
    - ExifMetadataReader: Pillow first, ExifRead for raw containers
    """

    @abstractmethod
    def read_capture_fields(self, path: Path) -> dict[str, str]:
        """Return raw date fields keyed by tag name.

        Keys are among ``DateTimeOriginal``, ``DateTimeDigitized`` and
        ``DateTime``. Missing tags are absent; unreadable files yield ``{}``.
        """
        ...


class ContentHasher(Protocol):
    """Interface for computing content digests."""

    @abstractmethod
    def hash_file(self, path: Path) -> str:
        """Digest of the full byte content. Raises OSError on read failure."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Algorithm name for logging."""
        ...


class Journal(Protocol):
    """Interface for the durable record of committed work."""

    @abstractmethod
    def __len__(self) -> int:
        ...

    @abstractmethod
    def __iter__(self) -> Iterator[JournalEntry]:
        """Committed entries in commit order."""
        ...

    @abstractmethod
    def contains(self, digest: str) -> bool:
        """Check whether a digest has already been committed."""
        ...

    @abstractmethod
    def source_size(self, source: str) -> Optional[int]:
        """Byte size recorded for a committed source path, if any."""
        ...

    @abstractmethod
    def is_destination(self, relative_path: str) -> bool:
        """Check whether a destination path is owned by a committed entry."""
        ...

    @abstractmethod
    def commit(self, entry: JournalEntry) -> None:
        """Durably record an entry before returning."""
        ...


class ProgressReporter(Protocol):
    """Interface for progress reporting."""

    @abstractmethod
    def start_phase(self, name: str, total: int) -> None:
        """Start a new processing phase."""
        ...

    @abstractmethod
    def advance_phase(self, amount: int = 1, description: Optional[str] = None) -> None:
        """Advance the current phase by an amount."""
        ...

    @abstractmethod
    def end_phase(self) -> None:
        """Complete current phase."""
        ...

    @abstractmethod
    def info(self, message: str) -> None:
        """Log an info message."""
        ...

    @abstractmethod
    def warning(self, message: str) -> None:
        """Log a warning message."""
        ...

    @abstractmethod
    def error(self, message: str) -> None:
        """Log an error message."""
        ...
