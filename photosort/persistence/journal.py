"""JSON progress snapshot acting as the resumable journal."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict
from pathlib import Path
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..core.config import PROGRESS_FILENAME
from ..core.errors import JournalCorruptError, JournalWriteError
from ..core.models import DateSource, JournalEntry

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"

# Source paths keep undecodable filename bytes as lone surrogates; the
# snapshot stores those bytes unchanged.
FILE_ERRORS = "surrogateescape"


class SnapshotEntry(BaseModel):
    """Validated on-disk form of a journal entry."""
    model_config = ConfigDict(extra="forbid")

    source: str
    dest: str
    size: int = Field(ge=0)
    hash: str = Field(min_length=1)
    date_source: str

    @field_validator("source", "dest", mode="plain")
    @classmethod
    def path_text(cls, value: Any) -> str:
        # Plain mode: path text may carry surrogates and is taken as is
        if not isinstance(value, str) or not value:
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("date_source")
    @classmethod
    def known_date_source(cls, value: str) -> str:
        DateSource(value)
        return value

    def to_entry(self) -> JournalEntry:
        return JournalEntry(
            source=self.source,
            dest=self.dest,
            size=self.size,
            hash=self.hash,
            date_source=self.date_source,
        )


class ProgressSnapshot(BaseModel):
    """Top-level document: ``{"processed": [...]}``."""
    processed: list[SnapshotEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_digests(self) -> "ProgressSnapshot":
        seen: set[str] = set()
        for entry in self.processed:
            if entry.hash in seen:
                raise ValueError(f"digest {entry.hash} is recorded twice")
            seen.add(entry.hash)
        return self


def fsync_directory(directory: Path) -> None:
    """Persist renames and new entries on platforms that allow opening directories."""
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def atomic_write_text(path: Path, text: str) -> None:
    """Write text to a temp file beside ``path``, fsync, then replace ``path``.

    Readers observe either the old file or the complete new one. On failure
    the temp file is removed and ``path`` is left untouched.
    """
    fd, tmp_name = tempfile.mkstemp(
        prefix=f"{path.name}.", suffix=TEMP_SUFFIX, dir=path.parent
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors=FILE_ERRORS) as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    fsync_directory(path.parent)


class JournalStore:
    """Durable record of every committed unit, keyed by content digest.

    The full snapshot is rewritten atomically on each commit, so a crash at
    any point leaves either the previous or the new snapshot on disk. The set
    of committed digests is the deduplication index.

    Single writer: callers must not commit concurrently.
    """

    def __init__(
        self,
        path: Path,
        entries: Optional[list[JournalEntry]] = None,
        write_attempts: int = 3,
    ):
        """Initialize a store.

        Args:
            path: Snapshot file location.
            entries: Previously committed entries.
            write_attempts: Snapshot rewrite attempts before giving up.
        """
        if write_attempts < 1:
            raise ValueError("write_attempts must be at least 1")
        self._path = path
        self._write_attempts = write_attempts
        self._entries: list[JournalEntry] = []
        self._payload: list[dict] = []
        self._by_digest: dict[str, JournalEntry] = {}
        self._by_source: dict[str, int] = {}
        self._destinations: set[str] = set()
        for entry in entries or ():
            self._index(entry)

    # --- Loading ---

    @classmethod
    def load(cls, root: Path, filename: str = PROGRESS_FILENAME) -> "JournalStore":
        """Load the snapshot stored under a destination root.

        Args:
            root: Destination root.
            filename: Snapshot file name.

        Returns:
            A store holding every committed entry (empty on a fresh root).

        Raises:
            JournalCorruptError: If the snapshot exists but is invalid.
        """
        path = root / filename
        cls._remove_stale_temps(path)
        if not path.exists():
            return cls(path)

        try:
            raw = path.read_bytes().decode("utf-8", errors=FILE_ERRORS)
        except OSError as exc:
            raise JournalCorruptError(f"Cannot read progress snapshot {path}: {exc}") from exc

        if not raw.strip():
            return cls(path)

        try:
            snapshot = ProgressSnapshot.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise JournalCorruptError(f"Invalid progress snapshot {path}: {exc}") from exc

        entries = [item.to_entry() for item in snapshot.processed]
        logger.debug("Loaded %d journal entries from %s", len(entries), path)
        return cls(path, entries)

    @staticmethod
    def _remove_stale_temps(path: Path) -> None:
        if not path.parent.is_dir():
            return
        for stale in path.parent.glob(f"{path.name}.*{TEMP_SUFFIX}"):
            logger.info("Removing stale snapshot temp file %s", stale)
            stale.unlink(missing_ok=True)

    # --- Queries ---

    @property
    def path(self) -> Path:
        return self._path

    @property
    def entries(self) -> tuple[JournalEntry, ...]:
        return tuple(self._entries)

    @property
    def digests(self) -> frozenset[str]:
        return frozenset(self._by_digest)

    @property
    def destinations(self) -> frozenset[str]:
        return frozenset(self._destinations)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[JournalEntry]:
        return iter(list(self._entries))

    def contains(self, digest: str) -> bool:
        return digest in self._by_digest

    def source_size(self, source: str) -> Optional[int]:
        return self._by_source.get(source)

    def is_destination(self, relative_path: str) -> bool:
        return relative_path in self._destinations

    # --- Commit ---

    def commit(self, entry: JournalEntry) -> None:
        """Record an entry and durably rewrite the snapshot before returning.

        Args:
            entry: The unit just placed.

        Raises:
            ValueError: If the digest was already committed.
            JournalWriteError: If the snapshot could not be rewritten. The
                in-memory state is rolled back and the previous snapshot on
                disk is unaffected.
        """
        if entry.hash in self._by_digest:
            raise ValueError(f"Digest already committed: {entry.hash}")

        self._index(entry)
        try:
            self._write_snapshot()
        except OSError as exc:
            self._unindex(entry)
            raise JournalWriteError(
                f"Cannot write progress snapshot {self._path}: {exc}"
            ) from exc
        except BaseException:
            self._unindex(entry)
            raise

    def _write_snapshot(self) -> None:
        text = json.dumps({"processed": self._payload}, indent=2, ensure_ascii=False)
        for attempt in range(1, self._write_attempts + 1):
            try:
                atomic_write_text(self._path, text)
                return
            except OSError as exc:
                logger.warning(
                    "Snapshot write attempt %d/%d failed: %s",
                    attempt, self._write_attempts, exc,
                )
                if attempt == self._write_attempts:
                    raise

    def _index(self, entry: JournalEntry) -> None:
        self._entries.append(entry)
        self._payload.append(asdict(entry))
        self._by_digest[entry.hash] = entry
        self._by_source[entry.source] = entry.size
        self._destinations.add(entry.dest)

    def _unindex(self, entry: JournalEntry) -> None:
        self._entries.pop()
        self._payload.pop()
        del self._by_digest[entry.hash]
        previous = [e for e in self._entries if e.source == entry.source]
        if previous:
            self._by_source[entry.source] = previous[-1].size
        else:
            self._by_source.pop(entry.source, None)
        self._destinations.discard(entry.dest)
