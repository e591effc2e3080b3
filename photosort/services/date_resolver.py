"""Capture date resolution cascade."""
from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional, TypeVar

from ..core.models import DateSource, ResolvedDate, SourceFile
from ..core.protocols import MetadataReader
from ..engines.metadata import CAPTURE_FIELDS

logger = logging.getLogger(__name__)

T = TypeVar("T")

YEAR_PATTERN = re.compile(r"(?<!\d)(?:19|20)\d{2}(?!\d)")

EXIF_DATETIME_FORMATS = (
    "%Y:%m:%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
)

# Used only when the file cannot even be stat'ed
EPOCH_FALLBACK = datetime(1970, 1, 1)


def first_success(candidates: Iterable[Callable[[], Optional[T]]]) -> Optional[T]:
    """Return the first non-None result of the candidates, in order."""
    for candidate in candidates:
        result = candidate()
        if result is not None:
            return result
    return None


def parse_exif_datetime(value: str) -> Optional[datetime]:
    """Parse an EXIF datetime string.

    Trailing sub-second or offset data after the 19-character timestamp is
    ignored. Blank, zeroed or out-of-range values return None.
    """
    text = value.strip()
    for candidate in (text, text[:19]):
        for fmt in EXIF_DATETIME_FORMATS:
            try:
                return datetime.strptime(candidate, fmt)
            except ValueError:
                continue
    return None


def date_from_fields(fields: dict[str, str]) -> Optional[datetime]:
    """First parseable field in DateTimeOriginal, DateTimeDigitized, DateTime order."""
    return first_success(
        (lambda name=name: parse_exif_datetime(fields[name]) if name in fields else None)
        for name in CAPTURE_FIELDS
    )


def folder_segments(path: Path, source_root: Path) -> list[str]:
    """Directory names from the source root (inclusive) down to the file's parent."""
    try:
        relative = path.relative_to(source_root)
    except ValueError:
        return list(path.parent.parts)
    segments = [source_root.name] if source_root.name else []
    segments.extend(relative.parts[:-1])
    return segments


def year_from_segments(segments: Iterable[str]) -> Optional[int]:
    """First 19xx/20xx year found, scanning segments outer to inner."""
    for segment in segments:
        match = YEAR_PATTERN.search(segment)
        if match:
            return int(match.group(0))
    return None


def date_from_folders(path: Path, source_root: Path) -> Optional[datetime]:
    year = year_from_segments(folder_segments(path, source_root))
    if year is None:
        return None
    return datetime(year, 1, 1)


def datetime_from_timestamp(timestamp: Optional[float]) -> Optional[datetime]:
    """Local datetime for a POSIX timestamp, or None if absent or out of range."""
    if not timestamp:
        return None
    try:
        return datetime.fromtimestamp(timestamp)
    except (OverflowError, OSError, ValueError) as e:
        logger.debug("Unusable timestamp %r: %s", timestamp, e)
        return None


def date_from_filesystem(path: Path) -> Optional[datetime]:
    """Creation time where the platform records it, else modification time."""
    try:
        stat = path.stat()
    except OSError:
        return None
    return first_success((
        lambda: datetime_from_timestamp(getattr(stat, "st_birthtime", None)),
        lambda: datetime_from_timestamp(stat.st_mtime),
    ))


class DateResolver:
    """Resolves one capture date per source file.

    Priority:
    1. Embedded EXIF (DateTimeOriginal, DateTimeDigitized, DateTime)
    2. A year in a folder name between the source root and the file
    3. Filesystem creation/modification time

    Never fails: a file that cannot be stat'ed resolves to the epoch with
    the filesystem tag.
    """

    def __init__(self, metadata_reader: MetadataReader):
        """Initialize with a metadata reader.

        Args:
            metadata_reader: Reader for embedded date fields.
        """
        self._reader = metadata_reader

    def resolve(self, source: SourceFile) -> ResolvedDate:
        return self.resolve_path(source.path, source.source_root)

    def resolve_path(self, path: Path, source_root: Path) -> ResolvedDate:
        """Run the cascade for a path.

        Args:
            path: Source file.
            source_root: Root of the tree being sorted.

        Returns:
            The winning timestamp and its tier.
        """
        resolved = first_success((
            lambda: self._from_exif(path),
            lambda: self._tagged(date_from_folders(path, source_root), DateSource.FOLDER_NAME),
            lambda: self._tagged(date_from_filesystem(path), DateSource.FILESYSTEM),
        ))
        if resolved is None:
            logger.warning("No date available for %s, using epoch", path)
            return ResolvedDate(EPOCH_FALLBACK, DateSource.FILESYSTEM)
        return resolved

    def _from_exif(self, path: Path) -> Optional[ResolvedDate]:
        fields = self._reader.read_capture_fields(path)
        if not fields:
            return None
        dt = date_from_fields(fields)
        if dt is None:
            logger.debug("Unparseable EXIF dates in %s: %s", path, fields)
        return self._tagged(dt, DateSource.EXIF)

    @staticmethod
    def _tagged(dt: Optional[datetime], source: DateSource) -> Optional[ResolvedDate]:
        if dt is None:
            return None
        return ResolvedDate(dt, source)
