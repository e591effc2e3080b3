"""File operations service."""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from ..core.config import ORIGINS_FILENAME, PARTIAL_SUFFIX
from ..core.models import OriginRecord
from ..persistence.journal import FILE_ERRORS, fsync_directory

logger = logging.getLogger(__name__)


def partial_path(target: Path) -> Path:
    """Hidden staging name used while a copy is in flight."""
    return target.with_name(f".{target.name}{PARTIAL_SUFFIX}")


class FileManager:
    """Handles destination-side file operations with crash recovery support.

    Copies are staged under a hidden ``.partial`` name, flushed to disk,
    then renamed into place, so a canonical name never holds a truncated
    file. The rename is flushed too before the copy is reported done.
    """

    def __init__(self, destination_root: Path):
        """Initialize file manager.

        Args:
            destination_root: Root directory for output.
        """
        self._root = destination_root

    def ensure_directory(self, path: Path) -> bool:
        """Create ``path`` if needed.

        Returns:
            True if the directory was created by this call.
        """
        if path.is_dir():
            return False
        path.mkdir(parents=True, exist_ok=True)
        return True

    def copy_file(self, source: Path, target: Path) -> int:
        """Copy a file, preserving timestamps, and publish it atomically.

        Args:
            source: Source file path.
            target: Final target path.

        Returns:
            Number of bytes written.

        Raises:
            OSError: If reading, writing or renaming fails. The staging file
                is removed and ``target`` is not created.
        """
        created = self.ensure_directory(target.parent)
        staging = partial_path(target)
        try:
            with source.open("rb") as src, staging.open("wb") as dst:
                shutil.copyfileobj(src, dst, 1024 * 1024)
                dst.flush()
                os.fsync(dst.fileno())
            shutil.copystat(source, staging)
            written = staging.stat().st_size
            os.replace(staging, target)
        except BaseException:
            staging.unlink(missing_ok=True)
            raise
        fsync_directory(target.parent)
        if created:
            fsync_directory(target.parent.parent)
        return written

    def append_origin(self, year_dir: Path, record: OriginRecord) -> None:
        """Append one traceability line to the year's origins file.

        Undecodable bytes in the source path are written back unchanged.

        Raises:
            OSError: If the file cannot be opened or written.
        """
        origins = year_dir / ORIGINS_FILENAME
        with origins.open("a", encoding="utf-8", errors=FILE_ERRORS) as handle:
            handle.write(record.format() + "\n")

    def remove_partials(self) -> int:
        """Delete staging files left by an interrupted copy.

        Returns:
            Number of files removed.
        """
        if not self._root.is_dir():
            return 0
        removed = 0
        for year_dir in self._root.iterdir():
            if not year_dir.is_dir() or year_dir.is_symlink():
                continue
            for leftover in year_dir.glob(f".*{PARTIAL_SUFFIX}"):
                try:
                    leftover.unlink()
                    removed += 1
                except OSError as e:
                    logger.warning("Cannot remove partial copy %s: %s", leftover, e)
        return removed
