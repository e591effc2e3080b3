"""Directory scanning service."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Optional

from ..core.config import DEFAULT_SKIP_DIRS

logger = logging.getLogger(__name__)


class DirectoryScanner:
    """Walks a source tree in a deterministic order.

    Yields every regular file; classification happens downstream so
    unsupported files can be counted.
    """

    def __init__(
        self,
        skip_dir_names: Iterable[str] = DEFAULT_SKIP_DIRS,
        follow_symlinks: bool = False,
        exclude: Optional[Path] = None,
    ):
        """Initialize the scanner.

        Args:
            skip_dir_names: Directory names never entered.
            follow_symlinks: Whether to follow symbolic links.
            exclude: A directory pruned from the walk, typically the
                destination root when it lives inside the source.
        """
        self._skip = frozenset(skip_dir_names)
        self._follow_symlinks = follow_symlinks
        self._exclude = exclude.resolve() if exclude is not None else None

    def scan(self, source_root: Path) -> Iterator[Path]:
        """Yield files under ``source_root``, sorted per directory.

        Args:
            source_root: Directory to walk.

        Yields:
            Absolute file paths.
        """
        root = source_root.resolve()
        for dirpath, dirnames, filenames in os.walk(
            root,
            followlinks=self._follow_symlinks,
            onerror=self._on_error,
        ):
            current = Path(dirpath)
            dirnames[:] = sorted(
                name for name in dirnames if self._should_enter(current / name, name)
            )
            for name in sorted(filenames):
                path = current / name
                if path.is_symlink() and not self._follow_symlinks:
                    continue
                if path.is_file():
                    yield path

    def _should_enter(self, path: Path, name: str) -> bool:
        if name in self._skip:
            return False
        if self._exclude is not None and path == self._exclude:
            return False
        return True

    @staticmethod
    def _on_error(error: OSError) -> None:
        logger.warning("Cannot read directory %s: %s", error.filename, error.strerror)
