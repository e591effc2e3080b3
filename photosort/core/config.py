"""Configuration dataclasses with validation."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


PROGRESS_FILENAME = ".photo_sort_progress.json"
ORIGINS_FILENAME = ".photo_sort_origins"
PARTIAL_SUFFIX = ".partial"
DEFAULT_SKIP_DIRS = frozenset({".thumbnails"})


def default_destination(source_root: Path) -> Path:
    """Sibling directory named ``<source>_sorted``."""
    return source_root.parent / f"{source_root.name}_sorted"


@dataclass(slots=True)
class SortConfig:
    """Main configuration for a sort run.

    All fields are validated on construction.
    This is the only configuration object passed through the engine.
    """
    # Required
    source_root: Path

    # Output
    destination_root: Optional[Path] = None

    # Processing options
    dry_run: bool = False
    follow_symlinks: bool = False
    skip_dir_names: frozenset[str] = field(default_factory=lambda: DEFAULT_SKIP_DIRS)

    # Performance
    workers: int = 1

    def __post_init__(self) -> None:
        """Validate configuration."""
        self.source_root = Path(self.source_root).expanduser().resolve()
        if not self.source_root.exists():
            raise ValueError(f"Source path does not exist: {self.source_root}")
        if not self.source_root.is_dir():
            raise ValueError(f"Source path is not a directory: {self.source_root}")

        if self.destination_root is None:
            self.destination_root = default_destination(self.source_root)
        else:
            self.destination_root = Path(self.destination_root).expanduser().resolve()

        if self.destination_root == self.source_root:
            raise ValueError("Destination must differ from the source directory")

        if self.workers < 1:
            raise ValueError("Workers must be at least 1")

    @property
    def progress_path(self) -> Path:
        return self.destination_root / PROGRESS_FILENAME
