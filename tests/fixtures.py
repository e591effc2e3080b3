"""Test fixtures: photo files with real EXIF, fake readers, engine builders."""
from __future__ import annotations

import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import ExifTags, Image

from photosort.core.config import SortConfig
from photosort.engines.hash_engine import SHA256ContentHasher
from photosort.engines.metadata import ExifMetadataReader
from photosort.logging.rich_logger import QuietProgressReporter
from photosort.persistence.journal import JournalStore
from photosort.services.date_resolver import DateResolver
from photosort.services.file_ops import FileManager
from photosort.services.planner import PlacementPlanner
from photosort.services.scanner import DirectoryScanner
from photosort.services.sorter import SortDependencies, SortEngine


EXIF_FORMAT = "%Y:%m:%d %H:%M:%S"


def write_jpeg(
    path: Path,
    color: tuple[int, int, int] = (200, 30, 30),
    date_original: Optional[datetime] = None,
    date_digitized: Optional[datetime] = None,
    date_time: Optional[datetime] = None,
) -> Path:
    """Write a small JPEG, optionally carrying EXIF capture dates.

    Distinct colors give distinct bytes, hence distinct digests.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGB", (16, 16), color=color)
    exif = Image.Exif()
    exif_ifd = {}
    if date_original is not None:
        exif_ifd[ExifTags.Base.DateTimeOriginal] = date_original.strftime(EXIF_FORMAT)
    if date_digitized is not None:
        exif_ifd[ExifTags.Base.DateTimeDigitized] = date_digitized.strftime(EXIF_FORMAT)
    if exif_ifd:
        exif[ExifTags.IFD.Exif] = exif_ifd
    if date_time is not None:
        exif[ExifTags.Base.DateTime] = date_time.strftime(EXIF_FORMAT)
    img.save(path, "JPEG", exif=exif.tobytes())
    return path


def write_bytes(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def duplicate(source: Path, target: Path) -> Path:
    """Byte-identical copy without metadata."""
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, target)
    return target


def set_mtime(path: Path, when: datetime) -> None:
    stamp = when.timestamp()
    os.utime(path, (stamp, stamp))


class OutOfRangeDatetime(datetime):
    """datetime whose fromtimestamp fails the way it does for absurd mtimes."""

    @classmethod
    def fromtimestamp(cls, t, tz=None):
        raise OverflowError("timestamp out of range for platform time_t")


class FakeMetadataReader:
    """MetadataReader returning canned fields keyed by file name."""

    def __init__(self, fields_by_name: Optional[dict[str, dict[str, str]]] = None):
        self.fields_by_name = fields_by_name or {}
        self.calls: list[Path] = []

    def read_capture_fields(self, path: Path) -> dict[str, str]:
        self.calls.append(path)
        return dict(self.fields_by_name.get(path.name, {}))


class StopAfter:
    """Progress reporter that asks the engine to stop after N advances."""

    def __init__(self, count: int):
        self.count = count
        self.engine: Optional[SortEngine] = None
        self.advanced = 0
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def start_phase(self, name: str, total: int) -> None:
        pass

    def advance_phase(self, amount: int = 1, description: Optional[str] = None) -> None:
        self.advanced += amount
        if self.engine is not None and 0 < self.count <= self.advanced:
            self.engine.request_stop()

    def end_phase(self) -> None:
        pass

    def info(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        self.warnings.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


class RecordingReporter(StopAfter):
    """Reporter that records messages and never stops the run."""

    def __init__(self):
        super().__init__(count=0)


def build_engine(
    source: Path,
    destination: Path,
    reader=None,
    progress=None,
    **config_overrides,
) -> SortEngine:
    """Wire an engine with real collaborators and an optional fake reader."""
    config = SortConfig(source_root=source, destination_root=destination, **config_overrides)
    if not config.dry_run:
        config.destination_root.mkdir(parents=True, exist_ok=True)
    deps = SortDependencies(
        journal=JournalStore.load(config.destination_root),
        hasher=SHA256ContentHasher(),
        date_resolver=DateResolver(reader or ExifMetadataReader()),
        planner=PlacementPlanner(config.destination_root),
        file_manager=FileManager(config.destination_root),
        scanner=DirectoryScanner(exclude=config.destination_root),
        progress=progress or QuietProgressReporter(),
    )
    engine = SortEngine(config, deps)
    if isinstance(progress, StopAfter):
        progress.engine = engine
    return engine


def tree_digests(root: Path) -> dict[str, str]:
    """Map of year/name -> sha256 for every canonical file under root."""
    hasher = SHA256ContentHasher()
    result = {}
    for year_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        for path in sorted(year_dir.iterdir()):
            if path.is_file() and not path.name.startswith("."):
                result[f"{year_dir.name}/{path.name}"] = hasher.hash_file(path)
    return result
