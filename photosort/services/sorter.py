"""Sort engine - orchestrates discovery, dating, dedup and placement."""
from __future__ import annotations

import logging
import signal
import threading
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Union

from ..core.config import SortConfig
from ..core.errors import DestinationError, UnitError
from ..core.models import (
    JournalEntry,
    OriginRecord,
    Placement,
    ResolvedDate,
    SortStats,
    SourceFile,
    UnitOutcome,
    UnitResult,
)
from ..core.protocols import ContentHasher, Journal, ProgressReporter
from ..engines.formats import classify
from ..engines.hash_engine import SHA256ContentHasher
from ..engines.metadata import ExifMetadataReader
from ..persistence.journal import JournalStore
from .date_resolver import DateResolver
from .file_ops import FileManager
from .planner import PlacementPlanner
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


@dataclass
class SortDependencies:
    """All collaborators needed by the engine.

    This is explicitly passed in - no globals or singletons.
    """
    journal: Journal
    hasher: ContentHasher
    date_resolver: DateResolver
    planner: PlacementPlanner
    file_manager: FileManager
    scanner: DirectoryScanner
    progress: ProgressReporter


@dataclass(frozen=True, slots=True)
class PreparedUnit:
    """A source file that has been dated and hashed, ready to place."""
    source: SourceFile
    resolved: ResolvedDate
    digest: str


Prepared = Union[PreparedUnit, UnitResult]


def create_dependencies(config: SortConfig, progress: ProgressReporter) -> SortDependencies:
    """Build the default collaborators for a config.

    Creates the destination root (except in dry-run mode) and loads the
    journal from it.

    Raises:
        DestinationError: If the destination root cannot be created.
        JournalCorruptError: If an existing snapshot is invalid.
    """
    destination = config.destination_root
    if not config.dry_run:
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DestinationError(f"Cannot create destination {destination}: {exc}") from exc
    elif destination.exists() and not destination.is_dir():
        raise DestinationError(f"Destination is not a directory: {destination}")

    return SortDependencies(
        journal=JournalStore.load(destination),
        hasher=SHA256ContentHasher(),
        date_resolver=DateResolver(ExifMetadataReader()),
        planner=PlacementPlanner(destination),
        file_manager=FileManager(destination),
        scanner=DirectoryScanner(
            skip_dir_names=config.skip_dir_names,
            follow_symlinks=config.follow_symlinks,
            exclude=destination,
        ),
        progress=progress,
    )


class SortEngine:
    """Sorts one source tree into a year-partitioned destination.

    Per file: classify, resolve date, hash, skip if the digest is already
    journaled, otherwise plan a name, copy, commit to the journal and append
    an origin line. Per-file errors become FAILED results; only journal and
    destination errors abort the run.

    Reads (dating and hashing) may run on worker threads; planning, copying
    and commits always happen on the calling thread, one at a time.
    """

    def __init__(self, config: SortConfig, deps: SortDependencies):
        """Initialize engine with config and dependencies.

        Args:
            config: Run configuration.
            deps: All required collaborators.
        """
        self._config = config
        self._deps = deps
        self._stop = threading.Event()
        self._dry_digests: set[str] = set()
        self._previous_handler = None
        # Frozen at start so worker threads never touch the journal
        self._known_sources = {e.source: e.size for e in deps.journal}

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def request_stop(self) -> None:
        """Ask the run to stop at the next unit boundary."""
        self._stop.set()

    def run(self) -> SortStats:
        """Run the sort.

        Returns:
            Aggregate counters; ``interrupted`` is set if stopped early.

        Raises:
            JournalWriteError: If a commit could not be persisted.
        """
        stats = SortStats()
        started = time.monotonic()
        installed = self._install_signal_handler()
        try:
            self._recover_partials()
            paths = self._discover(stats)
            if not self.stop_requested:
                self._process_all(paths, stats)
            stats.interrupted = self.stop_requested
        finally:
            self._restore_signal_handler(installed)
            stats.elapsed_seconds = time.monotonic() - started

        logger.info("Sort finished: %s", stats.summary())
        if stats.interrupted:
            self._deps.progress.warning(
                f"Interrupted. Processed {stats.processed} of {stats.discovered} files; "
                f"progress is saved."
            )
        return stats

    # --- Phases ---

    def _recover_partials(self) -> None:
        if self._config.dry_run:
            return
        removed = self._deps.file_manager.remove_partials()
        if removed:
            self._deps.progress.warning(f"Removed {removed} partial copies from a previous run")

    def _discover(self, stats: SortStats) -> list[Path]:
        self._deps.progress.info(f"Scanning {self._config.source_root}...")
        paths: list[Path] = []
        for path in self._deps.scanner.scan(self._config.source_root):
            if self.stop_requested:
                break
            paths.append(path)
        stats.discovered = len(paths)
        if len(self._deps.journal):
            self._deps.progress.info(
                f"Resuming: {len(self._deps.journal)} files already in the journal"
            )
        self._deps.progress.info(f"Found {len(paths)} files")
        return paths

    def _process_all(self, paths: list[Path], stats: SortStats) -> None:
        progress = self._deps.progress
        progress.start_phase("Sorting", len(paths))
        try:
            for prepared in self._prepare_all(paths):
                result = prepared if isinstance(prepared, UnitResult) else self._place(prepared)
                stats.record(result)
                if not result.is_success:
                    progress.error(f"{result.path}: {result.reason}")
                elif result.reason == "origins":
                    stats.origin_warnings += 1
                progress.advance_phase(1, description=self._describe(result))
                if self.stop_requested:
                    break
        finally:
            progress.end_phase()

    def _prepare_all(self, paths: list[Path]) -> Iterator[Prepared]:
        """Yield prepared units in discovery order, stopping on request."""
        if self._config.workers == 1:
            for path in paths:
                if self.stop_requested:
                    return
                yield self._prepare(path)
            return

        window = self._config.workers * 2
        pending: deque[Future[Prepared]] = deque()
        remaining = iter(paths)
        with ThreadPoolExecutor(max_workers=self._config.workers) as executor:
            try:
                for path in remaining:
                    pending.append(executor.submit(self._prepare, path))
                    if len(pending) >= window:
                        break
                while pending:
                    if self.stop_requested:
                        return
                    prepared = pending.popleft().result()
                    next_path = next(remaining, None)
                    if next_path is not None:
                        pending.append(executor.submit(self._prepare, next_path))
                    yield prepared
            finally:
                for future in pending:
                    future.cancel()

    # --- Per-unit steps ---

    def _prepare(self, path: Path) -> Prepared:
        """Classify, date and hash one file. Read-only; safe on any thread."""
        format_tag = classify(path)
        if format_tag is None:
            return UnitResult(path=path, outcome=UnitOutcome.UNSUPPORTED)

        try:
            size = path.stat().st_size
        except OSError as e:
            return UnitResult(path=path, outcome=UnitOutcome.FAILED, reason=f"stat failed: {e}")

        if self._known_sources.get(str(path)) == size:
            return UnitResult(path=path, outcome=UnitOutcome.ALREADY_PROCESSED)

        source = SourceFile(
            path=path,
            size=size,
            format_tag=format_tag,
            source_root=self._config.source_root,
        )
        try:
            resolved = self._deps.date_resolver.resolve(source)
        except Exception as e:
            logger.debug("Date resolution failed for %s", path, exc_info=True)
            return UnitResult(
                path=path, outcome=UnitOutcome.FAILED, reason=f"date resolution failed: {e!r}",
            )

        try:
            digest = self._deps.hasher.hash_file(path)
        except OSError as e:
            return UnitResult(
                path=path, outcome=UnitOutcome.FAILED, resolved=resolved,
                reason=f"read failed: {e}",
            )
        return PreparedUnit(source=source, resolved=resolved, digest=digest)

    def _place(self, unit: PreparedUnit) -> UnitResult:
        """Dedup, plan, copy and commit one unit. Main thread only."""
        path = unit.source.path
        if self._is_known_digest(unit.digest):
            logger.debug("Duplicate content: %s", path)
            return UnitResult(path=path, outcome=UnitOutcome.DUPLICATE, resolved=unit.resolved)

        planner = self._deps.planner
        placement = planner.plan(
            unit.resolved,
            unit.source.extension,
            reusable=lambda name: self._is_orphan_copy(unit, name),
        )

        if self._config.dry_run:
            self._dry_digests.add(unit.digest)
            return UnitResult(
                path=path, outcome=UnitOutcome.COMMITTED,
                dest=placement.relative_path, resolved=unit.resolved,
            )

        if not placement.existing:
            try:
                self._copy(unit, placement)
            except (OSError, UnitError) as e:
                planner.release(placement)
                return UnitResult(
                    path=path, outcome=UnitOutcome.FAILED, resolved=unit.resolved,
                    reason=f"copy failed: {e}",
                )
        else:
            logger.info("Adopting existing %s for %s", placement.relative_path, path)

        self._deps.journal.commit(JournalEntry(
            source=str(path),
            dest=placement.relative_path,
            size=unit.source.size,
            hash=unit.digest,
            date_source=unit.resolved.source.value,
        ))

        reason = None
        try:
            self._deps.file_manager.append_origin(
                planner.year_directory(placement.year),
                OriginRecord(new_name=placement.name, original_path=str(path)),
            )
        except OSError as e:
            self._deps.progress.warning(f"Could not record origin for {placement.name}: {e}")
            reason = "origins"

        return UnitResult(
            path=path,
            outcome=UnitOutcome.COMMITTED,
            dest=placement.relative_path,
            resolved=unit.resolved,
            reason=reason,
            adopted=placement.existing,
        )

    def _copy(self, unit: PreparedUnit, placement: Placement) -> None:
        target = self._deps.planner.year_directory(placement.year) / placement.name
        written = self._deps.file_manager.copy_file(unit.source.path, target)
        if written != unit.source.size:
            target.unlink(missing_ok=True)
            raise UnitError(
                f"source changed during copy ({written} bytes, expected {unit.source.size})"
            )

    def _is_known_digest(self, digest: str) -> bool:
        return self._deps.journal.contains(digest) or digest in self._dry_digests

    def _is_orphan_copy(self, unit: PreparedUnit, name: str) -> bool:
        """True if ``name`` holds an uncommitted copy of this exact source."""
        year = f"{unit.resolved.year:04d}"
        if self._deps.journal.is_destination(f"{year}/{name}"):
            return False
        candidate = self._deps.planner.year_directory(year) / name
        try:
            if not candidate.is_file() or candidate.stat().st_size != unit.source.size:
                return False
            return self._deps.hasher.hash_file(candidate) == unit.digest
        except OSError:
            return False

    @staticmethod
    def _describe(result: UnitResult) -> str:
        name = result.path.name
        match result.outcome:
            case UnitOutcome.COMMITTED:
                return f"{result.resolved.source.value if result.resolved else 'copy'} {name}"
            case UnitOutcome.DUPLICATE:
                return f"dupe {name}"
            case UnitOutcome.ALREADY_PROCESSED:
                return f"skip {name}"
            case UnitOutcome.UNSUPPORTED:
                return f"ignore {name}"
            case _:
                return f"fail {name}"

    # --- Interruption ---

    def _install_signal_handler(self) -> bool:
        """Route SIGINT to the cooperative stop flag while running."""
        if threading.current_thread() is not threading.main_thread():
            return False

        def handler(signum, frame):
            self._stop.set()

        self._previous_handler = signal.signal(signal.SIGINT, handler)
        return True

    def _restore_signal_handler(self, installed: bool) -> None:
        if installed:
            previous = self._previous_handler
            signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)
