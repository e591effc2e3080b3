"""Collision-free destination naming."""
from __future__ import annotations

import itertools
import os
from pathlib import Path
from typing import Callable, Iterator, Optional

from ..core.models import Placement, ResolvedDate
from .date_resolver import first_success


def year_dirname(resolved: ResolvedDate) -> str:
    return f"{resolved.year:04d}"


def candidate_name(base_name: str, extension: str, counter: int) -> str:
    """``base.ext`` for counter 0, ``base_N.ext`` after that."""
    if counter == 0:
        return f"{base_name}.{extension}"
    return f"{base_name}_{counter}.{extension}"


def iter_candidates(base_name: str, extension: str) -> Iterator[tuple[int, str]]:
    for counter in itertools.count():
        yield counter, candidate_name(base_name, extension, counter)


def plan_destination(
    resolved: ResolvedDate,
    extension: str,
    existing_names: set[str] | frozenset[str],
    reusable: Optional[Callable[[str], bool]] = None,
) -> Placement:
    """Pick the first free canonical name in the resolved year.

    Args:
        resolved: Resolved capture date.
        extension: Original extension; lower-cased here.
        existing_names: Names already taken in the year directory, both on
            disk and claimed earlier in this run.
        reusable: Optional predicate; a taken name for which it returns True
            is returned with ``existing=True`` instead of being skipped.

    Returns:
        The planned placement.
    """
    year = year_dirname(resolved)
    ext = extension.lower().lstrip(".")

    def try_candidate(counter: int, name: str) -> Optional[Placement]:
        if name not in existing_names:
            return Placement(year=year, name=name, counter=counter)
        if reusable is not None and reusable(name):
            return Placement(year=year, name=name, counter=counter, existing=True)
        return None

    placement = first_success(
        (lambda c=counter, n=name: try_candidate(c, n))
        for counter, name in iter_candidates(resolved.base_name, ext)
    )
    assert placement is not None
    return placement


class PlacementPlanner:
    """Plans destination paths for one run against one destination root.

    Each year directory is listed once, the first time a file resolves to
    it; names handed out during the run are tracked in memory so two
    sources in the same run never collide before either reaches disk.

    The destination tree must not be mutated by anything else while a run
    is active.
    """

    def __init__(self, destination_root: Path):
        """Initialize the planner.

        Args:
            destination_root: Root containing year directories.
        """
        self._root = destination_root
        self._on_disk: dict[str, set[str]] = {}
        self._claimed: dict[str, set[str]] = {}

    def year_directory(self, year: str) -> Path:
        return self._root / year

    def existing_names(self, year: str) -> set[str]:
        """Names on disk at first sight of the year, plus names claimed since."""
        return self._disk_names(year) | self._claimed.get(year, set())

    def plan(
        self,
        resolved: ResolvedDate,
        extension: str,
        reusable: Optional[Callable[[str], bool]] = None,
    ) -> Placement:
        """Plan and claim a destination name.

        Args:
            resolved: Resolved capture date.
            extension: Original file extension.
            reusable: Predicate for adopting an unclaimed on-disk file
                (crash between copy and commit on a previous run).

        Returns:
            The claimed placement.
        """
        year = year_dirname(resolved)
        claimed = self._claimed.setdefault(year, set())

        def adoptable(name: str) -> bool:
            return name not in claimed and reusable is not None and reusable(name)

        placement = plan_destination(
            resolved,
            extension,
            self.existing_names(year),
            adoptable if reusable is not None else None,
        )
        claimed.add(placement.name)
        return placement

    def release(self, placement: Placement) -> None:
        """Give back a claimed name whose copy did not happen."""
        self._claimed.get(placement.year, set()).discard(placement.name)

    def _disk_names(self, year: str) -> set[str]:
        names = self._on_disk.get(year)
        if names is None:
            directory = self.year_directory(year)
            try:
                names = set(os.listdir(directory))
            except FileNotFoundError:
                names = set()
            self._on_disk[year] = names
        return names
