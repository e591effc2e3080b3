"""Terminal output for sort runs, built on Rich."""
from __future__ import annotations

import sys
from typing import Any, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from ..core.models import DateSource, SortStats


class RichProgressReporter:
    """Progress bar, messages and run summary on a Rich console.

    Implements the ProgressReporter protocol. Warnings and errors are shown
    even when quiet.
    """

    def __init__(
        self,
        verbose: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
    ):
        """Initialize the reporter.

        Args:
            verbose: Show the file being sorted next to the bar.
            quiet: Hide the bar, info messages and tables.
            console: Console to write to (stderr by default).
        """
        self._console = console or Console(stderr=True)
        self._verbose = verbose
        self._quiet = quiet
        self._bar: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def start_phase(self, name: str, total: int) -> None:
        if self._quiet:
            return
        self._bar = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            console=self._console,
            transient=True,
        )
        self._bar.start()
        self._task = self._bar.add_task(name, total=total)

    def advance_phase(self, amount: int = 1, description: Optional[str] = None) -> None:
        if self._bar is None or self._task is None:
            return
        if description and self._verbose:
            self._bar.update(self._task, advance=amount, description=description)
        else:
            self._bar.update(self._task, advance=amount)

    def end_phase(self) -> None:
        if self._bar is not None:
            self._bar.stop()
        self._bar = None
        self._task = None

    def info(self, message: str) -> None:
        if not self._quiet:
            self._console.print(f"[blue]ℹ[/blue] {message}")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]⚠[/yellow] {message}")

    def error(self, message: str) -> None:
        self._console.print(f"[red]✗ {message}[/red]")

    def print_settings(self, title: str, settings: dict[str, Any]) -> None:
        """Show the effective run settings."""
        if self._quiet:
            return
        table = Table(title=title, show_header=False, title_style="bold cyan")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        for key, value in settings.items():
            table.add_row(key, str(value))
        self._console.print(table)

    def print_stats(self, stats: SortStats, dry_run: bool = False) -> None:
        """Show the run summary.

        Args:
            stats: Final counters of the run.
            dry_run: Label copies as planned rather than done.
        """
        if self._quiet:
            return

        if stats.interrupted:
            title = "Sort Interrupted"
        else:
            title = "Dry Run Complete" if dry_run else "Sort Complete"

        rows: list[tuple[str, Any]] = [
            ("Files Found", stats.discovered),
            ("Would Copy" if dry_run else "Copied", stats.committed),
        ]
        # Rows shown only when they have something to say
        optional = (
            ("Recovered From Previous Run", stats.adopted),
            ("Already Processed", stats.already_processed),
        )
        rows.extend(row for row in optional if row[1])
        rows += [
            ("Duplicates Skipped", stats.duplicates),
            ("Unsupported", stats.unsupported),
            ("Errors", stats.failed),
        ]
        if stats.origin_warnings:
            rows.append(("Origin Warnings", stats.origin_warnings))
        if stats.by_method:
            rows.append(("Date Method", "  ·  ".join(
                f"{source.value} {stats.by_method[source.value]}"
                for source in DateSource
                if source.value in stats.by_method
            )))
        if stats.years:
            rows.append(("Years", ", ".join(sorted(stats.years))))
        if stats.elapsed_seconds > 0:
            rows.append(("Time Elapsed", f"{stats.elapsed_seconds:.1f}s"))
            rows.append(("Rate", f"{stats.processed / stats.elapsed_seconds:.1f} files/sec"))

        table = Table(title=title, show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Count", style="green", justify="right")
        for label, value in rows:
            table.add_row(label, str(value))
        self._console.print(table)


class QuietProgressReporter:
    """Reporter for --quiet and tests: only warnings and errors, on stderr."""

    def start_phase(self, name: str, total: int) -> None:
        pass

    def advance_phase(self, amount: int = 1, description: Optional[str] = None) -> None:
        pass

    def end_phase(self) -> None:
        pass

    def info(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        print(f"WARNING: {message}", file=sys.stderr)

    def error(self, message: str) -> None:
        print(f"ERROR: {message}", file=sys.stderr)

    def print_settings(self, title: str, settings: dict[str, Any]) -> None:
        pass

    def print_stats(self, stats: SortStats, dry_run: bool = False) -> None:
        pass
