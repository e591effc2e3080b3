"""Command line entry point."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from .core.config import SortConfig
from .core.errors import PhotoSortError
from .logging.rich_logger import RichProgressReporter, QuietProgressReporter

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="photo-sort",
        description="Sort photos into year folders by capture date, without duplicates.",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ============ SORT command ============
    sort_parser = subparsers.add_parser(
        "sort",
        help="Copy photos from a source tree into year folders",
    )
    sort_parser.add_argument(
        "source",
        type=Path,
        help="Source directory containing photos",
    )
    sort_parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Destination directory (default: <source>_sorted)",
    )
    sort_parser.add_argument(
        "-w", "--workers",
        type=int,
        default=1,
        help="Threads used to read and hash files ahead of copying (default: 1)",
    )
    sort_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be copied without writing anything",
    )

    return parser


def configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )


# ============ Command Handlers ============

def cmd_sort(args: argparse.Namespace, reporter) -> int:
    """Handle the sort command."""
    from .services.sorter import SortEngine, create_dependencies

    try:
        config = SortConfig(
            source_root=args.source,
            destination_root=args.output,
            dry_run=args.dry_run,
            workers=args.workers,
        )
    except ValueError as e:
        reporter.error(str(e))
        return EXIT_ERROR

    deps = create_dependencies(config, reporter)
    reporter.print_settings("photo-sort", {
        "Source": str(config.source_root),
        "Destination": str(config.destination_root),
        "Journal": str(config.progress_path),
        "Digest": deps.hasher.name,
        "Workers": config.workers,
        "Dry Run": config.dry_run,
    })

    stats = SortEngine(config, deps).run()
    reporter.print_stats(stats, dry_run=config.dry_run)

    if stats.interrupted:
        return EXIT_INTERRUPTED
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose, args.quiet)

    if args.quiet:
        reporter = QuietProgressReporter()
    else:
        reporter = RichProgressReporter(verbose=args.verbose)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    try:
        if args.command == "sort":
            return cmd_sort(args, reporter)
        reporter.error(f"Unknown command: {args.command}")
        return EXIT_ERROR
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except PhotoSortError as e:
        reporter.error(f"Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
