"""Logging package with Rich-based progress reporting."""

from .rich_logger import RichProgressReporter, QuietProgressReporter

__all__ = ["RichProgressReporter", "QuietProgressReporter"]
