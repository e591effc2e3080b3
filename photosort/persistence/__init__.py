"""Persistence layer."""
from .journal import JournalStore, ProgressSnapshot, atomic_write_text, fsync_directory

__all__ = ["JournalStore", "ProgressSnapshot", "atomic_write_text", "fsync_directory"]
