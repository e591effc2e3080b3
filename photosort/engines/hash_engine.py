"""Content hash engine used as the deduplication key."""
from __future__ import annotations

import hashlib
from pathlib import Path


CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path, chunk_size: int = CHUNK_SIZE) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


class SHA256ContentHasher:
    """Hashes the complete byte content of a file with SHA-256.

    The digest depends on bytes only, never on path, name or metadata.
    Read errors (permission denied, file vanished) propagate as OSError
    so the caller can fail the unit without aborting the run.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        """Initialize the hasher.

        Args:
            chunk_size: Read size in bytes.
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self._chunk_size = chunk_size

    @property
    def name(self) -> str:
        return "sha256"

    def hash_file(self, path: Path) -> str:
        """Compute the hex digest of a file.

        Args:
            path: File to hash.

        Returns:
            64-character lower-case hex digest.

        Raises:
            OSError: If the file cannot be read.
        """
        return sha256_file(path, self._chunk_size)
