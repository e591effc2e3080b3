"""Extension-based photo format classification."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..core.models import FormatTag


PHOTO_EXTENSIONS = frozenset(tag.value for tag in FormatTag)


def classify(path: Path) -> Optional[FormatTag]:
    """Map a file extension to a format tag, or None if unsupported.

    Matching is case-insensitive. Files without an extension are unsupported.
    """
    ext = path.suffix.lower().lstrip(".")
    if not ext:
        return None
    try:
        return FormatTag(ext)
    except ValueError:
        return None

