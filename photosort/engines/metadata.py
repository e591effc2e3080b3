"""Embedded metadata extraction."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import exifread
import pillow_heif
from PIL import ExifTags, Image, UnidentifiedImageError

pillow_heif.register_heif_opener()

logger = logging.getLogger(__name__)


# Capture-time fields in cascade priority order
CAPTURE_FIELDS = ("DateTimeOriginal", "DateTimeDigitized", "DateTime")

# Pillow tag ids: DateTimeOriginal / DateTimeDigitized live in the Exif IFD,
# DateTime in IFD0.
_EXIF_IFD_TAGS = {"DateTimeOriginal": 36867, "DateTimeDigitized": 36868}
_IFD0_TAGS = {"DateTime": 306}

# ExifRead key names for the same fields
_EXIFREAD_KEYS = {
    "DateTimeOriginal": "EXIF DateTimeOriginal",
    "DateTimeDigitized": "EXIF DateTimeDigitized",
    "DateTime": "Image DateTime",
}


def _clean(value: Any) -> Optional[str]:
    """Normalize a raw tag value to a stripped string."""
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    text = str(value).strip().strip("\x00").strip()
    return text or None


class ExifMetadataReader:
    """Reads capture-time EXIF fields from photo files.

    Pillow (with the HEIF opener registered) handles JPEG, TIFF, HEIC and
    the TIFF-based raw containers it can open. ExifRead is tried when Pillow
    cannot open the file or finds no date fields, which covers CR3, RAF,
    ORF and RW2. Unreadable or malformed files yield an empty mapping.
    """

    def read_capture_fields(self, path: Path) -> dict[str, str]:
        """Read date fields from a file.

        Args:
            path: Photo file.

        Returns:
            Mapping of field name to raw string value.
        """
        fields = self._read_with_pillow(path)
        if fields:
            return fields
        return self._read_with_exifread(path)

    def _read_with_pillow(self, path: Path) -> dict[str, str]:
        try:
            with Image.open(path) as img:
                exif = img.getexif()
                if not exif:
                    return {}
                fields: dict[str, str] = {}
                exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
                for name, tag_id in _EXIF_IFD_TAGS.items():
                    value = _clean(exif_ifd.get(tag_id))
                    if value:
                        fields[name] = value
                for name, tag_id in _IFD0_TAGS.items():
                    value = _clean(exif.get(tag_id))
                    if value:
                        fields[name] = value
                return fields
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            logger.debug("Pillow could not read EXIF from %s: %s", path, e)
            return {}
        except Exception as e:
            # Pillow's TIFF and EXIF parsers raise assorted errors on malformed files
            logger.debug("Pillow failed on %s: %s", path, e)
            return {}

    def _read_with_exifread(self, path: Path) -> dict[str, str]:
        try:
            with path.open("rb") as handle:
                tags = exifread.process_file(handle, details=False)
        except OSError as e:
            logger.debug("Cannot open %s for EXIF: %s", path, e)
            return {}
        except Exception as e:
            # ExifRead raises assorted parser errors on malformed containers
            logger.debug("ExifRead failed on %s: %s", path, e)
            return {}

        fields: dict[str, str] = {}
        for name, key in _EXIFREAD_KEYS.items():
            tag = tags.get(key)
            if tag is None:
                continue
            value = _clean(tag.printable)
            if value:
                fields[name] = value
        return fields
