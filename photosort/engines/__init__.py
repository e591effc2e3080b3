"""Format, hash and metadata engines."""
from .formats import classify, PHOTO_EXTENSIONS
from .hash_engine import SHA256ContentHasher, sha256_file
from .metadata import ExifMetadataReader, CAPTURE_FIELDS

__all__ = [
    "classify",
    "PHOTO_EXTENSIONS",
    "SHA256ContentHasher",
    "sha256_file",
    "ExifMetadataReader",
    "CAPTURE_FIELDS",
]
