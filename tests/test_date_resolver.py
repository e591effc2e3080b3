"""Tests for the date resolution cascade."""
import os

import pytest
from datetime import datetime
from pathlib import Path

from photosort.core.models import DateSource
from photosort.engines.metadata import ExifMetadataReader
from photosort.services import date_resolver as date_resolver_module
from photosort.services.date_resolver import (
    DateResolver,
    date_from_fields,
    date_from_filesystem,
    date_from_folders,
    datetime_from_timestamp,
    first_success,
    folder_segments,
    parse_exif_datetime,
    year_from_segments,
)

from .fixtures import FakeMetadataReader, OutOfRangeDatetime, set_mtime, write_bytes, write_jpeg


def dt(text: str) -> datetime:
    return datetime.strptime(text, "%Y-%m-%d %H:%M:%S")


HAS_BIRTHTIME = hasattr(os.stat("."), "st_birthtime")


class TestFirstSuccess:
    """Tests for the generic priority helper."""

    def test_returns_first_non_none(self):
        assert first_success([lambda: None, lambda: 2, lambda: 3]) == 2

    def test_stops_at_first_success(self):
        calls = []

        def make(value):
            def candidate():
                calls.append(value)
                return value
            return candidate

        first_success([make(None), make("b"), make("c")])
        assert calls == [None, "b"]

    def test_all_none(self):
        assert first_success([lambda: None]) is None
        assert first_success([]) is None

    def test_falsy_values_count_as_success(self):
        assert first_success([lambda: None, lambda: 0]) == 0


class TestParseExifDatetime:
    """Tests for EXIF datetime parsing."""

    @pytest.mark.parametrize("value", [
        "2008:07:15 14:30:22",
        "2008-07-15 14:30:22",
        "2008/07/15 14:30:22",
        "2008:07:15 14:30:22.123",
        "2008:07:15 14:30:22+02:00",
        "  2008:07:15 14:30:22  ",
    ])
    def test_valid_formats(self, value):
        assert parse_exif_datetime(value) == dt("2008-07-15 14:30:22")

    @pytest.mark.parametrize("value", [
        "",
        "0000:00:00 00:00:00",
        "    :  :     :  :  ",
        "2008:13:40 99:99:99",
        "garbage",
        "2008:07:15",
    ])
    def test_invalid_values(self, value):
        assert parse_exif_datetime(value) is None


class TestDateFromFields:
    """Tests for EXIF field priority."""

    def test_original_wins(self):
        fields = {
            "DateTime": "2010:01:01 00:00:00",
            "DateTimeDigitized": "2009:01:01 00:00:00",
            "DateTimeOriginal": "2008:07:15 14:30:22",
        }
        assert date_from_fields(fields) == dt("2008-07-15 14:30:22")

    def test_digitized_before_datetime(self):
        fields = {"DateTime": "2010:01:01 00:00:00", "DateTimeDigitized": "2009:02:03 04:05:06"}
        assert date_from_fields(fields) == dt("2009-02-03 04:05:06")

    def test_unparseable_original_falls_through(self):
        fields = {"DateTimeOriginal": "0000:00:00 00:00:00", "DateTime": "2010:01:01 00:00:00"}
        assert date_from_fields(fields) == dt("2010-01-01 00:00:00")

    def test_empty(self):
        assert date_from_fields({}) is None


class TestFolderYear:
    """Tests for year extraction from folder names."""

    def test_segments_start_at_source_root(self, tmp_path: Path):
        root = tmp_path / "photos"
        path = root / "vacances 2008" / "DCIM" / "IMG_0001.jpg"
        assert folder_segments(path, root) == ["photos", "vacances 2008", "DCIM"]

    def test_filename_is_not_a_segment(self, tmp_path: Path):
        root = tmp_path / "photos"
        assert year_from_segments(folder_segments(root / "IMG_2008.jpg", root)) is None

    def test_extracts_year(self, tmp_path: Path):
        root = tmp_path / "photos"
        assert date_from_folders(root / "vacances 2008" / "DCIM" / "IMG.jpg", root) == dt(
            "2008-01-01 00:00:00"
        )

    def test_first_match_outer_to_inner(self):
        assert year_from_segments(["photos", "2005", "sous-dossier 2010"]) == 2005

    def test_first_match_within_segment(self):
        assert year_from_segments(["1999 to 2004"]) == 1999

    def test_no_year(self):
        assert year_from_segments(["photos", "vacances", "DCIM"]) is None

    @pytest.mark.parametrize("segment", ["1899", "2100", "3000", "12005", "20081", "100CANON"])
    def test_rejects_out_of_range_or_longer_runs(self, segment):
        assert year_from_segments([segment]) is None

    @pytest.mark.parametrize("segment,year", [("1900", 1900), ("2099", 2099), ("summer_2015_trip", 2015)])
    def test_boundaries_and_separators(self, segment, year):
        assert year_from_segments([segment]) == year

    def test_source_root_name_counts(self, tmp_path: Path):
        root = tmp_path / "archive 1998"
        assert date_from_folders(root / "misc" / "a.jpg", root) == dt("1998-01-01 00:00:00")


class TestFilesystemDate:
    """Tests for the filesystem tier."""

    def test_real_file_is_recent(self, tmp_path: Path):
        path = write_bytes(tmp_path / "a.jpg", b"fake photo")
        result = date_from_filesystem(path)
        assert result is not None
        assert abs((datetime.now() - result).total_seconds()) < 60

    @pytest.mark.skipif(HAS_BIRTHTIME, reason="creation time takes precedence on this platform")
    def test_uses_mtime_without_birthtime(self, tmp_path: Path):
        path = write_bytes(tmp_path / "a.jpg", b"fake photo")
        set_mtime(path, datetime(2024, 3, 10, 8, 15, 0))
        assert date_from_filesystem(path) == datetime(2024, 3, 10, 8, 15, 0)

    def test_missing_file(self, tmp_path: Path):
        assert date_from_filesystem(tmp_path / "missing.jpg") is None

    def test_unusable_timestamps(self):
        assert datetime_from_timestamp(None) is None
        assert datetime_from_timestamp(1e20) is None
        assert datetime_from_timestamp(float("nan")) is None
        assert datetime_from_timestamp(1_000_000_000) == datetime.fromtimestamp(1_000_000_000)

    def test_out_of_range_mtime(self, tmp_path: Path, monkeypatch):
        path = write_bytes(tmp_path / "a.jpg", b"fake photo")
        monkeypatch.setattr(date_resolver_module, "datetime", OutOfRangeDatetime)
        assert date_from_filesystem(path) is None


class TestDateResolver:
    """Tests for the full cascade."""

    def test_exif_wins_over_folder(self, tmp_path: Path):
        root = tmp_path / "src"
        path = write_bytes(root / "2001" / "a.jpg", b"x")
        reader = FakeMetadataReader({"a.jpg": {"DateTimeOriginal": "2008:07:15 14:30:22"}})
        resolved = DateResolver(reader).resolve_path(path, root)
        assert resolved.source == DateSource.EXIF
        assert resolved.timestamp == dt("2008-07-15 14:30:22")

    def test_folder_when_no_exif(self, tmp_path: Path):
        root = tmp_path / "src"
        path = write_bytes(root / "vacances 2008" / "DCIM" / "a.jpg", b"x")
        resolved = DateResolver(FakeMetadataReader()).resolve_path(path, root)
        assert resolved.source == DateSource.FOLDER_NAME
        assert resolved.timestamp == dt("2008-01-01 00:00:00")
        assert resolved.base_name == "2008-01-01_00-00-00"

    def test_folder_when_exif_unparseable(self, tmp_path: Path):
        root = tmp_path / "src"
        path = write_bytes(root / "2003" / "a.jpg", b"x")
        reader = FakeMetadataReader({"a.jpg": {"DateTimeOriginal": "garbage"}})
        assert DateResolver(reader).resolve_path(path, root).source == DateSource.FOLDER_NAME

    def test_filesystem_last(self, tmp_path: Path):
        root = tmp_path / "src"
        path = write_bytes(root / "noel" / "a.jpg", b"x")
        resolved = DateResolver(FakeMetadataReader()).resolve_path(path, root)
        assert resolved.source == DateSource.FILESYSTEM
        assert resolved.timestamp == date_from_filesystem(path)

    def test_missing_file_falls_back_to_epoch(self, tmp_path: Path):
        root = tmp_path / "src"
        resolved = DateResolver(FakeMetadataReader()).resolve_path(root / "gone.jpg", root)
        assert resolved.source == DateSource.FILESYSTEM
        assert resolved.timestamp == datetime(1970, 1, 1)

    def test_out_of_range_mtime_falls_back_to_epoch(self, tmp_path: Path, monkeypatch):
        root = tmp_path / "src"
        path = write_bytes(root / "noel" / "a.jpg", b"x")
        monkeypatch.setattr(date_resolver_module, "datetime", OutOfRangeDatetime)
        resolved = DateResolver(FakeMetadataReader()).resolve_path(path, root)
        assert resolved.source == DateSource.FILESYSTEM
        assert resolved.base_name == "1970-01-01_00-00-00"

    def test_with_real_exif(self, tmp_path: Path):
        root = tmp_path / "src"
        path = write_jpeg(root / "1999" / "a.jpg", date_original=datetime(2008, 7, 15, 14, 30, 22))
        resolved = DateResolver(ExifMetadataReader()).resolve_path(path, root)
        assert resolved.source == DateSource.EXIF
        assert resolved.base_name == "2008-07-15_14-30-22"

    def test_non_image_with_photo_extension(self, tmp_path: Path):
        root = tmp_path / "src"
        path = write_bytes(root / "vacances 2015" / "photo.jpg", b"not a real jpeg")
        resolved = DateResolver(ExifMetadataReader()).resolve_path(path, root)
        assert resolved.source == DateSource.FOLDER_NAME
        assert resolved.year == 2015
