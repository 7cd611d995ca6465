"""Tests for collision-free filename selection."""
import pytest

from shelf.storage.errors import NameConflictError, NameExhaustedError
from shelf.storage.naming import sanitize_extension, split_name, unique_name


class TestSanitizeExtension:
    @pytest.mark.parametrize("ext, expected", [
        (".png", ".png"),
        (".PNG", ".png"),
        (".mp3", ".mp3"),
        ("", ".bin"),
        (".", ".bin"),
        (".tar~", ".bin"),
        (".abcdefghijk", ".bin"),
        (".abcdefghij", ".abcdefghij"),
    ])
    def test_extension_rules(self, ext, expected):
        assert sanitize_extension(ext) == expected


class TestSplitName:
    def test_sanitizes_stem(self):
        assert split_name("holiday photo.JPG") == ("holiday_photo", ".jpg")

    def test_multi_dot_name_keeps_last_extension(self):
        assert split_name("archive.tar.gz") == ("archive_tar", ".gz")

    def test_directory_part_is_dropped(self):
        assert split_name("../../evil.sh") == ("evil", ".sh")

    def test_empty_name(self):
        assert split_name("") == ("file", ".bin")


class TestUniqueName:
    def test_free_name_returned_as_is(self, tmp_path):
        assert unique_name(str(tmp_path), "a.txt") == "a.txt"

    def test_collision_appends_counter(self, tmp_path):
        (tmp_path / "a.txt").write_bytes(b"x")
        assert unique_name(str(tmp_path), "a.txt") == "a-1.txt"

    def test_counter_skips_taken_suffixes(self, tmp_path):
        for name in ("a.txt", "a-1.txt", "a-2.txt"):
            (tmp_path / name).write_bytes(b"x")
        assert unique_name(str(tmp_path), "a.txt") == "a-3.txt"

    def test_directories_count_as_taken(self, tmp_path):
        (tmp_path / "report.pdf").mkdir()
        assert unique_name(str(tmp_path), "report.pdf") == "report-1.pdf"

    def test_missing_directory_means_no_collision(self, tmp_path):
        assert unique_name(str(tmp_path / "nope"), "a.txt") == "a.txt"

    def test_gives_up_at_limit(self, tmp_path):
        for name in ("a.txt", "a-1.txt", "a-2.txt"):
            (tmp_path / name).write_bytes(b"x")
        with pytest.raises(NameExhaustedError):
            unique_name(str(tmp_path), "a.txt", limit=3)

    def test_exhausted_is_a_name_conflict(self):
        assert issubclass(NameExhaustedError, NameConflictError)
