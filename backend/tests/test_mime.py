"""Tests for the extension <-> MIME mapping."""
import pytest

from shelf.storage.mime import (
    DEFAULT_MIME,
    FileType,
    content_type_for,
    extension_for_mime,
    get_file_type,
    infer_mime,
    mime_for_extension,
)


class TestMimeForExtension:
    @pytest.mark.parametrize("ext, expected", [
        (".png", "image/png"),
        ("png", "image/png"),
        (".JPEG", "image/jpeg"),
        (".pdf", "application/pdf"),
        (".mkv", "video/x-matroska"),
        (".mp3", "audio/mpeg"),
        (".gz", "application/gzip"),
    ])
    def test_known(self, ext, expected):
        assert mime_for_extension(ext) == expected

    @pytest.mark.parametrize("ext", ["", ".bin", ".xyz", None])
    def test_unknown_is_octet_stream(self, ext):
        assert mime_for_extension(ext) == DEFAULT_MIME


class TestExtensionForMime:
    @pytest.mark.parametrize("mime, expected", [
        ("image/jpeg", ".jpg"),
        ("image/jpg", ".jpg"),
        ("IMAGE/PNG", ".png"),
        ("text/plain; charset=utf-8", ".txt"),
        ("audio/mp3", ".mp3"),
        ("video/quicktime", ".mov"),
    ])
    def test_known(self, mime, expected):
        assert extension_for_mime(mime) == expected

    @pytest.mark.parametrize("mime", ["", None, "application/x-nothing", DEFAULT_MIME])
    def test_unknown_is_empty(self, mime):
        assert extension_for_mime(mime) == ""


class TestInferMime:
    def test_declared_wins(self):
        assert infer_mime("image/png", "photo.jpg") == "image/png"

    def test_extension_when_undeclared(self):
        assert infer_mime("", "photo.jpg") == "image/jpeg"

    def test_nothing_known(self):
        assert infer_mime(None, "README") == ""
        assert infer_mime(None, "data.xyz") == ""


class TestContentTypeFor:
    def test_image(self):
        assert content_type_for("cat.png") == "image/png"

    def test_text_gets_charset(self):
        assert content_type_for("notes.txt") == "text/plain; charset=utf-8"

    def test_no_extension(self):
        assert content_type_for("README") == DEFAULT_MIME

    def test_bin(self):
        assert content_type_for("upload.bin") == DEFAULT_MIME


class TestGetFileType:
    @pytest.mark.parametrize("mime, expected", [
        ("image/svg+xml", FileType.IMAGE),
        ("video/mp4", FileType.VIDEO),
        ("audio/ogg", FileType.AUDIO),
        ("application/pdf", FileType.DOCUMENT),
        ("text/plain; charset=utf-8", FileType.DOCUMENT),
        ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", FileType.DOCUMENT),
        ("application/zip", FileType.ARCHIVE),
        ("application/octet-stream", FileType.OTHER),
    ])
    def test_categories(self, mime, expected):
        assert get_file_type(mime) == expected

    def test_file_type_values(self):
        assert FileType.IMAGE.value == "image"
        assert FileType.OTHER.value == "other"
