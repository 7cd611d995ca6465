"""Content-type mapping for stored files.

A static, bidirectional extension <-> MIME table.  It is used twice:

- on upload, to pick an extension when the client sent a name without one
  (``extension_for_mime``), and
- on serving, to set the response content type from the stored extension
  (``content_type_for``).

Files are also grouped into coarse FileType categories so clients can decide
whether to render a thumbnail.
"""
import os
from enum import Enum
from typing import Dict, Optional

DEFAULT_MIME = "application/octet-stream"
DEFAULT_EXTENSION = ".bin"


class FileType(str, Enum):
    """Coarse file categories, derived from the MIME type."""
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    ARCHIVE = "archive"
    OTHER = "other"


# Order matters for the reverse lookup: the first extension listed for a
# MIME type is the one chosen when deriving an extension.
EXTENSION_TO_MIME: Dict[str, str] = {
    # Images
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".avif": "image/avif",
    # Documents
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".json": "application/json",
    ".csv": "text/csv",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # Video
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",
    # Audio
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    # Archives
    ".zip": "application/zip",
    ".gz": "application/gzip",
}

_MIME_ALIASES: Dict[str, str] = {
    "image/jpg": ".jpg",
    "audio/mp3": ".mp3",
    "audio/x-wav": ".wav",
}

MIME_TO_EXTENSION: Dict[str, str] = {}
for _ext, _mime in EXTENSION_TO_MIME.items():
    MIME_TO_EXTENSION.setdefault(_mime, _ext)
MIME_TO_EXTENSION.update(_MIME_ALIASES)

_DOCUMENT_MIME_TYPES = {
    "application/pdf",
    "application/json",
    "application/msword",
    "application/vnd.ms-excel",
    "application/vnd.ms-powerpoint",
}
_ARCHIVE_MIME_TYPES = {"application/zip", "application/gzip"}


def _normalize_extension(ext: Optional[str]) -> str:
    ext = (ext or "").strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def _normalize_mime(mime: Optional[str]) -> str:
    return (mime or "").split(";", 1)[0].strip().lower()


def mime_for_extension(ext: Optional[str]) -> str:
    """MIME type for an extension (``".png"`` or ``"png"``); unknown -> octet-stream."""
    return EXTENSION_TO_MIME.get(_normalize_extension(ext), DEFAULT_MIME)


def extension_for_mime(mime: Optional[str]) -> str:
    """Preferred extension for a MIME type; unknown -> ``""`` (caller picks ``.bin``)."""
    return MIME_TO_EXTENSION.get(_normalize_mime(mime), "")


def _extension_of(filename: Optional[str]) -> str:
    return os.path.splitext(os.path.basename(filename or ""))[1]


def infer_mime(declared: Optional[str], filename: Optional[str]) -> str:
    """Best-known MIME type for an upload.

    Declared type first, then the filename's extension, else ``""``.
    """
    declared = _normalize_mime(declared)
    if declared:
        return declared
    ext = _extension_of(filename)
    return EXTENSION_TO_MIME.get(ext.lower(), "") if ext else ""


def content_type_for(filename: str) -> str:
    """Response Content-Type for a stored file."""
    mime = mime_for_extension(_extension_of(filename))
    if mime == "text/plain":
        return "text/plain; charset=utf-8"
    return mime


def get_file_type(mime_type: str) -> FileType:
    """Determine file type category from MIME type.

    Examples:
        >>> get_file_type("image/jpeg")
        <FileType.IMAGE: 'image'>
        >>> get_file_type("application/x-unknown")
        <FileType.OTHER: 'other'>
    """
    mime_type = _normalize_mime(mime_type)
    major = mime_type.split("/", 1)[0]
    if major in ("image", "video", "audio"):
        return FileType(major)
    if major == "text" or mime_type in _DOCUMENT_MIME_TYPES or "officedocument" in mime_type:
        return FileType.DOCUMENT
    if mime_type in _ARCHIVE_MIME_TYPES:
        return FileType.ARCHIVE
    return FileType.OTHER
