"""Name sanitization and storage-root confinement.

Two layers keep user input inside the storage root:

1. Segment level: every folder or file stem is reduced to ``[A-Za-z0-9_-]``
   so traversal tokens cannot be formed in the first place.
2. Path level: the joined path is canonicalized and must be the root itself
   or start with ``root + os.sep``, both as written and with symlinks
   resolved.  Anything else raises UnsafePathError, whatever produced the
   segments.
"""
import logging
import os
import re
from typing import Iterable, List, Optional, Tuple
from urllib.parse import quote

from .errors import NotFoundError, UnsafePathError

logger = logging.getLogger(__name__)

FALLBACK_SEGMENT = "file"
FILES_URL_PREFIX = "/files"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_EDGE_UNDERSCORES = re.compile(r"^_+|_+$")
_SEPARATORS = re.compile(r"[\\/]")
_EXTENSION = re.compile(r"^\.[a-z0-9]{1,10}$")
_TRAVERSAL = {".", ".."}


def sanitize_name(raw: Optional[str]) -> str:
    """Reduce a single folder name or file stem to a safe token.

    >>> sanitize_name("  my photos!  ")
    'my_photos'
    >>> sanitize_name("...")
    'file'
    """
    replaced = _UNSAFE_CHARS.sub("_", (raw or "").strip())
    return _EDGE_UNDERSCORES.sub("", replaced) or FALLBACK_SEGMENT


def is_valid_extension(ext: str) -> bool:
    """True for a dot-prefixed, lowercase, 1-10 character alphanumeric suffix."""
    return bool(_EXTENSION.match(ext))


def sanitize_filename(raw: Optional[str]) -> str:
    """Sanitize a full filename that addresses an existing stored file.

    The stem is sanitized and a well-formed extension is kept (lowercased).
    Names produced by the upload path are fixed points of this function.
    """
    stem, ext = os.path.splitext((raw or "").strip())
    ext = ext.lower()
    if ext and is_valid_extension(ext):
        return sanitize_name(stem) + ext
    return sanitize_name(stem + ext)


def _split(raw: Optional[str]) -> List[str]:
    parts = [part.strip() for part in _SEPARATORS.split(raw or "")]
    return [part for part in parts if part and part not in _TRAVERSAL]


def sanitize_segments(raw: Optional[str]) -> List[str]:
    """Split a ``/``-separated folder path into sanitized segments."""
    segments = [sanitize_name(part) for part in _split(raw)]
    return [seg for seg in segments if seg and seg not in _TRAVERSAL]


def resolve_safe_path(root: str, segments: Iterable[str]) -> str:
    """Join *segments* onto *root* and verify the result stays inside it.

    The joined path is checked lexically first, then again with symlinks
    resolved, so a link planted inside the root cannot lead out of it.

    Raises:
        UnsafePathError: if the canonical path is not the root or a
            descendant of it.
    """
    base = os.path.abspath(root)
    candidate = os.path.abspath(os.path.join(base, *segments))
    if not _is_within(candidate, base):
        logger.warning("Rejected unsafe path outside storage root: %r", candidate)
        raise UnsafePathError(f"Path escapes storage root: {candidate}")

    real = os.path.realpath(candidate)
    if not _is_within(real, os.path.realpath(base)):
        logger.warning("Rejected path %r: symlink leads to %r", candidate, real)
        raise UnsafePathError(f"Path escapes storage root: {candidate}")
    return candidate


def _is_within(path: str, base: str) -> bool:
    return path == base or path.startswith(base + os.sep)


def split_file_path(raw: Optional[str]) -> Tuple[List[str], List[str]]:
    """Split a raw ``folder/.../name.ext`` string for addressing a stored file.

    Returns:
        ``(folder_segments, names)``: sanitized folder segments and the
        filenames to try, the literal final component first, then its
        sanitized form when that differs.

    Raises:
        NotFoundError: if *raw* names nothing.
    """
    parts = _split(raw)
    if not parts:
        raise NotFoundError("Empty file path")
    folder = sanitize_segments("/".join(parts[:-1]))
    literal = parts[-1]
    names = [] if "\x00" in literal else [literal]
    sanitized = sanitize_filename(literal)
    if sanitized not in names:
        names.append(sanitized)
    return folder, names


def build_reference_path(segments: Iterable[str], name: str) -> str:
    """Public URL path (``/files/<seg>/.../<name>``) a client can fetch."""
    quoted = [quote(seg, safe="") for seg in segments]
    return "/".join([FILES_URL_PREFIX, *quoted, quote(name, safe="")])
