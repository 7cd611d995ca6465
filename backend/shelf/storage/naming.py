"""Collision-free filenames inside a storage directory.

``unique_name`` only inspects the filesystem, so its answer can be stale by
the time the caller writes.  The caller must open the result with
exclusive-create and call ``unique_name`` again if that fails.
"""
import os

from .errors import NameExhaustedError
from .mime import DEFAULT_EXTENSION
from .paths import is_valid_extension, sanitize_name

DEFAULT_PROBE_LIMIT = 10_000


def sanitize_extension(ext: str) -> str:
    """Lowercase a well-formed extension, otherwise fall back to ``.bin``."""
    ext = (ext or "").lower()
    return ext if is_valid_extension(ext) else DEFAULT_EXTENSION


def split_name(desired_name: str):
    """Split *desired_name* into a sanitized stem and a safe extension."""
    stem, ext = os.path.splitext(os.path.basename(desired_name or ""))
    return sanitize_name(stem), sanitize_extension(ext)


def unique_name(directory: str, desired_name: str, limit: int = DEFAULT_PROBE_LIMIT) -> str:
    """Return a filename that does not exist yet in *directory*.

    Tries ``base.ext``, then ``base-1.ext``, ``base-2.ext`` and so on.

    Raises:
        NameExhaustedError: if *limit* suffixes are all taken.
    """
    base, ext = split_name(desired_name)
    candidate = base + ext
    for i in range(1, limit + 1):
        if not os.path.lexists(os.path.join(directory, candidate)):
            return candidate
        candidate = f"{base}-{i}{ext}"
    raise NameExhaustedError(
        f"No free name for {base}{ext} after {limit} attempts"
    )
