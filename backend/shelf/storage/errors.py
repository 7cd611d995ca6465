"""Error taxonomy for the storage subsystem.

Every failure the storage core can report is a subclass of StorageError and
carries a stable ``code`` that the HTTP layer and batch results expose.
``public_message`` is what end users get to see; for UnsafePathError it is
deliberately indistinguishable from a missing file.
"""
from typing import Optional


class StorageError(Exception):
    """Base class for storage failures."""

    code = "storage_error"
    public_message = "Storage error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.public_message)


class UnsafePathError(StorageError):
    """A resolved path escaped the storage root."""

    code = "unsafe_path"
    public_message = "Invalid path"


class NotFoundError(StorageError):
    """The requested file is missing or is not a regular file."""

    code = "not_found"
    public_message = "Not found"


class SizeExceededError(StorageError):
    """An upload is larger than the per-file cap."""

    code = "size_exceeded"
    public_message = "File too large"

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"File size ({size} bytes) exceeds limit ({limit} bytes)")


class NameConflictError(StorageError):
    """Exclusive-create kept losing the race for a free filename."""

    code = "name_conflict"
    public_message = "A file with this name already exists"


class NameExhaustedError(NameConflictError):
    """No free ``base-N.ext`` name was found within the search limit."""

    code = "name_exhausted"
    public_message = "Could not find a free filename"


class IOFailureError(StorageError):
    """The operating system refused an operation (permissions, disk full, ...)."""

    code = "io_failure"
    public_message = "Storage I/O failure"

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)


def public_message_for(exc: StorageError) -> str:
    """Human readable message that is safe to send to a client."""
    if isinstance(exc, (SizeExceededError, IOFailureError)):
        return str(exc)
    return exc.public_message
