"""File storage service for Shelf.

Handles folder listing, uploads, serving and deletion on local disk.
Files are stored in: {root_dir}/{folder}/.../{name}.{ext}

There is no metadata database: the directory tree is the source of truth.
All methods are synchronous and hold no in-process state besides
configuration, so concurrent requests only meet at the filesystem.  Writes
use exclusive-create, which is what actually prevents two uploads from
overwriting each other.
"""
import logging
import os
import stat
from typing import BinaryIO, Iterable, List, Optional, Tuple

from ..config import get_config
from .errors import (
    IOFailureError,
    NameConflictError,
    NotFoundError,
    SizeExceededError,
    StorageError,
    UnsafePathError,
    public_message_for,
)
from .mime import (
    DEFAULT_EXTENSION,
    content_type_for,
    extension_for_mime,
    get_file_type,
    infer_mime,
)
from .naming import DEFAULT_PROBE_LIMIT, unique_name
from .paths import (
    build_reference_path,
    resolve_safe_path,
    sanitize_segments,
    split_file_path,
)
from .schemas import (
    DeleteError,
    DeleteResult,
    FileEntry,
    FileStream,
    SavedFile,
    StoreResult,
    UploadError,
    UploadItem,
)

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_NAME = "upload"


class FileStorageService:
    """Service for managing folders and files under one storage root."""

    _instance: Optional["FileStorageService"] = None

    def __init__(
        self,
        root_dir: str,
        max_file_bytes: int,
        max_name_probes: int = DEFAULT_PROBE_LIMIT,
        conflict_retries: int = 3,
        chunk_size: int = 64 * 1024,
    ) -> None:
        """Initialize the file storage service and create the root if needed."""
        self.root_dir = os.path.abspath(root_dir)
        self.max_file_bytes = max_file_bytes
        self.max_name_probes = max_name_probes
        self.conflict_retries = conflict_retries
        self.chunk_size = chunk_size
        self.ensure_root()

    @classmethod
    def get_instance(cls) -> "FileStorageService":
        """Get or create the singleton instance from the loaded configuration."""
        if cls._instance is None:
            storage = get_config().storage
            cls._instance = cls(
                root_dir=storage.root_dir,
                max_file_bytes=storage.max_file_bytes,
                max_name_probes=storage.max_name_probes,
                conflict_retries=storage.conflict_retries,
                chunk_size=storage.chunk_size,
            )
        return cls._instance

    @classmethod
    def set_instance(cls, service: Optional["FileStorageService"]) -> None:
        """Install a specific instance (tests, embedding applications)."""
        cls._instance = service

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        cls._instance = None

    def ensure_root(self) -> None:
        """Ensure the storage root exists."""
        try:
            os.makedirs(self.root_dir, exist_ok=True)
        except OSError as exc:
            raise IOFailureError(
                f"Cannot create storage root: {exc.strerror}", exc
            ) from exc

    # -----------------------------------------------------------------------
    # Listing
    # -----------------------------------------------------------------------

    def list_folders(self) -> List[str]:
        """Names of the immediate subdirectories of the storage root."""
        self.ensure_root()
        try:
            with os.scandir(self.root_dir) as entries:
                return [e.name for e in entries if e.is_dir(follow_symlinks=False)]
        except OSError as exc:
            raise IOFailureError(f"Cannot list folders: {exc.strerror}", exc) from exc

    def list_files(self, folder: Optional[str]) -> List[FileEntry]:
        """Regular files directly inside *folder*; a missing folder is empty.

        Raises:
            UnsafePathError: if the folder resolves outside the root.
            IOFailureError: if the directory cannot be read.
        """
        segments = sanitize_segments(folder)
        directory = resolve_safe_path(self.root_dir, segments)
        if not os.path.isdir(directory):
            return []

        files: List[FileEntry] = []
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if not entry.is_file(follow_symlinks=False):
                        continue
                    try:
                        size = entry.stat(follow_symlinks=False).st_size
                    except FileNotFoundError:
                        # Deleted between scandir and stat
                        continue
                    files.append(FileEntry(
                        name=entry.name,
                        size=size,
                        url=build_reference_path(segments, entry.name),
                        file_type=get_file_type(content_type_for(entry.name)),
                    ))
        except OSError as exc:
            raise IOFailureError(f"Cannot list files: {exc.strerror}", exc) from exc
        return files

    # -----------------------------------------------------------------------
    # Upload
    # -----------------------------------------------------------------------

    def store(
        self,
        folder: Optional[str],
        items: Iterable[UploadItem],
        max_bytes: Optional[int] = None,
    ) -> StoreResult:
        """Write a batch of uploads into *folder*.

        Each item is handled on its own: an oversized, unsafe or failed item
        is reported in ``errors`` and the rest of the batch carries on.

        Args:
            folder: Target folder path (``/``-separated, untrusted).
            items: Files to store.
            max_bytes: Per-file cap; defaults to the configured limit.

        Returns:
            StoreResult with the stored files and the per-item failures.
        """
        limit = self.max_file_bytes if max_bytes is None else max_bytes
        target = sanitize_segments(folder)
        result = StoreResult()

        for item in items:
            try:
                saved = self._store_one(target, item, limit)
            except StorageError as exc:
                logger.warning("Upload of %r skipped: %s", item.name, exc)
                result.errors.append(UploadError(
                    name=item.name or "",
                    error=public_message_for(exc),
                    code=exc.code,
                ))
                continue
            except Exception as exc:
                logger.exception("Upload of %r failed unexpectedly", item.name)
                failure = IOFailureError("Upload failed", exc)
                result.errors.append(UploadError(
                    name=item.name or "",
                    error=public_message_for(failure),
                    code=failure.code,
                ))
                continue
            logger.info("Stored %s (%d bytes)", saved.url, saved.size)
            result.saved.append(saved)

        return result

    def _store_one(self, target: List[str], item: UploadItem, limit: int) -> SavedFile:
        if item.size is not None and item.size > limit:
            raise SizeExceededError(item.size, limit)

        segments = [*target, *sanitize_segments(item.subpath)]
        directory = resolve_safe_path(self.root_dir, segments)
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as exc:
            raise IOFailureError(f"Cannot create folder: {exc.strerror}", exc) from exc

        desired = self._desired_name(item.name, infer_mime(item.content_type, item.name))
        stream = item.open()

        for _ in range(self.conflict_retries + 1):
            name = unique_name(directory, desired, self.max_name_probes)
            path = resolve_safe_path(self.root_dir, [*segments, name])
            try:
                fh = open(path, "xb")
            except FileExistsError:
                logger.info("Lost the race for %s, trying the next free name", name)
                continue
            except OSError as exc:
                raise IOFailureError(f"Cannot create file: {exc.strerror}", exc) from exc

            size = self._write(fh, path, stream, limit)
            return SavedFile(
                name=name,
                size=size,
                url=build_reference_path(segments, name),
            )

        raise NameConflictError(f"Could not claim a name for {desired}")

    @staticmethod
    def _desired_name(raw_name: Optional[str], mime: str) -> str:
        """Client name with an extension: its own, else one for *mime*, else ``.bin``."""
        client_name = os.path.basename(raw_name or "") or DEFAULT_UPLOAD_NAME
        stem, ext = os.path.splitext(client_name)
        return stem + (ext or extension_for_mime(mime) or DEFAULT_EXTENSION)

    def _write(self, fh: BinaryIO, path: str, stream: BinaryIO, limit: int) -> int:
        """Copy *stream* into the freshly created *fh*; remove the file on any failure."""
        written = 0
        try:
            with fh:
                while True:
                    chunk = stream.read(self.chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > limit:
                        raise SizeExceededError(written, limit)
                    fh.write(chunk)
        except OSError as exc:
            self._discard(path)
            raise IOFailureError(f"Write failed: {exc.strerror}", exc) from exc
        except BaseException:
            self._discard(path)
            raise
        return written

    @staticmethod
    def _discard(path: str) -> None:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error("Could not remove partial upload %s: %s", path, exc)

    # -----------------------------------------------------------------------
    # Serving / deleting
    # -----------------------------------------------------------------------

    def _locate_file(self, raw_path: Optional[str]) -> Tuple[str, str, os.stat_result]:
        """Resolve *raw_path* to an existing regular file.

        Unsafe, missing and non-file paths all raise NotFoundError so callers
        cannot tell a rejected traversal from an absent file.  The final
        component is tried as written before its sanitized form, so files
        listed under their on-disk name stay addressable.
        """
        folder, names = split_file_path(raw_path)
        for name in names:
            try:
                path = resolve_safe_path(self.root_dir, [*folder, name])
            except UnsafePathError:
                continue
            try:
                st = os.lstat(path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise IOFailureError(f"Cannot stat file: {exc.strerror}", exc) from exc
            if stat.S_ISREG(st.st_mode):
                return name, path, st
        raise NotFoundError()

    def read(self, raw_path: Optional[str]) -> FileStream:
        """Open a stored file for serving.

        Raises:
            NotFoundError: missing, not a regular file, or unsafe path.
            IOFailureError: the file exists but cannot be opened.
        """
        name, path, st = self._locate_file(raw_path)
        try:
            stream = open(path, "rb")
        except FileNotFoundError as exc:
            raise NotFoundError() from exc
        except OSError as exc:
            raise IOFailureError(f"Cannot open file: {exc.strerror}", exc) from exc
        return FileStream(
            stream=stream,
            size=st.st_size,
            content_type=content_type_for(name),
            name=name,
            path=path,
        )

    def delete(self, paths: Iterable[str]) -> DeleteResult:
        """Delete a batch of files; every path gets its own outcome.

        Directories are never removed.  Blank paths are ignored.
        """
        result = DeleteResult()
        for raw in paths:
            if not sanitize_segments(raw):
                continue
            try:
                _, path, _ = self._locate_file(raw)
                os.unlink(path)
            except StorageError as exc:
                result.errors.append(DeleteError(
                    path=raw, error=public_message_for(exc), code=exc.code,
                ))
                continue
            except FileNotFoundError:
                result.errors.append(DeleteError(
                    path=raw,
                    error=NotFoundError.public_message,
                    code=NotFoundError.code,
                ))
                continue
            except OSError as exc:
                failure = IOFailureError(f"Delete failed: {exc.strerror}", exc)
                logger.error("Delete of %r failed: %s", raw, exc)
                result.errors.append(DeleteError(
                    path=raw, error=public_message_for(failure), code=failure.code,
                ))
                continue
            logger.info("Deleted %s", path)
            result.deleted.append(raw)
        return result
