"""Schemas for the storage subsystem.

This module defines the data exchanged between the storage core and its
callers:
- UploadItem / FileStream: in-process carriers for byte streams
- FileEntry: one file in a folder listing
- SavedFile / UploadError / StoreResult: outcome of a batch upload
- DeleteError / DeleteResult: outcome of a batch delete
- *Response / DeleteRequest: JSON bodies of the HTTP API

Stored files carry no metadata beyond their path: the filename on disk is
the full identity, already uniquified when it was written.
"""
import io
from dataclasses import dataclass
from typing import BinaryIO, List, Optional, Union

from pydantic import BaseModel, Field

from .mime import FileType


@dataclass
class UploadItem:
    """One file of an upload batch.

    Attributes:
        name: Client supplied filename (may be empty or hostile).
        content: Readable binary stream, or raw bytes.
        size: Declared size in bytes, if the caller knows it up front.
        content_type: Declared MIME type, if any.
        subpath: Optional per-item folder below the batch target folder.
    """
    name: str
    content: Union[BinaryIO, bytes]
    size: Optional[int] = None
    content_type: Optional[str] = None
    subpath: Optional[str] = None

    def open(self) -> BinaryIO:
        if isinstance(self.content, (bytes, bytearray)):
            return io.BytesIO(self.content)
        return self.content


@dataclass
class FileStream:
    """An open stored file, ready to be served. The caller closes ``stream``."""
    stream: BinaryIO
    size: int
    content_type: str
    name: str
    path: str


class FileEntry(BaseModel):
    """A regular file inside a listed folder."""
    name: str = Field(..., description="Filename on disk, extension included")
    size: int = Field(..., description="File size in bytes")
    url: str = Field(..., description="Reference path to fetch the file")
    file_type: FileType = Field(FileType.OTHER, description="File type category")


class SavedFile(BaseModel):
    """An upload that was written to disk."""
    name: str = Field(..., description="Stored filename (sanitized and uniquified)")
    size: int = Field(..., description="Bytes written")
    url: str = Field(..., description="Reference path to fetch the file")


class UploadError(BaseModel):
    """An upload that was skipped or failed."""
    name: str = Field(..., description="Filename as supplied by the client")
    error: str = Field(..., description="Human readable reason")
    code: str = Field(..., description="Stable error code")


class StoreResult(BaseModel):
    saved: List[SavedFile] = Field(default_factory=list)
    errors: List[UploadError] = Field(default_factory=list)


class DeleteError(BaseModel):
    path: str = Field(..., description="Path as requested by the client")
    error: str = Field(..., description="Human readable reason")
    code: str = Field(..., description="Stable error code")


class DeleteResult(BaseModel):
    deleted: List[str] = Field(default_factory=list)
    errors: List[DeleteError] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# HTTP bodies
# ---------------------------------------------------------------------------


class FoldersResponse(BaseModel):
    ok: bool = True
    folders: List[str] = Field(default_factory=list)


class FilesResponse(BaseModel):
    ok: bool = True
    files: List[FileEntry] = Field(default_factory=list)


class UploadResponse(StoreResult):
    ok: bool = True


class DeleteRequest(BaseModel):
    paths: List[str] = Field(default_factory=list)


class DeleteResponse(DeleteResult):
    ok: bool = True
