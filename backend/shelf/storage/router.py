"""FastAPI routers for folder browsing, uploads, deletes and file serving.

The handlers only parse requests and shape responses; every filesystem
call goes through FileStorageService in the threadpool so blocking disk I/O
never stalls the event loop.
"""
import logging
from typing import Iterator, List

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import ValidationError
from starlette.background import BackgroundTask
from starlette.datastructures import UploadFile

from .errors import NotFoundError, StorageError, UnsafePathError, public_message_for
from .schemas import (
    DeleteRequest,
    DeleteResponse,
    FilesResponse,
    FileStream,
    FoldersResponse,
    UploadItem,
    UploadResponse,
)
from .service import FileStorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["storage"])
files_router = APIRouter(prefix="/files", tags=["files"])

CACHE_CONTROL = "public, max-age=31536000, immutable"


def _service() -> FileStorageService:
    return FileStorageService.get_instance()


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message}, status_code=status_code)


@router.get("/folders", response_model=FoldersResponse)
async def list_folders():
    """List the top-level folders of the storage root.

    Returns:
        FoldersResponse with folder names sorted for display.
    """
    try:
        folders = await run_in_threadpool(_service().list_folders)
    except StorageError as e:
        logger.error(f"Listing folders failed: {e}")
        return _error(public_message_for(e), 500)
    return FoldersResponse(folders=sorted(folders))


@router.get("/list", response_model=FilesResponse)
async def list_files(folder: str = ""):
    """List the files directly inside a folder.

    Args:
        folder: ``/``-separated folder path; empty means the storage root.

    Returns:
        FilesResponse; an unknown folder yields an empty list.
    """
    try:
        files = await run_in_threadpool(_service().list_files, folder)
    except UnsafePathError as e:
        return _error(public_message_for(e), 400)
    except StorageError as e:
        logger.error(f"Listing files in {folder!r} failed: {e}")
        return _error(public_message_for(e), 500)
    return FilesResponse(files=files)


@router.post("/upload", response_model=UploadResponse)
async def upload_files(request: Request):
    """Upload one or more files into a folder.

    Multipart fields:
    - ``files[]`` (or ``files``): the files
    - ``target``: destination folder, optional
    - ``paths[]``: per-file subfolder, aligned by index with the files

    Files over the size limit are skipped and reported in ``errors``; the
    rest of the batch is still stored.
    """
    form = await request.form()
    try:
        uploads = [
            f for f in form.getlist("files[]") + form.getlist("files")
            if isinstance(f, UploadFile)
        ]
        if not uploads:
            return _error("No files found in formData (files[])", 400)

        target = form.get("target")
        target = target if isinstance(target, str) else ""
        subpaths: List[str] = [str(p) for p in form.getlist("paths[]")]

        items = [
            UploadItem(
                name=upload.filename or "",
                content=upload.file,
                size=upload.size,
                content_type=upload.content_type,
                subpath=subpaths[i] if i < len(subpaths) else None,
            )
            for i, upload in enumerate(uploads)
        ]
        logger.info(f"Upload: {len(items)} file(s) into {target!r}")

        result = await run_in_threadpool(_service().store, target, items)
        logger.info(
            f"Upload: saved {len(result.saved)}, skipped {len(result.errors)}"
        )
        return UploadResponse(saved=result.saved, errors=result.errors)
    except Exception as e:
        logger.error(f"Upload failed: {e}")
        return _error(str(e) or "Upload failed", 500)
    finally:
        await form.close()


@router.delete("/delete", response_model=DeleteResponse)
async def delete_files(request: Request):
    """Delete files by path.

    Body: ``{"paths": ["folder/name.ext", ...]}``.  A malformed body is
    treated as an empty list.  Missing files, folders and rejected paths
    are all reported as "Not found".
    """
    try:
        body = await request.json()
    except ValueError:
        body = {}
    try:
        payload = DeleteRequest.model_validate(body)
    except ValidationError:
        payload = DeleteRequest()

    result = await run_in_threadpool(_service().delete, payload.paths)
    return DeleteResponse(deleted=result.deleted, errors=result.errors)


def _iter_stream(opened: FileStream, chunk_size: int) -> Iterator[bytes]:
    try:
        while True:
            chunk = opened.stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        opened.stream.close()


@files_router.get("/{file_path:path}")
async def serve_file(file_path: str):
    """Stream a stored file with its inferred content type.

    Raises nothing to the client beyond a plain 404 for missing, non-file
    or rejected paths.  The file is closed once the response finishes,
    including when the client disconnects before the body is consumed.
    """
    # A query string glued onto the name (name.png?v=123) is not part of it
    head, sep, last = file_path.rpartition("/")
    file_path = head + sep + last.split("?", 1)[0]

    service = _service()
    try:
        opened = await run_in_threadpool(service.read, file_path)
    except NotFoundError:
        return PlainTextResponse("Not found", status_code=404)
    except StorageError as e:
        logger.error(f"Serving {file_path!r} failed: {e}")
        return PlainTextResponse("Not found", status_code=404)

    return StreamingResponse(
        _iter_stream(opened, service.chunk_size),
        media_type=opened.content_type,
        headers={
            "Content-Length": str(opened.size),
            "Cache-Control": CACHE_CONTROL,
        },
        background=BackgroundTask(opened.stream.close),
    )
