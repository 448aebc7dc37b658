# pte_portal/api/v1/endpoints/files.py

import asyncio
import logging
from typing import List, Optional, Dict, Any
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse, RedirectResponse

from ....core.config import settings
from ....core.security import get_current_user_payload
from ....models.enums import StorageBackend
from ....models.file import FileDescriptor
from ....services import local_storage
from ....services.blob_storage import (
    upload_file_to_blob,
    find_blob,
    get_blob_download_url,
    UPLOADS_FOLDER,
    MATERIALS_FOLDER,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])


async def _store_one(upload_file: UploadFile, backend: str, folder: str) -> FileDescriptor:
    """Stores a single upload. Raises HTTPException(500) on failure so the batch aborts."""
    original_name = upload_file.filename or "unknown_file"

    if backend == StorageBackend.BLOB.value:
        stored = await upload_file_to_blob(upload_file, folder=folder)
        if stored is None:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="File upload failed")
        blob_name, blob_url = stored
        return FileDescriptor(
            original_name=original_name,
            filename=blob_name.rsplit("/", 1)[-1],
            url=blob_url,
            public_id=blob_name,
            size=upload_file.size,
            mimetype=upload_file.content_type,
        )

    try:
        stored_name, size = await asyncio.to_thread(local_storage.save_upload, upload_file, settings.UPLOAD_DIR)
    except OSError as e:
        logger.error(f"Local upload of '{original_name}' failed: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="File upload failed")
    return FileDescriptor(
        original_name=original_name,
        filename=stored_name,
        url=local_storage.download_url(stored_name, settings.API_V1_PREFIX),
        size=size,
        mimetype=upload_file.content_type,
    )


async def _store_batch(
    uploads: List[UploadFile],
    storage: Optional[StorageBackend],
    folder: str,
    user_id: Optional[str],
) -> Dict[str, Any]:
    uploads = [u for u in uploads if u is not None and u.filename]
    if not uploads:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    backend = storage.value if storage else settings.FILE_STORAGE_BACKEND
    logger.info(f"User {user_id} uploading {len(uploads)} file(s) to {backend} ({folder})")
    descriptors = [await _store_one(u, backend, folder) for u in uploads]
    return {"files": [d.model_dump() for d in descriptors]}


@router.post(
    "/upload",
    status_code=status.HTTP_200_OK,
    summary="Upload submission files",
    description="Multipart field `files` (one or more). Optional form field `storage` selects local disk or blob storage."
)
async def upload_files(
    files: Optional[List[UploadFile]] = File(None),
    file: Optional[UploadFile] = File(None, description="Single-file form used by older clients"),
    storage: Optional[StorageBackend] = Form(None),
    current_user_payload: Dict[str, Any] = Depends(get_current_user_payload),
):
    return await _store_batch((files or []) + [file], storage, UPLOADS_FOLDER, current_user_payload.get("sub"))


@router.post(
    "/upload-material",
    status_code=status.HTTP_200_OK,
    summary="Upload learning-material files",
)
async def upload_material_files(
    files: Optional[List[UploadFile]] = File(None),
    file: Optional[UploadFile] = File(None, description="Single-file form used by older clients"),
    storage: Optional[StorageBackend] = Form(None),
    current_user_payload: Dict[str, Any] = Depends(get_current_user_payload),
):
    return await _store_batch((files or []) + [file], storage, MATERIALS_FOLDER, current_user_payload.get("sub"))


@router.get(
    "/download/{filename}",
    summary="Download a stored file",
    description=(
        "Serves a locally stored file inline. When it is not on local disk and storage=blob, "
        "redirects to the blob (a signed attachment URL when attachment=true)."
    ),
    responses={
        200: {"description": "File contents"},
        307: {"description": "Redirect to blob storage"},
        404: {"description": "File not found"},
    },
)
async def download_file(
    filename: str,
    original_name: Optional[str] = Query(None, description="Name to present in Content-Disposition"),
    storage: Optional[StorageBackend] = Query(None),
    attachment: bool = Query(False, description="Force download when redirecting to blob storage"),
):
    if not local_storage.is_safe_filename(filename):
        logger.warning(f"Rejected download path '{filename}'")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid filename")

    display_name = original_name or filename
    path = await asyncio.to_thread(
        local_storage.resolve_download_path, filename, [settings.UPLOAD_DIR, *settings.DOWNLOAD_SEARCH_DIRS]
    )
    if path is not None:
        logger.info(f"Serving '{filename}' from {path.parent}")
        return FileResponse(
            path,
            media_type=local_storage.content_type_for(filename),
            filename=display_name,
            content_disposition_type="inline",
        )

    if storage == StorageBackend.BLOB:
        blob_name = await find_blob(filename)
        if blob_name is not None:
            url = get_blob_download_url(blob_name, attachment_name=display_name if attachment else None)
            if url is not None:
                return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    logger.info(f"File '{filename}' not found")
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
