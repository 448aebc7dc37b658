# pte_portal/services/blob_storage.py

import logging
import uuid
import os
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

# --- Azure SDK Imports ---
# Use the async client for FastAPI compatibility
from azure.storage.blob.aio import BlobServiceClient, ContainerClient, BlobClient
from azure.core.exceptions import AzureError
from azure.storage.blob import ContentSettings, BlobSasPermissions, generate_blob_sas

# --- FastAPI Imports (for type hinting) ---
from fastapi import UploadFile

# --- Config Imports ---
from ..core.config import settings

# --- Logging Setup ---
logger = logging.getLogger(__name__)

UPLOADS_FOLDER = "uploads"
MATERIALS_FOLDER = "materials"
BLOB_FOLDERS = (UPLOADS_FOLDER, MATERIALS_FOLDER)

# --- Blob Service Client (Cached) ---
_blob_service_client: Optional[BlobServiceClient] = None

def get_blob_service_client() -> Optional[BlobServiceClient]:
    """Gets or creates the async BlobServiceClient instance."""
    global _blob_service_client
    if _blob_service_client is None:
        if not settings.AZURE_BLOB_CONNECTION_STRING:
            logger.error("Azure Blob Storage connection string is not configured.")
            return None
        try:
            _blob_service_client = BlobServiceClient.from_connection_string(
                conn_str=settings.AZURE_BLOB_CONNECTION_STRING
            )
            logger.info("BlobServiceClient initialized.")
        except ValueError as e:
            logger.error(f"Invalid Blob Storage connection string format: {e}")
            return None
    return _blob_service_client


async def close_blob_service_client() -> None:
    global _blob_service_client
    if _blob_service_client is not None:
        await _blob_service_client.close()
        _blob_service_client = None
        logger.info("BlobServiceClient closed.")


def _get_blob_client(blob_name: str) -> Optional[BlobClient]:
    service_client = get_blob_service_client()
    if not service_client or not settings.AZURE_BLOB_CONTAINER_NAME:
        logger.error("Blob storage service client or container name not available.")
        return None
    container_client: ContainerClient = service_client.get_container_client(settings.AZURE_BLOB_CONTAINER_NAME)
    return container_client.get_blob_client(blob_name)


# --- File Upload Function ---

async def upload_file_to_blob(
    upload_file: UploadFile,
    folder: str = UPLOADS_FOLDER,
) -> Optional[Tuple[str, str]]:
    """
    Uploads a file to Azure Blob Storage under `<folder>/<uuid><ext>`.

    Args:
        upload_file: The UploadFile object received from the FastAPI request.
        folder: Virtual directory inside the container.

    Returns:
        (blob name, blob URL) if successful, otherwise None.
    """
    original_filename = upload_file.filename or "unknown_file"
    _, file_extension = os.path.splitext(original_filename)
    blob_name = f"{folder}/{uuid.uuid4()}{file_extension}"
    content_type = upload_file.content_type

    blob_client = _get_blob_client(blob_name)
    if blob_client is None:
        return None

    logger.info(f"Attempting to upload '{original_filename}' as blob '{blob_name}' to container '{settings.AZURE_BLOB_CONTAINER_NAME}'...")
    try:
        content_settings = ContentSettings(content_type=content_type) if content_type else None
        await blob_client.upload_blob(
            data=upload_file.file,
            overwrite=True,
            content_settings=content_settings
        )
        logger.info(f"Successfully uploaded '{original_filename}' to blob: {blob_name}")
        return blob_name, blob_client.url

    except AzureError as e:
        logger.error(f"Azure error during blob upload for {blob_name}: {e}", exc_info=True)
        return None


# --- Download helpers ---

async def find_blob(filename: str) -> Optional[str]:
    """Full blob name for a stored base file name, searching each known folder."""
    for folder in BLOB_FOLDERS:
        blob_name = f"{folder}/{filename}"
        blob_client = _get_blob_client(blob_name)
        if blob_client is None:
            return None
        try:
            if await blob_client.exists():
                return blob_name
        except AzureError as ae:
            logger.error(f"Azure error checking blob '{blob_name}': {ae}", exc_info=False)
            continue
    logger.warning(f"Blob for '{filename}' not found in container '{settings.AZURE_BLOB_CONTAINER_NAME}'.")
    return None


def attachment_disposition(name: str) -> str:
    """Content-Disposition value forcing a download, with header-breaking characters removed."""
    safe_name = "".join(ch for ch in name if ch not in '"\\' and ch.isprintable()).strip() or "download"
    return f'attachment; filename="{safe_name}"'


def get_blob_download_url(blob_name: str, attachment_name: Optional[str] = None) -> Optional[str]:
    """
    URL the client is redirected to for a blob.

    With `attachment_name`, returns a short-lived read-only SAS URL whose response
    carries `Content-Disposition: attachment`. This needs an account key in the
    connection string; without one the plain blob URL is returned.
    """
    blob_client = _get_blob_client(blob_name)
    if blob_client is None:
        return None
    if not attachment_name:
        return blob_client.url

    account_key = getattr(blob_client.credential, "account_key", None)
    if not account_key:
        logger.warning("Connection string has no account key; cannot sign attachment URL. Returning plain blob URL.")
        return blob_client.url

    sas_token = generate_blob_sas(
        account_name=blob_client.account_name,
        container_name=settings.AZURE_BLOB_CONTAINER_NAME,
        blob_name=blob_name,
        account_key=account_key,
        permission=BlobSasPermissions(read=True),
        expiry=datetime.now(timezone.utc) + timedelta(minutes=settings.BLOB_SAS_EXPIRY_MINUTES),
        content_disposition=attachment_disposition(attachment_name),
    )
    return f"{blob_client.url}?{sas_token}"
