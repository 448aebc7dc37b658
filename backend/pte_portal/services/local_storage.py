# pte_portal/services/local_storage.py

import logging
import os
import re
import shutil
import time
from pathlib import Path
from typing import Iterable, Optional, Tuple

from fastapi import UploadFile

logger = logging.getLogger(__name__)

DOWNLOAD_PREFIX = "/download"

# Static extension table; anything else is served as application/octet-stream
CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_EXTENSION_CHARS = re.compile(r"[^A-Za-z0-9]+")


def content_type_for(filename: str) -> str:
    return CONTENT_TYPES.get(os.path.splitext(filename)[1].lower(), DEFAULT_CONTENT_TYPE)


def sanitise_filename(name: Optional[str]) -> str:
    """
    Base name with anything outside [A-Za-z0-9._-] collapsed to '_'.

    The stem and the extension are cleaned separately, so a name written
    entirely in another script still keeps its extension (e.g. "file.pdf").
    """
    base = os.path.basename((name or "").replace("\\", "/"))
    stem, extension = os.path.splitext(base)
    stem = _UNSAFE_CHARS.sub("_", stem).strip("._") or "file"
    extension = _EXTENSION_CHARS.sub("", extension)
    return f"{stem}.{extension}" if extension else stem


def is_safe_filename(filename: str) -> bool:
    """Rejects anything that could escape the search directories."""
    return bool(filename) and "/" not in filename and "\\" not in filename and ".." not in filename


def download_url(filename: str, api_prefix: str = "") -> str:
    return f"{api_prefix}{DOWNLOAD_PREFIX}/{filename}"


def save_upload(upload_file: UploadFile, upload_dir: str) -> Tuple[str, int]:
    """
    Writes the upload to `<upload_dir>/<epoch-millis>-<sanitised name>`.

    Returns:
        (stored file name, size in bytes)

    Raises:
        OSError: If the directory cannot be created or the file cannot be written.
    """
    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)

    safe_name = sanitise_filename(upload_file.filename)
    millis = int(time.time() * 1000)
    target = directory / f"{millis}-{safe_name}"
    while target.exists():
        millis += 1
        target = directory / f"{millis}-{safe_name}"

    upload_file.file.seek(0)
    with open(target, "wb") as out:
        shutil.copyfileobj(upload_file.file, out)
        size = out.tell()

    logger.info(f"Stored upload '{upload_file.filename}' as '{target.name}' ({size} bytes)")
    return target.name, size


def resolve_download_path(filename: str, search_dirs: Iterable[str]) -> Optional[Path]:
    """First existing regular file named `filename` in the given directories, in order."""
    for directory in search_dirs:
        candidate = Path(directory) / filename
        if candidate.is_file():
            return candidate
    logger.debug(f"'{filename}' not found in any local search directory.")
    return None
