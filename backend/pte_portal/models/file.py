# pte_portal/models/file.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime, timezone


class FileDescriptor(BaseModel):
    """
    Embedded description of a stored file.

    `filename` is the local file name (or blob name); `url` and `public_id` are set
    for files held in external object storage. Nothing links a descriptor to its
    bytes: removing the owning record leaves the stored file in place.
    """
    original_name: str = Field(..., min_length=1, description="Name of the file as uploaded by the client")
    filename: Optional[str] = Field(default=None, description="Local file name or blob name")
    url: Optional[str] = Field(default=None, description="External URL (blob storage) or internal download path")
    public_id: Optional[str] = Field(default=None, description="Blob name in external storage")
    size: Optional[int] = Field(default=None, ge=0, description="Size in bytes")
    mimetype: Optional[str] = Field(default=None, description="Client-declared MIME type")
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )
