# pte_portal/models/material.py

import uuid
from pydantic import BaseModel, Field, field_validator, ConfigDict
from datetime import datetime, timezone
from typing import Optional, List

from .enums import MaterialType, MaterialLanguage
from .file import FileDescriptor


# --- Request body for create and full-replacement update ---
class MaterialWrite(BaseModel):
    # title/type are checked by the endpoint
    title: Optional[str] = Field(default=None, max_length=300)
    type: Optional[MaterialType] = None
    language: MaterialLanguage = Field(default=MaterialLanguage.ENGLISH)
    description: Optional[str] = None
    content: Optional[str] = None
    files: List[FileDescriptor] = Field(default_factory=list)

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value


# --- Model for Database ---
class MaterialInDB(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, alias="_id", description="Internal unique identifier")
    title: str = Field(..., min_length=1)
    type: MaterialType
    language: MaterialLanguage = Field(default=MaterialLanguage.ENGLISH)
    description: Optional[str] = None
    content: Optional[str] = None
    files: List[FileDescriptor] = Field(default_factory=list)
    uploaded_by: uuid.UUID
    is_active: bool = Field(default=True, description="Flag for soft delete status")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )


# --- Model for API Response ---
class Material(MaterialInDB):
    pass
