# pte_portal/models/user.py
from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import Optional
from datetime import datetime, timezone
import uuid

from .enums import UserRole


def _normalise_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


# Shared base properties
class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    email: EmailStr = Field(..., description="Login email address (unique)")
    role: UserRole = Field(default=UserRole.STUDENT, description="Account role")
    is_active: bool = Field(default=True, description="Inactive accounts cannot log in")

    model_config = ConfigDict(
        use_enum_values=True,
        from_attributes=True,
        populate_by_name=True,
    )

    @field_validator("email", mode="before")
    @classmethod
    def normalise_email(cls, value):
        return _normalise_email(value)


# --- Request bodies ---
# Fields are optional here so the endpoint can answer with the exact
# "required" message rather than a generic validation error.
class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: UserRole = UserRole.STUDENT

    @field_validator("email", mode="before")
    @classmethod
    def normalise_email(cls, value):
        return _normalise_email(value)


class LoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalise_email(cls, value):
        return _normalise_email(value)


class UserStatusUpdate(BaseModel):
    is_active: bool = Field(..., description="New activation state")


# Properties stored in DB
class UserInDB(UserBase):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, alias="_id", description="Internal unique identifier")
    hashed_password: str = Field(..., description="bcrypt hash of the password")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_login_at: Optional[datetime] = Field(default=None)

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
    )


# Public representation (API responses) - never carries the password hash
class User(UserBase):
    id: uuid.UUID = Field(..., alias="_id")
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


# --- Response bodies ---
class AuthResponse(BaseModel):
    token: str
    user: User


class AccountCreatedResponse(BaseModel):
    message: str
    user: User
