# pte_portal/models/task.py

import uuid
from pydantic import BaseModel, Field, field_validator, ConfigDict
from datetime import datetime, timezone
from typing import Annotated, Optional, List, Literal, Union

from .enums import TaskType, AssignmentMode


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Interprets naive datetimes as UTC and converts aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# --- Assignment variants ---
class BroadcastAssignment(BaseModel):
    """Visible to every active student, including ones registered later."""
    mode: Literal["broadcast"] = AssignmentMode.BROADCAST.value


class SpecificAssignment(BaseModel):
    """Visible only to the listed students."""
    mode: Literal["specific"] = AssignmentMode.SPECIFIC.value
    student_ids: List[uuid.UUID] = Field(..., min_length=1, description="Students the task is assigned to")


Assignment = Annotated[Union[BroadcastAssignment, SpecificAssignment], Field(discriminator="mode")]


# --- Request body for create and full-replacement update ---
class TaskWrite(BaseModel):
    # title/type/description are checked by the endpoint so it can return its own message
    title: Optional[str] = Field(default=None, max_length=300)
    type: Optional[TaskType] = Field(default=None, description="PTE exercise kind")
    description: Optional[str] = None
    quantity: int = Field(default=1, ge=1, description="Number of items the student should complete")
    deadline: Optional[datetime] = Field(default=None, description="Submissions after this instant are auto-rejected")
    assigned_to: Optional[List[uuid.UUID]] = Field(default=None, description="Student ids for a specific assignment")
    assign_to_all: bool = Field(default=False, description="Broadcast to every active student")

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("deadline")
    @classmethod
    def deadline_to_utc(cls, value):
        return ensure_utc(value)


# --- Model for Database ---
class TaskInDB(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, alias="_id", description="Internal unique identifier")
    title: str = Field(..., min_length=1)
    type: TaskType
    description: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)
    deadline: Optional[datetime] = None
    assignment: Assignment = Field(default_factory=BroadcastAssignment)
    created_by: uuid.UUID = Field(..., description="Admin who created the task")
    is_active: bool = Field(default=True, description="Flag for soft delete status")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )

    @field_validator("deadline")
    @classmethod
    def deadline_to_utc(cls, value):
        return ensure_utc(value)


# --- Model for API Response ---
class Task(TaskInDB):
    pass


class TaskSummary(BaseModel):
    """Subset of a task embedded in submission listings."""
    id: uuid.UUID = Field(..., alias="_id")
    title: str
    type: str
    deadline: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)


# --- Bulk delete ---
class TaskBulkDeleteRequest(BaseModel):
    task_ids: List[str] = Field(default_factory=list)
    delete_submissions: bool = False


class TaskBulkDeleteResponse(BaseModel):
    message: str
    deleted_count: int
    deleted_submissions_count: int
    delete_submissions: bool
