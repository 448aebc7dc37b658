# pte_portal/models/submission.py

import uuid
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime, timezone
from typing import Optional, List

from .enums import SubmissionStatus, ReviewDecision
from .file import FileDescriptor
from .task import TaskSummary

DEADLINE_REJECTION_TEXT = "Your submission was automatically rejected because the deadline has passed."


class Feedback(BaseModel):
    text: Optional[str] = None
    # None marks feedback written by the system rather than by an admin
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# --- Request bodies ---
class SubmissionCreate(BaseModel):
    task_id: Optional[str] = Field(default=None, description="Task being submitted against")
    files: List[FileDescriptor] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=5000)


class SubmissionReview(BaseModel):
    status: ReviewDecision = Field(..., description="approved or rejected")
    feedback_text: Optional[str] = Field(default=None, max_length=5000)

    model_config = ConfigDict(use_enum_values=True)


class SubmissionBulkDeleteRequest(BaseModel):
    submission_ids: List[str] = Field(default_factory=list)


# --- Model for Database ---
class SubmissionInDB(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, alias="_id", description="Internal unique identifier")
    task_id: uuid.UUID
    student_id: uuid.UUID
    files: List[FileDescriptor] = Field(default_factory=list)
    notes: Optional[str] = None
    status: SubmissionStatus = Field(default=SubmissionStatus.PENDING)
    feedback: Optional[Feedback] = None
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )


class StudentSummary(BaseModel):
    """Who made a submission, shown to admins."""
    id: uuid.UUID = Field(..., alias="_id")
    name: str
    email: str

    model_config = ConfigDict(populate_by_name=True)


# --- Model for API Response ---
class Submission(SubmissionInDB):
    task: Optional[TaskSummary] = Field(default=None, description="Summary of the task, when it still exists")
    student: Optional[StudentSummary] = Field(default=None, description="Submitting student, in admin listings")


class SubmissionPage(BaseModel):
    submissions: List[Submission]
    current_page: int
    total_pages: int
    total_submissions: int


class SubmissionBulkDeleteResponse(BaseModel):
    message: str
    deleted_count: int
