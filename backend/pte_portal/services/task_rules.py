# pte_portal/services/task_rules.py
"""
Pure business rules for task visibility, assignment and submission status.

Nothing here touches the database; callers pass in the values and use the
returned filters/documents with the CRUD layer.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from ..models.enums import AssignmentMode, SubmissionStatus
from ..models.submission import Feedback, DEADLINE_REJECTION_TEXT
from ..models.task import Assignment, BroadcastAssignment, SpecificAssignment, ensure_utc


def resolve_assignment(assign_to_all: bool, assigned_to: Optional[Iterable[uuid.UUID]]) -> Assignment:
    """
    Decides who a task is assigned to.

    `assign_to_all` wins; otherwise a non-empty `assigned_to` gives a specific
    assignment (duplicates removed, order kept); otherwise the task is broadcast.
    Checking that the ids belong to existing students is the caller's job.
    """
    if assign_to_all:
        return BroadcastAssignment()
    student_ids = list(dict.fromkeys(assigned_to or []))
    if student_ids:
        return SpecificAssignment(student_ids=student_ids)
    return BroadcastAssignment()


def student_visibility_filter(student_id: uuid.UUID) -> Dict[str, Any]:
    """Mongo filter for the active tasks a given student may see."""
    return {
        "is_active": True,
        "$or": [
            {"assignment.mode": AssignmentMode.BROADCAST.value},
            {"assignment.student_ids": student_id},
        ],
    }


def is_task_visible_to(task_assignment: Dict[str, Any], student_id: uuid.UUID) -> bool:
    """In-memory counterpart of student_visibility_filter for a stored assignment document."""
    if task_assignment.get("mode") == AssignmentMode.BROADCAST.value:
        return True
    return student_id in (task_assignment.get("student_ids") or [])


def initial_submission_state(
    deadline: Optional[datetime],
    now: Optional[datetime] = None,
) -> Tuple[SubmissionStatus, Optional[Feedback]]:
    """
    Status and feedback a new submission starts with.

    A submission made strictly after the task deadline is rejected with system
    feedback (no reviewer). Otherwise, including tasks without a deadline, it is
    pending with no feedback.
    """
    now = ensure_utc(now) or datetime.now(timezone.utc)
    deadline = ensure_utc(deadline)
    if deadline is not None and now > deadline:
        return SubmissionStatus.REJECTED, Feedback(
            text=DEADLINE_REJECTION_TEXT,
            reviewed_by=None,
            reviewed_at=now,
        )
    return SubmissionStatus.PENDING, None
