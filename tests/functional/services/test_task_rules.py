# tests/functional/services/test_task_rules.py

import uuid
import pytest
from datetime import datetime, timedelta, timezone

from pte_portal.models.enums import SubmissionStatus
from pte_portal.models.submission import DEADLINE_REJECTION_TEXT
from pte_portal.models.task import BroadcastAssignment, SpecificAssignment, TaskInDB
from pte_portal.services.task_rules import (
    resolve_assignment,
    student_visibility_filter,
    is_task_visible_to,
    initial_submission_state,
)


# --- Assignment resolution ---
def test_assign_to_all_wins_over_explicit_list():
    result = resolve_assignment(True, [uuid.uuid4()])
    assert isinstance(result, BroadcastAssignment)
    assert result.model_dump() == {"mode": "broadcast"}


def test_explicit_list_gives_specific_assignment_without_duplicates():
    a, b = uuid.uuid4(), uuid.uuid4()
    result = resolve_assignment(False, [a, b, a])
    assert isinstance(result, SpecificAssignment)
    assert result.student_ids == [a, b]


@pytest.mark.parametrize("assigned_to", [None, []])
def test_nothing_selected_falls_back_to_broadcast(assigned_to):
    assert isinstance(resolve_assignment(False, assigned_to), BroadcastAssignment)


def test_specific_assignment_requires_students():
    with pytest.raises(ValueError):
        SpecificAssignment(student_ids=[])


def test_stored_assignment_is_discriminated_by_mode():
    sid = uuid.uuid4()
    task = TaskInDB(
        title="Essay A",
        type="Essay",
        description="Write an essay",
        created_by=uuid.uuid4(),
        assignment={"mode": "specific", "student_ids": [str(sid)]},
    )
    assert isinstance(task.assignment, SpecificAssignment)
    assert task.assignment.student_ids == [sid]


# --- Visibility ---
def test_student_visibility_filter_shape():
    sid = uuid.uuid4()
    query = student_visibility_filter(sid)
    assert query["is_active"] is True
    assert {"assignment.mode": "broadcast"} in query["$or"]
    assert {"assignment.student_ids": sid} in query["$or"]


def test_visibility_in_memory():
    listed, other = uuid.uuid4(), uuid.uuid4()
    specific = {"mode": "specific", "student_ids": [listed]}
    assert is_task_visible_to({"mode": "broadcast"}, other)
    assert is_task_visible_to(specific, listed)
    assert not is_task_visible_to(specific, other)


# --- Deadline rule ---
def test_past_deadline_rejects_with_system_feedback():
    now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    status, feedback = initial_submission_state(now - timedelta(minutes=1), now)
    assert status == SubmissionStatus.REJECTED
    assert feedback.text == DEADLINE_REJECTION_TEXT
    assert "deadline" in feedback.text
    assert feedback.reviewed_by is None
    assert feedback.reviewed_at == now


@pytest.mark.parametrize("offset", [timedelta(minutes=1), timedelta(0)])
def test_future_or_exact_deadline_is_pending(offset):
    now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert initial_submission_state(now + offset, now) == (SubmissionStatus.PENDING, None)


def test_no_deadline_is_pending():
    assert initial_submission_state(None) == (SubmissionStatus.PENDING, None)


def test_naive_deadline_is_treated_as_utc():
    now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    status, _ = initial_submission_state(datetime(2025, 3, 1, 11, 0), now)
    assert status == SubmissionStatus.REJECTED
