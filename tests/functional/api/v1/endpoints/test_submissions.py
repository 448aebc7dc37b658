# tests/functional/api/v1/endpoints/test_submissions.py
import uuid
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from fastapi import status
from pytest_mock import MockerFixture

from pte_portal.models.submission import Submission, Feedback, DEADLINE_REJECTION_TEXT
from pte_portal.models.task import Task, SpecificAssignment

pytestmark = pytest.mark.asyncio

CRUD = "pte_portal.api.v1.endpoints.submissions.crud"


def _task(deadline=None) -> Task:
    return Task(
        title="Essay A",
        type="Essay",
        description="Write 250 words",
        created_by=uuid.uuid4(),
        deadline=deadline,
    )


def _echo_submission(db, submission):
    return Submission(**submission.model_dump(by_alias=True))


def _page(submissions=(), total=0, page=1):
    return {
        "submissions": list(submissions),
        "current_page": page,
        "total_pages": 1 if total else 0,
        "total_submissions": total,
    }


# --- Create ---
async def test_submit_before_deadline_is_pending(client, api_prefix, student_headers, student_id, mocker: MockerFixture, now):
    task = _task(deadline=now + timedelta(days=1))
    mocker.patch(f"{CRUD}.get_active_task", new_callable=AsyncMock, return_value=task)
    create_mock = mocker.patch(f"{CRUD}.create_submission", new_callable=AsyncMock, side_effect=_echo_submission)

    response = await client.post(
        f"{api_prefix}/submissions",
        json={
            "task_id": str(task.id),
            "notes": "my attempt",
            "files": [{"original_name": "essay.pdf", "filename": "1700000000000-essay.pdf", "url": "/api/v1/download/1700000000000-essay.pdf"}],
        },
        headers=student_headers,
    )

    assert response.status_code == status.HTTP_201_CREATED, response.text
    body = response.json()
    assert body["status"] == "pending"
    assert body["feedback"] is None
    assert body["student_id"] == str(student_id)
    assert body["task"]["title"] == "Essay A"
    assert body["files"][0]["original_name"] == "essay.pdf"
    create_mock.assert_awaited_once()


async def test_submit_after_deadline_is_rejected_with_201(client, api_prefix, student_headers, mocker: MockerFixture):
    # Past-deadline "Essay A" broadcast task, submission without files
    task = _task(deadline=datetime(2020, 1, 1, tzinfo=timezone.utc))
    mocker.patch(f"{CRUD}.get_active_task", new_callable=AsyncMock, return_value=task)
    mocker.patch(f"{CRUD}.create_submission", new_callable=AsyncMock, side_effect=_echo_submission)

    response = await client.post(
        f"{api_prefix}/submissions",
        json={"task_id": str(task.id), "notes": "late"},
        headers=student_headers,
    )

    assert response.status_code == status.HTTP_201_CREATED, response.text
    body = response.json()
    assert body["status"] == "rejected"
    assert body["feedback"]["text"] == DEADLINE_REJECTION_TEXT
    assert "deadline" in body["feedback"]["text"]
    assert body["feedback"]["reviewed_by"] is None
    assert body["notes"] == "late"
    assert body["files"] == []


async def test_submit_missing_task_id(client, api_prefix, student_headers):
    response = await client.post(f"{api_prefix}/submissions", json={"notes": "x"}, headers=student_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"message": "Task ID is required"}


async def test_submit_unknown_task(client, api_prefix, student_headers, mocker: MockerFixture):
    mocker.patch(f"{CRUD}.get_active_task", new_callable=AsyncMock, return_value=None)
    response = await client.post(
        f"{api_prefix}/submissions", json={"task_id": str(uuid.uuid4())}, headers=student_headers
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "Task not found"}


async def test_submit_task_assigned_to_someone_else(client, api_prefix, student_headers, mocker: MockerFixture):
    task = _task()
    task.assignment = SpecificAssignment(student_ids=[uuid.uuid4()])
    mocker.patch(f"{CRUD}.get_active_task", new_callable=AsyncMock, return_value=task)
    create_mock = mocker.patch(f"{CRUD}.create_submission", new_callable=AsyncMock)

    response = await client.post(
        f"{api_prefix}/submissions", json={"task_id": str(task.id)}, headers=student_headers
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    create_mock.assert_not_awaited()


async def test_admin_cannot_submit(client, api_prefix, admin_headers):
    response = await client.post(
        f"{api_prefix}/submissions", json={"task_id": str(uuid.uuid4())}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


# --- Listing ---
async def test_student_list_is_scoped_and_paginated(client, api_prefix, student_headers, student_id, mocker: MockerFixture):
    list_mock = mocker.patch(f"{CRUD}.list_submissions", new_callable=AsyncMock, return_value=_page(page=2))

    response = await client.get(f"{api_prefix}/submissions?page=2&limit=5", headers=student_headers)

    assert response.status_code == status.HTTP_200_OK, response.text
    assert set(response.json()) == {"submissions", "current_page", "total_pages", "total_submissions"}
    kwargs = list_mock.await_args.kwargs
    assert kwargs["student_id"] == student_id
    assert kwargs["page"] == 2
    assert kwargs["limit"] == 5


async def test_admin_list_is_unscoped_with_default_limit(client, api_prefix, admin_headers, mocker: MockerFixture):
    list_mock = mocker.patch(f"{CRUD}.list_submissions", new_callable=AsyncMock, return_value=_page())
    response = await client.get(f"{api_prefix}/submissions", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert list_mock.await_args.kwargs["student_id"] is None
    assert list_mock.await_args.kwargs["limit"] == 10


async def test_history_status_filter(client, api_prefix, student_headers, student_id, mocker: MockerFixture):
    list_mock = mocker.patch(f"{CRUD}.list_submissions", new_callable=AsyncMock, return_value=_page())
    response = await client.get(f"{api_prefix}/submissions/history?status=approved", headers=student_headers)
    assert response.status_code == status.HTTP_200_OK
    assert list_mock.await_args.kwargs["status"] == "approved"
    assert list_mock.await_args.kwargs["student_id"] == student_id


async def test_history_rejects_unknown_status(client, api_prefix, student_headers):
    response = await client.get(f"{api_prefix}/submissions/history?status=lost", headers=student_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


# --- Review ---
async def test_review_overwrites_feedback(client, api_prefix, admin_headers, admin_id, mocker: MockerFixture, now):
    submission_id = uuid.uuid4()

    async def fake_review(db, target_id, new_status, feedback):
        return Submission(
            _id=target_id,
            task_id=uuid.uuid4(),
            student_id=uuid.uuid4(),
            status=new_status,
            feedback=feedback,
        )

    review_mock = mocker.patch(f"{CRUD}.review_submission", new_callable=AsyncMock, side_effect=fake_review)

    response = await client.patch(
        f"{api_prefix}/submissions/{submission_id}",
        json={"status": "approved", "feedback_text": "Well structured"},
        headers=admin_headers,
    )

    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert body["status"] == "approved"
    assert body["feedback"]["text"] == "Well structured"
    assert body["feedback"]["reviewed_by"] == str(admin_id)
    feedback: Feedback = review_mock.await_args.args[3]
    assert feedback.reviewed_at >= now


async def test_review_cannot_reopen_to_pending(client, api_prefix, admin_headers):
    response = await client.patch(
        f"{api_prefix}/submissions/{uuid.uuid4()}",
        json={"status": "pending"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_review_missing_submission(client, api_prefix, admin_headers, mocker: MockerFixture):
    mocker.patch(f"{CRUD}.review_submission", new_callable=AsyncMock, return_value=None)
    response = await client.patch(
        f"{api_prefix}/submissions/{uuid.uuid4()}",
        json={"status": "rejected", "feedback_text": "Too short"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_student_cannot_review(client, api_prefix, student_headers):
    response = await client.patch(
        f"{api_prefix}/submissions/{uuid.uuid4()}",
        json={"status": "approved"},
        headers=student_headers,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


# --- Bulk delete ---
async def test_bulk_delete_reports_existing_count(client, api_prefix, admin_headers, mocker: MockerFixture):
    ids = [str(uuid.uuid4()) for _ in range(3)]
    mocker.patch(f"{CRUD}.bulk_delete_submissions", new_callable=AsyncMock, return_value=2)
    response = await client.post(
        f"{api_prefix}/submissions/bulk-delete", json={"submission_ids": ids}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    assert response.json()["deleted_count"] == 2


async def test_bulk_delete_invalid_ids(client, api_prefix, admin_headers):
    response = await client.post(
        f"{api_prefix}/submissions/bulk-delete",
        json={"submission_ids": ["nope", str(uuid.uuid4())]},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["invalid_ids"] == ["nope"]
