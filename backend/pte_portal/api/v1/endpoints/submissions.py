# pte_portal/api/v1/endpoints/submissions.py

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from fastapi import APIRouter, Depends, HTTPException, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ....db import crud
from ....models.enums import UserRole, SubmissionStatus
from ....models.submission import (
    Submission,
    SubmissionInDB,
    SubmissionCreate,
    SubmissionReview,
    SubmissionPage,
    SubmissionBulkDeleteRequest,
    SubmissionBulkDeleteResponse,
    Feedback,
)
from ....models.task import TaskSummary
from ....core.security import get_current_user_payload
from ....services.task_rules import initial_submission_state, is_task_visible_to
from ...deps import (
    get_db,
    require_admin,
    require_student,
    user_id_from_payload,
    parse_object_id,
    parse_id_list,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/submissions",
    tags=["Submissions"]
)


@router.get(
    "",
    response_model=SubmissionPage,
    status_code=status.HTTP_200_OK,
    summary="List submissions (paginated)",
    description="Admins see every submission; students see their own. Newest first."
)
async def read_submissions(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: int = Query(10, ge=1, le=100, description="Page size"),
    current_user_payload: Dict[str, Any] = Depends(get_current_user_payload),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    student_id = None
    if current_user_payload.get("role") != UserRole.ADMIN.value:
        student_id = user_id_from_payload(current_user_payload)
    return await crud.list_submissions(db, student_id=student_id, page=page, limit=limit)


@router.get(
    "/history",
    response_model=SubmissionPage,
    status_code=status.HTTP_200_OK,
    summary="The caller's own submission history",
)
async def read_submission_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[SubmissionStatus] = Query(None, alias="status", description="Only submissions with this status"),
    current_user_payload: Dict[str, Any] = Depends(get_current_user_payload),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    student_id = user_id_from_payload(current_user_payload)
    return await crud.list_submissions(
        db,
        student_id=student_id,
        status=status_filter.value if status_filter else None,
        page=page,
        limit=limit,
    )


@router.post(
    "",
    response_model=Submission,
    status_code=status.HTTP_201_CREATED,
    summary="Submit work for a task (Student)",
    description=(
        "Creates a submission. If the task deadline has passed the submission is stored "
        "as rejected with system feedback; the response is still 201 and carries that status."
    )
)
async def create_submission(
    submission_in: SubmissionCreate,
    current_user_payload: Dict[str, Any] = Depends(require_student),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    student_id = user_id_from_payload(current_user_payload)
    if not submission_in.task_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Task ID is required")
    task_id = parse_object_id(submission_in.task_id, "task id")

    task = await crud.get_active_task(db, task_id)
    # Tasks assigned to other students are hidden, so they read as missing
    if task is None or not is_task_visible_to(task.assignment.model_dump(), student_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")

    now = datetime.now(timezone.utc)
    initial_status, feedback = initial_submission_state(task.deadline, now)
    submission_doc = SubmissionInDB(
        task_id=task.id,
        student_id=student_id,
        files=submission_in.files,
        notes=submission_in.notes,
        status=initial_status,
        feedback=feedback,
        submitted_at=now,
    )
    created = await crud.create_submission(db, submission_doc)
    if created.status == SubmissionStatus.REJECTED.value:
        logger.info(f"Student {student_id} submitted task {task.id} after its deadline; stored as rejected")
    else:
        logger.info(f"Student {student_id} submitted task {task.id} ({created.id})")

    created.task = TaskSummary(_id=task.id, title=task.title, type=task.type, deadline=task.deadline)
    return created


@router.post(
    "/bulk-delete",
    response_model=SubmissionBulkDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Permanently delete several submissions (Admin)",
)
async def bulk_delete_submissions(
    request_in: SubmissionBulkDeleteRequest,
    current_user_payload: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    submission_ids = parse_id_list(request_in.submission_ids, "submission ids")
    deleted = await crud.bulk_delete_submissions(db, submission_ids)
    logger.info(f"Admin {current_user_payload.get('sub')} bulk deleted {deleted} submissions")
    return SubmissionBulkDeleteResponse(
        message=f"Successfully deleted {deleted} submission(s)",
        deleted_count=deleted,
    )


@router.patch(
    "/{submission_id}",
    response_model=Submission,
    status_code=status.HTTP_200_OK,
    summary="Review a submission (Admin)",
    description="Sets status to approved or rejected and replaces any previous feedback."
)
async def review_submission(
    submission_id: str,
    review_in: SubmissionReview,
    current_user_payload: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    target_id = parse_object_id(submission_id, "submission id")
    reviewer_id = user_id_from_payload(current_user_payload)
    feedback = Feedback(
        text=review_in.feedback_text,
        reviewed_by=reviewer_id,
        reviewed_at=datetime.now(timezone.utc),
    )

    updated = await crud.review_submission(db, target_id, review_in.status, feedback)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
    logger.info(f"Admin {reviewer_id} marked submission {target_id} as {review_in.status}")
    return updated
