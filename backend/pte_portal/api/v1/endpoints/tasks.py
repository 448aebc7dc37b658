# pte_portal/api/v1/endpoints/tasks.py

import uuid
import logging
from typing import List, Dict, Any
from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ....db import crud
from ....models.enums import UserRole, AssignmentMode
from ....models.task import (
    Task,
    TaskInDB,
    TaskWrite,
    Assignment,
    TaskBulkDeleteRequest,
    TaskBulkDeleteResponse,
)
from ....core.security import get_current_user_payload
from ....services.task_rules import resolve_assignment
from ...deps import get_db, require_admin, user_id_from_payload, parse_object_id, parse_id_list

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tasks",
    tags=["Tasks"]
)


# --- Helpers ---

def _require_task_fields(task_in: TaskWrite) -> None:
    if not task_in.title or not task_in.type or not task_in.description:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title, type, and description are required",
        )


async def _checked_assignment(db: AsyncIOMotorDatabase, task_in: TaskWrite) -> Assignment:
    """Resolves the assignment and verifies every listed id is an existing student."""
    assignment = resolve_assignment(task_in.assign_to_all, task_in.assigned_to)
    if assignment.mode == AssignmentMode.SPECIFIC.value:
        invalid = await crud.find_invalid_student_ids(db, assignment.student_ids)
        if invalid:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Some assigned students do not exist",
                    "invalid_ids": [str(i) for i in invalid],
                },
            )
    return assignment


# === Task API Endpoints ===

@router.get(
    "",
    response_model=List[Task],
    status_code=status.HTTP_200_OK,
    summary="List active tasks",
    description="Admins see every active task. Students see broadcast tasks and tasks assigned to them. Newest first."
)
async def read_tasks(
    current_user_payload: Dict[str, Any] = Depends(get_current_user_payload),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if current_user_payload.get("role") == UserRole.ADMIN.value:
        return await crud.list_tasks(db)
    return await crud.list_tasks(db, student_id=user_id_from_payload(current_user_payload))


@router.post(
    "",
    response_model=Task,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task (Admin)",
)
async def create_task(
    task_in: TaskWrite,
    current_user_payload: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    _require_task_fields(task_in)
    admin_id = user_id_from_payload(current_user_payload)
    assignment = await _checked_assignment(db, task_in)

    task_doc = TaskInDB(
        title=task_in.title,
        type=task_in.type,
        description=task_in.description,
        quantity=task_in.quantity,
        deadline=task_in.deadline,
        assignment=assignment,
        created_by=admin_id,
    )
    created = await crud.create_task(db, task_doc)
    logger.info(f"Admin {admin_id} created task {created.id} ({assignment.mode})")
    return created


@router.post(
    "/bulk-delete",
    response_model=TaskBulkDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Permanently delete several tasks (Admin)",
    description="Hard-deletes the listed tasks, active or not. With delete_submissions=true their submissions are removed too."
)
async def bulk_delete_tasks(
    request_in: TaskBulkDeleteRequest,
    current_user_payload: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    task_ids = parse_id_list(request_in.task_ids, "task ids")
    deleted, deleted_submissions = await crud.bulk_delete_tasks(
        db, task_ids, delete_submissions=request_in.delete_submissions
    )
    logger.info(
        f"Admin {current_user_payload.get('sub')} bulk deleted {deleted} tasks "
        f"(submissions removed: {deleted_submissions})"
    )
    return TaskBulkDeleteResponse(
        message=f"Successfully deleted {deleted} task(s)",
        deleted_count=deleted,
        deleted_submissions_count=deleted_submissions,
        delete_submissions=request_in.delete_submissions,
    )


@router.put(
    "/{task_id}",
    response_model=Task,
    status_code=status.HTTP_200_OK,
    summary="Replace a task (Admin)",
    description="Full replacement: optional fields left out of the body return to their defaults."
)
async def update_task(
    task_id: str,
    task_in: TaskWrite,
    current_user_payload: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    target_id = parse_object_id(task_id, "task id")
    _require_task_fields(task_in)
    assignment = await _checked_assignment(db, task_in)

    updated = await crud.replace_task(
        db,
        target_id,
        title=task_in.title,
        type=task_in.type,
        description=task_in.description,
        quantity=task_in.quantity,
        deadline=task_in.deadline,
        assignment=assignment,
    )
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    logger.info(f"Admin {current_user_payload.get('sub')} replaced task {target_id}")
    return updated


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_200_OK,
    summary="Soft-delete a task (Admin)",
    description="Hides the task from every listing. Its submissions are kept."
)
async def delete_task(
    task_id: str,
    current_user_payload: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    target_id: uuid.UUID = parse_object_id(task_id, "task id")
    if not await crud.soft_delete_task(db, target_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    logger.info(f"Admin {current_user_payload.get('sub')} soft-deleted task {target_id}")
    return {"message": "Task deleted successfully"}
