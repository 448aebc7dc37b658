# pte_portal/db/crud.py

# --- Core Imports ---
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument, ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, OperationFailure
import math
import uuid
from typing import List, Optional, Dict, Any, Tuple
from datetime import datetime, timezone
import logging

# --- Pydantic Models ---
from ..models.user import UserInDB, User
from ..models.task import TaskInDB, Task, TaskSummary, Assignment
from ..models.submission import SubmissionInDB, Submission, Feedback, StudentSummary
from ..models.material import MaterialInDB, Material
from ..models.enums import UserRole, SubmissionStatus
from ..services.task_rules import student_visibility_filter

# --- Collection Names ---
from .database import (
    USER_COLLECTION,
    TASK_COLLECTION,
    SUBMISSION_COLLECTION,
    MATERIAL_COLLECTION,
)

# --- Logging Setup ---
logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _page_bounds(page: int, limit: int) -> Tuple[int, int]:
    page = max(page, 1)
    limit = max(limit, 1)
    return (page - 1) * limit, limit


# --- Indexes ---
async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Creates the indexes the queries below rely on. Failures are logged, never raised."""
    specs = [
        (USER_COLLECTION, [("email", ASCENDING)], {"unique": True, "name": "email_unique"}),
        (USER_COLLECTION, [("role", ASCENDING), ("created_at", DESCENDING)], {"name": "role_created_at"}),
        (TASK_COLLECTION, [("is_active", ASCENDING), ("created_at", DESCENDING)], {"name": "active_created_at"}),
        (SUBMISSION_COLLECTION, [("student_id", ASCENDING), ("submitted_at", DESCENDING)], {"name": "student_submitted_at"}),
        (SUBMISSION_COLLECTION, [("task_id", ASCENDING)], {"name": "task_id"}),
        (MATERIAL_COLLECTION, [("type", ASCENDING), ("is_active", ASCENDING)], {"name": "type_active"}),
    ]
    for collection_name, keys, options in specs:
        try:
            await db[collection_name].create_index(keys, **options)
            logger.debug(f"Index '{options['name']}' ensured on '{collection_name}'.")
        except OperationFailure as e:
            logger.error(f"Could not create index '{options['name']}' on '{collection_name}': {e}")


# --- User CRUD Functions ---
async def get_user_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[UserInDB]:
    doc = await db[USER_COLLECTION].find_one({"email": email.strip().lower()})
    return UserInDB(**doc) if doc else None


async def create_user(db: AsyncIOMotorDatabase, user_in: UserInDB) -> Optional[UserInDB]:
    """
    Inserts a new account. Returns None when the email is already taken.

    The application-level check covers the common case; the unique index on
    `email` catches concurrent registrations.
    """
    collection = db[USER_COLLECTION]
    if await collection.count_documents({"email": user_in.email}, limit=1) > 0:
        logger.warning(f"Attempted to create a user with an existing email: {user_in.email}")
        return None

    doc = user_in.model_dump(by_alias=True)
    logger.info(f"Inserting new user {doc['_id']} with role '{doc['role']}'")
    try:
        await collection.insert_one(doc)
    except DuplicateKeyError as e:
        logger.warning(f"Database-level DuplicateKeyError for email '{user_in.email}': {e.details}")
        return None
    return user_in


async def record_login(db: AsyncIOMotorDatabase, user_id: uuid.UUID) -> Optional[datetime]:
    now = _now()
    result = await db[USER_COLLECTION].update_one(
        {"_id": user_id},
        {"$set": {"last_login_at": now}},
    )
    return now if result.matched_count else None


async def list_students(db: AsyncIOMotorDatabase) -> List[User]:
    cursor = db[USER_COLLECTION].find({"role": UserRole.STUDENT.value}).sort("created_at", DESCENDING)
    return [User(**doc) async for doc in cursor]


async def set_user_active(db: AsyncIOMotorDatabase, user_id: uuid.UUID, is_active: bool) -> Optional[User]:
    updated = await db[USER_COLLECTION].find_one_and_update(
        {"_id": user_id},
        {"$set": {"is_active": is_active, "updated_at": _now()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        logger.warning(f"User {user_id} not found for activation update.")
        return None
    return User(**updated)


async def find_invalid_student_ids(db: AsyncIOMotorDatabase, student_ids: List[uuid.UUID]) -> List[uuid.UUID]:
    """Ids from the list that do not belong to an existing student account."""
    if not student_ids:
        return []
    cursor = db[USER_COLLECTION].find(
        {"_id": {"$in": student_ids}, "role": UserRole.STUDENT.value},
        projection={"_id": 1},
    )
    found = {doc["_id"] async for doc in cursor}
    return [sid for sid in student_ids if sid not in found]


# --- Task CRUD Functions ---
async def list_tasks(db: AsyncIOMotorDatabase, student_id: Optional[uuid.UUID] = None) -> List[Task]:
    """Active tasks, newest first. With `student_id`, only tasks visible to that student."""
    query = student_visibility_filter(student_id) if student_id else {"is_active": True}
    cursor = db[TASK_COLLECTION].find(query).sort("created_at", DESCENDING)
    return [Task(**doc) async for doc in cursor]


async def get_active_task(db: AsyncIOMotorDatabase, task_id: uuid.UUID) -> Optional[Task]:
    doc = await db[TASK_COLLECTION].find_one({"_id": task_id, "is_active": True})
    return Task(**doc) if doc else None


async def create_task(db: AsyncIOMotorDatabase, task_in: TaskInDB) -> Task:
    doc = task_in.model_dump(by_alias=True)
    logger.info(f"Inserting task {doc['_id']} ('{doc['title']}') assigned as {doc['assignment']['mode']}")
    await db[TASK_COLLECTION].insert_one(doc)
    return Task(**doc)


async def replace_task(
    db: AsyncIOMotorDatabase,
    task_id: uuid.UUID,
    *,
    title: str,
    type: str,
    description: str,
    quantity: int,
    deadline: Optional[datetime],
    assignment: Assignment,
) -> Optional[Task]:
    """Full replacement of the editable task fields. Returns None if no active task matches."""
    update_data = {
        "title": title,
        "type": type,
        "description": description,
        "quantity": quantity,
        "deadline": deadline,
        "assignment": assignment.model_dump(),
        "updated_at": _now(),
    }
    updated = await db[TASK_COLLECTION].find_one_and_update(
        {"_id": task_id, "is_active": True},
        {"$set": update_data},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        logger.warning(f"Task {task_id} not found or inactive for update.")
        return None
    return Task(**updated)


async def soft_delete_task(db: AsyncIOMotorDatabase, task_id: uuid.UUID) -> bool:
    result = await db[TASK_COLLECTION].update_one(
        {"_id": task_id, "is_active": True},
        {"$set": {"is_active": False, "updated_at": _now()}},
    )
    return result.modified_count > 0


async def bulk_delete_tasks(
    db: AsyncIOMotorDatabase,
    task_ids: List[uuid.UUID],
    delete_submissions: bool = False,
) -> Tuple[int, int]:
    """Hard-deletes tasks (active or not). Returns (deleted tasks, deleted submissions)."""
    deleted_submissions = 0
    if delete_submissions:
        sub_result = await db[SUBMISSION_COLLECTION].delete_many({"task_id": {"$in": task_ids}})
        deleted_submissions = sub_result.deleted_count
    task_result = await db[TASK_COLLECTION].delete_many({"_id": {"$in": task_ids}})
    logger.info(f"Bulk deleted {task_result.deleted_count} tasks and {deleted_submissions} submissions.")
    return task_result.deleted_count, deleted_submissions


# --- Submission CRUD Functions ---
async def create_submission(db: AsyncIOMotorDatabase, submission_in: SubmissionInDB) -> Submission:
    doc = submission_in.model_dump(by_alias=True)
    logger.info(f"Inserting submission {doc['_id']} for task {doc['task_id']} with status '{doc['status']}'")
    await db[SUBMISSION_COLLECTION].insert_one(doc)
    return Submission(**doc)


async def get_task_summaries(db: AsyncIOMotorDatabase, task_ids: List[uuid.UUID]) -> Dict[uuid.UUID, TaskSummary]:
    """Title/type/deadline for each existing task id, soft-deleted ones included."""
    if not task_ids:
        return {}
    cursor = db[TASK_COLLECTION].find(
        {"_id": {"$in": list(set(task_ids))}},
        projection={"title": 1, "type": 1, "deadline": 1},
    )
    return {doc["_id"]: TaskSummary(**doc) async for doc in cursor}


async def get_student_summaries(db: AsyncIOMotorDatabase, student_ids: List[uuid.UUID]) -> Dict[uuid.UUID, StudentSummary]:
    if not student_ids:
        return {}
    cursor = db[USER_COLLECTION].find(
        {"_id": {"$in": list(set(student_ids))}},
        projection={"name": 1, "email": 1},
    )
    return {doc["_id"]: StudentSummary(**doc) async for doc in cursor}


async def list_submissions(
    db: AsyncIOMotorDatabase,
    student_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Dict[str, Any]:
    """
    One page of submissions, newest first, each with its task summary.

    Returns a dict shaped like SubmissionPage.
    """
    query: Dict[str, Any] = {}
    if student_id is not None:
        query["student_id"] = student_id
    if status is not None:
        query["status"] = status

    skip, limit = _page_bounds(page, limit)
    collection = db[SUBMISSION_COLLECTION]
    total = await collection.count_documents(query)
    cursor = collection.find(query).sort("submitted_at", DESCENDING).skip(skip).limit(limit)
    docs = [doc async for doc in cursor]

    summaries = await get_task_summaries(db, [doc["task_id"] for doc in docs])
    # Admin listings also show who submitted
    students = {}
    if student_id is None:
        students = await get_student_summaries(db, [doc["student_id"] for doc in docs])
    submissions = [
        Submission(**doc, task=summaries.get(doc["task_id"]), student=students.get(doc["student_id"]))
        for doc in docs
    ]

    logger.debug(f"Listed {len(submissions)} of {total} submissions for filter={query} page={page}")
    return {
        "submissions": submissions,
        "current_page": max(page, 1),
        "total_pages": math.ceil(total / limit) if total else 0,
        "total_submissions": total,
    }


async def review_submission(
    db: AsyncIOMotorDatabase,
    submission_id: uuid.UUID,
    status: str,
    feedback: Feedback,
) -> Optional[Submission]:
    """Overwrites status and feedback. Returns None if the submission does not exist."""
    updated = await db[SUBMISSION_COLLECTION].find_one_and_update(
        {"_id": submission_id},
        {"$set": {"status": status, "feedback": feedback.model_dump()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        logger.warning(f"Submission {submission_id} not found for review.")
        return None
    summaries = await get_task_summaries(db, [updated["task_id"]])
    return Submission(**updated, task=summaries.get(updated["task_id"]))


async def bulk_delete_submissions(db: AsyncIOMotorDatabase, submission_ids: List[uuid.UUID]) -> int:
    result = await db[SUBMISSION_COLLECTION].delete_many({"_id": {"$in": submission_ids}})
    logger.info(f"Bulk deleted {result.deleted_count} of {len(submission_ids)} requested submissions.")
    return result.deleted_count


# --- Material CRUD Functions ---
async def list_materials(db: AsyncIOMotorDatabase) -> List[Material]:
    cursor = db[MATERIAL_COLLECTION].find({"is_active": True}).sort("created_at", DESCENDING)
    return [Material(**doc) async for doc in cursor]


async def create_material(db: AsyncIOMotorDatabase, material_in: MaterialInDB) -> Material:
    doc = material_in.model_dump(by_alias=True)
    logger.info(f"Inserting material {doc['_id']} ('{doc['title']}')")
    await db[MATERIAL_COLLECTION].insert_one(doc)
    return Material(**doc)


async def replace_material(db: AsyncIOMotorDatabase, material_id: uuid.UUID, fields: Dict[str, Any]) -> Optional[Material]:
    """Full replacement of the editable material fields. Returns None if no active material matches."""
    update_data = {**fields, "updated_at": _now()}
    updated = await db[MATERIAL_COLLECTION].find_one_and_update(
        {"_id": material_id, "is_active": True},
        {"$set": update_data},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        logger.warning(f"Material {material_id} not found or inactive for update.")
        return None
    return Material(**updated)


async def soft_delete_material(db: AsyncIOMotorDatabase, material_id: uuid.UUID) -> bool:
    result = await db[MATERIAL_COLLECTION].update_one(
        {"_id": material_id, "is_active": True},
        {"$set": {"is_active": False, "updated_at": _now()}},
    )
    return result.modified_count > 0


# --- Dashboard Functions ---
async def get_admin_stats(db: AsyncIOMotorDatabase) -> Dict[str, int]:
    users = db[USER_COLLECTION]
    tasks = db[TASK_COLLECTION]
    submissions = db[SUBMISSION_COLLECTION]
    stats = {
        "total_students": await users.count_documents({"role": UserRole.STUDENT.value, "is_active": True}),
        "active_tasks": await tasks.count_documents({"is_active": True}),
        "pending_reviews": await submissions.count_documents({"status": SubmissionStatus.PENDING.value}),
        "total_submissions": await submissions.count_documents({}),
        "approved_submissions": await submissions.count_documents({"status": SubmissionStatus.APPROVED.value}),
        "rejected_submissions": await submissions.count_documents({"status": SubmissionStatus.REJECTED.value}),
    }
    logger.info(f"Admin dashboard stats calculated: {stats}")
    return stats


async def get_student_stats(db: AsyncIOMotorDatabase, student_id: uuid.UUID) -> Dict[str, int]:
    submissions = db[SUBMISSION_COLLECTION]
    stats = {
        "assigned_tasks": await db[TASK_COLLECTION].count_documents(student_visibility_filter(student_id)),
        "completed_tasks": await submissions.count_documents(
            {"student_id": student_id, "status": SubmissionStatus.APPROVED.value}
        ),
        "pending_tasks": await submissions.count_documents(
            {"student_id": student_id, "status": SubmissionStatus.PENDING.value}
        ),
        "rejected_tasks": await submissions.count_documents(
            {"student_id": student_id, "status": SubmissionStatus.REJECTED.value}
        ),
    }
    logger.info(f"Student dashboard stats calculated for {student_id}: {stats}")
    return stats
