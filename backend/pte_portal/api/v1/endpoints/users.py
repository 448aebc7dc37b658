# pte_portal/api/v1/endpoints/users.py

import logging
from typing import List, Dict, Any
from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ....db import crud
from ....models.user import User, UserStatusUpdate
from ...deps import get_db, require_admin, parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Users"]
)


@router.get(
    "",
    response_model=List[User],
    status_code=status.HTTP_200_OK,
    summary="List student accounts (Admin)",
    description="Returns every student account, newest first. Password hashes are never included."
)
async def read_students(
    current_user_payload: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    logger.info(f"Admin {current_user_payload.get('sub')} listing students")
    return await crud.list_students(db)


@router.patch(
    "/{user_id}",
    response_model=User,
    status_code=status.HTTP_200_OK,
    summary="Activate or deactivate an account (Admin)",
)
async def update_user_status(
    user_id: str,
    status_in: UserStatusUpdate,
    current_user_payload: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    target_id = parse_object_id(user_id, "user id")
    logger.info(f"Admin {current_user_payload.get('sub')} setting is_active={status_in.is_active} on user {target_id}")

    updated = await crud.set_user_active(db, target_id, status_in.is_active)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return updated
