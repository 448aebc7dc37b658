# pte_portal/api/v1/endpoints/dashboard.py

import logging
from typing import Dict, Any, Union
from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ....db import crud
from ....models.enums import UserRole
from ....models.dashboard import AdminDashboardStats, StudentDashboardStats
from ....core.security import get_current_user_payload
from ...deps import get_db, user_id_from_payload

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"]
)


@router.get(
    "/stats",
    response_model=Union[AdminDashboardStats, StudentDashboardStats],
    status_code=status.HTTP_200_OK,
    summary="Get dashboard statistics",
    description="Admins receive portal-wide counts; students receive counts for their own tasks and submissions."
)
async def get_dashboard_stats(
    current_user_payload: Dict[str, Any] = Depends(get_current_user_payload),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    user_id = user_id_from_payload(current_user_payload)
    logger.info(f"Fetching dashboard stats for user {user_id} ({current_user_payload.get('role')})")

    if current_user_payload.get("role") == UserRole.ADMIN.value:
        return AdminDashboardStats(**await crud.get_admin_stats(db))
    return StudentDashboardStats(**await crud.get_student_stats(db, user_id))
