# pte_portal/api/deps.py
import logging
import uuid
from typing import Any, Dict, List

from fastapi import Depends, HTTPException, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.security import get_current_user_payload
from ..models.enums import UserRole

logger = logging.getLogger(__name__)


async def get_db(request: Request) -> AsyncIOMotorDatabase:
    """Database handle created at startup and stored on app.state."""
    db = getattr(request.app.state, "db", None)
    if db is None:
        logger.error("Database handle requested but no connection is available.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not available",
        )
    return db


async def require_admin(
    payload: Dict[str, Any] = Depends(get_current_user_payload)
) -> Dict[str, Any]:
    if payload.get("role") != UserRole.ADMIN.value:
        logger.warning(f"User {payload.get('sub')} with role '{payload.get('role')}' denied admin route.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
    return payload


async def require_student(
    payload: Dict[str, Any] = Depends(get_current_user_payload)
) -> Dict[str, Any]:
    if payload.get("role") != UserRole.STUDENT.value:
        logger.warning(f"User {payload.get('sub')} with role '{payload.get('role')}' denied student route.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
    return payload


def user_id_from_payload(payload: Dict[str, Any]) -> uuid.UUID:
    """The `sub` claim as a UUID. A token carrying anything else is treated as invalid."""
    try:
        return uuid.UUID(str(payload.get("sub")))
    except ValueError:
        logger.warning(f"Token 'sub' claim is not a valid user id: {payload.get('sub')!r}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def parse_object_id(value: str, label: str = "id") -> uuid.UUID:
    """Path/body id to UUID, or 400 when malformed."""
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {label}")


def parse_id_list(values: Any, label: str) -> List[uuid.UUID]:
    """
    Validates a list of ids for bulk operations.

    Raises HTTPException(400) when the list is empty or contains malformed ids;
    the error body then carries `invalid_ids`.
    """
    if not isinstance(values, list) or not values:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{label} must be a non-empty array",
        )
    parsed, invalid = [], []
    for value in values:
        try:
            parsed.append(uuid.UUID(str(value)))
        except ValueError:
            invalid.append(value)
    if invalid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": f"Invalid {label}", "invalid_ids": invalid},
        )
    return parsed

