# pte_portal/api/v1/endpoints/auth.py

import logging
from typing import Union
from fastapi import APIRouter, Depends, HTTPException, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.config import settings
from ....core.security import (
    hash_password,
    verify_password,
    issue_token,
    verify_token,
    extract_bearer_token,
)
from ....db import crud
from ....models.enums import UserRole
from ....models.user import (
    RegisterRequest,
    LoginRequest,
    UserInDB,
    User,
    AuthResponse,
    AccountCreatedResponse,
)
from ...deps import get_db

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Auth"]
)


def _require_admin_caller(request: Request) -> str:
    """Only an existing admin may create another admin. Returns the caller's id."""
    token = extract_bearer_token(request)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Only existing admins can create admin accounts",
        )
    payload = verify_token(token)
    if payload is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if payload.get("role") != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only existing admins can create admin accounts",
        )
    return payload["sub"]


@router.post(
    "/register",
    response_model=Union[AuthResponse, AccountCreatedResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register a student, or create an admin account",
    description="Public student self-registration returning a token. Creating an admin requires an admin bearer token and returns no token."
)
async def register(
    user_in: RegisterRequest,
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if not user_in.name or not user_in.name.strip() or not user_in.email or not user_in.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name, email, and password are required",
        )

    creator_id = None
    if user_in.role == UserRole.ADMIN:
        creator_id = _require_admin_caller(request)

    user_doc = UserInDB(
        name=user_in.name.strip(),
        email=user_in.email,
        role=user_in.role,
        hashed_password=hash_password(user_in.password),
    )
    created = await crud.create_user(db, user_doc)
    if created is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists with this email",
        )

    public_user = User(**created.model_dump(by_alias=True))
    if created.role == UserRole.ADMIN.value:
        logger.info(f"Admin {creator_id} created admin account {created.id}")
        return AccountCreatedResponse(message="Admin account created successfully", user=public_user)

    logger.info(f"Student {created.id} registered")
    return AuthResponse(token=issue_token(created.id, created.role), user=public_user)


@router.post(
    "/login",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Exchange email and password for a token",
)
async def login(
    credentials: LoginRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if not credentials.email or not credentials.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")

    user = await crud.get_user_by_email(db, credentials.email)
    if user is None or not verify_password(credentials.password, user.hashed_password):
        logger.warning(f"Failed login attempt for {credentials.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        logger.warning(f"Login refused for deactivated account {user.id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")

    user.last_login_at = await crud.record_login(db, user.id)
    logger.info(f"User {user.id} logged in as {user.role}")
    return AuthResponse(
        token=issue_token(user.id, user.role),
        user=User(**user.model_dump(by_alias=True)),
    )


@router.post(
    "/seed-admin",
    response_model=AccountCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create the bootstrap admin account",
    description="Creates the admin configured by DEFAULT_ADMIN_EMAIL/DEFAULT_ADMIN_PASSWORD. Returns 409 if it already exists."
)
async def seed_admin(db: AsyncIOMotorDatabase = Depends(get_db)):
    if not settings.DEFAULT_ADMIN_EMAIL or not settings.DEFAULT_ADMIN_PASSWORD:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Default admin is not configured",
        )

    if await crud.get_user_by_email(db, settings.DEFAULT_ADMIN_EMAIL) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Default admin already exists")

    admin_doc = UserInDB(
        name=settings.DEFAULT_ADMIN_NAME,
        email=settings.DEFAULT_ADMIN_EMAIL,
        role=UserRole.ADMIN,
        hashed_password=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
    )
    created = await crud.create_user(db, admin_doc)
    if created is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Default admin already exists")

    logger.info(f"Default admin {created.id} created")
    return AccountCreatedResponse(
        message="Default admin created successfully",
        user=User(**created.model_dump(by_alias=True)),
    )
