# pte_portal/core/security.py
"""
Security module for password credentials and portal access tokens.

Provides functionality for:
- bcrypt password hashing and verification (passlib CryptContext).
- HS256 JWT issue and validation (python-jose), carrying user id and role.
- Bearer token extraction from the Authorization header.
- FastAPI dependency returning the validated token payload.
- Custom exceptions for specific security errors.

Example Usage in Endpoints:
    ```python
    from fastapi import APIRouter, Depends
    from typing import Dict, Any
    from pte_portal.core.security import get_current_user_payload

    router = APIRouter()

    @router.get("/protected-resource")
    async def get_protected_resource(
        payload: Dict[str, Any] = Depends(get_current_user_payload)
    ):
        return {"user_id": payload.get("sub"), "role": payload.get("role")}
    ```
"""

import logging
from typing import Dict, Any, Optional
from datetime import datetime, timedelta, timezone

# --- JOSE & JWT Imports ---
from jose import jwt, exceptions as jose_exceptions

# --- Password Hashing ---
from passlib.context import CryptContext

# --- FastAPI Imports ---
from fastapi import HTTPException, Request, status

# --- Config Imports ---
from .config import settings, ConfigurationError
from ..models.enums import UserRole

logger = logging.getLogger(__name__)


# --- Custom Exceptions ---
class SecurityError(Exception):
    """Base class for security-related exceptions."""
    pass

class TokenValidationError(SecurityError):
    """Raised when token validation fails (expiry, signature, claims, etc.)."""
    pass

class SigningKeyMissingError(SecurityError, ConfigurationError):
    """Raised when a token operation is attempted without JWT_SECRET_KEY."""
    pass


# --- Password Hashing ---
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def hash_password(password: str) -> str:
    """Returns a salted bcrypt hash of the password."""
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: Optional[str]) -> bool:
    """Constant-time comparison of a password against a stored hash. Malformed hashes never match."""
    if not password or not hashed_password:
        return False
    try:
        return pwd_context.verify(password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.warning(f"Password verification failed on malformed hash: {e}")
        return False


# --- Token Issue & Validation ---

def _signing_key() -> str:
    key = settings.JWT_SECRET_KEY
    if not key:
        logger.critical("JWT_SECRET_KEY is not configured. Cannot sign or verify tokens.")
        raise SigningKeyMissingError("JWT_SECRET_KEY is not configured.")
    return key


def issue_token(user_id: Any, role: str, now: Optional[datetime] = None) -> str:
    """
    Creates a signed access token for the given user.

    Claims: `sub` (user id as string), `role`, `iat`, and `exp`
    (ACCESS_TOKEN_EXPIRE_DAYS after `now`).

    Raises:
        SigningKeyMissingError: If JWT_SECRET_KEY is not set.
    """
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role.value if isinstance(role, UserRole) else str(role),
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)).timestamp()),
    }
    return jwt.encode(claims, _signing_key(), algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decodes and validates a token.

    Returns:
        The decoded payload.

    Raises:
        TokenValidationError: On bad signature, expiry, or missing claims.
        SigningKeyMissingError: If JWT_SECRET_KEY is not set.
    """
    key = _signing_key()
    try:
        payload = jwt.decode(token, key, algorithms=[settings.JWT_ALGORITHM])
    except jose_exceptions.ExpiredSignatureError:
        raise TokenValidationError("Token validation failed: Expired signature.")
    except jose_exceptions.JWTClaimsError as e:
        raise TokenValidationError(f"Token validation failed: Invalid claims - {e}")
    except jose_exceptions.JWTError as e:
        raise TokenValidationError(f"Token validation failed: Invalid token - {e}")

    if not payload.get("sub"):
        raise TokenValidationError("Token validation failed: 'sub' claim missing.")
    if payload.get("role") not in (UserRole.STUDENT.value, UserRole.ADMIN.value):
        raise TokenValidationError(f"Token validation failed: unknown role '{payload.get('role')}'.")
    return payload


def verify_token(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Returns the payload of a valid token, or None for any failure."""
    if not token:
        return None
    try:
        return decode_token(token)
    except TokenValidationError as e:
        logger.info(f"Rejected token: {e}")
        return None
    except SigningKeyMissingError:
        return None


def extract_bearer_token(request: Request) -> Optional[str]:
    """Reads `Authorization: Bearer <token>`. Returns None when absent or malformed."""
    header = request.headers.get("Authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


# --- FastAPI Dependency for Authentication ---

async def get_current_user_payload(request: Request) -> Dict[str, Any]:
    """
    FastAPI dependency returning the validated token payload.

    Raises:
        HTTPException(401): "No token provided" when the header is absent,
                            "Invalid token" when validation fails.
    """
    token = extract_bearer_token(request)
    if token is None:
        logger.warning("Authentication attempt failed: No token provided.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload
