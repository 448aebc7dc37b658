# pte_portal/core/config.py
import os
import logging
import tempfile
from dotenv import load_dotenv
from pathlib import Path
from typing import Optional, List
from pydantic_settings import BaseSettings

# --- Path Setup & .env Loading ---
# .env lives in the backend project root, two levels up from core
BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_PATH = BASE_DIR / '.env'

if ENV_PATH.is_file():
    load_dotenv(dotenv_path=ENV_PATH)
else:
    # Logger is not configured yet at this point
    print(f"Warning: .env file not found at {ENV_PATH}. Relying on system environment variables.")


class ConfigurationError(RuntimeError):
    """Raised when mandatory configuration is missing or invalid."""
    pass


# --- Pydantic Settings Class ---
class Settings(BaseSettings):
    PROJECT_NAME: str = "PTE Prep Portal"
    DEBUG: bool = False
    VERSION: str = "0.1.0"
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    # Database Settings (MONGODB_URL is mandatory, checked at startup)
    MONGODB_URL: Optional[str] = None
    DB_NAME: str = "pte_portal"
    MONGODB_TLS: bool = False

    # Token Settings (JWT_SECRET_KEY is mandatory, checked at startup)
    JWT_SECRET_KEY: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12

    # Bootstrap admin used by /auth/seed-admin
    DEFAULT_ADMIN_NAME: str = "Default Admin"
    DEFAULT_ADMIN_EMAIL: Optional[str] = None
    DEFAULT_ADMIN_PASSWORD: Optional[str] = None

    # File storage
    FILE_STORAGE_BACKEND: str = "local"  # "local" or "blob"
    UPLOAD_DIR: str = str(BASE_DIR / "uploads")
    DOWNLOAD_SEARCH_DIRS: List[str] = [tempfile.gettempdir()]

    # Azure Blob Storage Settings
    AZURE_BLOB_CONNECTION_STRING: Optional[str] = None
    AZURE_BLOB_CONTAINER_NAME: str = "pte-files"
    BLOB_SAS_EXPIRY_MINUTES: int = 15


settings = Settings()

# --- Logging Setup ---
LOG_LEVEL_NAME: str = os.getenv("LOG_LEVEL", "INFO").upper()
if settings.DEBUG:
    LOG_LEVEL_NAME = "DEBUG"

ACTUAL_LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)

logging.basicConfig(
    level=ACTUAL_LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logging.getLogger('uvicorn').setLevel(logging.WARNING)
logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
logging.getLogger('fastapi').setLevel(logging.INFO if settings.DEBUG else logging.WARNING)
logging.getLogger('motor').setLevel(logging.WARNING)
logging.getLogger('pymongo').setLevel(logging.WARNING)
logging.getLogger('azure').setLevel(logging.WARNING)
logging.getLogger('passlib').setLevel(logging.ERROR)

logger = logging.getLogger(__name__)


def validate_required_settings(current: Optional[Settings] = None) -> None:
    """
    Fails fast when mandatory configuration is absent.

    The database URL and the token signing secret have no fallback values.
    """
    current = current or settings
    missing = [
        name for name in ("MONGODB_URL", "JWT_SECRET_KEY")
        if not getattr(current, name)
    ]
    if missing:
        for name in missing:
            logger.critical(f"CRITICAL: {name} environment variable is not set.")
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    if current.FILE_STORAGE_BACKEND not in ("local", "blob"):
        raise ConfigurationError(
            f"FILE_STORAGE_BACKEND must be 'local' or 'blob', got '{current.FILE_STORAGE_BACKEND}'"
        )
    if current.FILE_STORAGE_BACKEND == "blob" and not current.AZURE_BLOB_CONNECTION_STRING:
        logger.warning("FILE_STORAGE_BACKEND is 'blob' but AZURE_BLOB_CONNECTION_STRING is not set. Blob uploads will fail.")
    if not current.DEFAULT_ADMIN_EMAIL or not current.DEFAULT_ADMIN_PASSWORD:
        logger.warning("DEFAULT_ADMIN_EMAIL/DEFAULT_ADMIN_PASSWORD not set. /auth/seed-admin is disabled.")


# --- Log loaded settings (never the secrets themselves) ---
if settings.DEBUG:
    logger.debug(f"PROJECT_NAME: {settings.PROJECT_NAME}")
    logger.debug(f"API_V1_PREFIX: {settings.API_V1_PREFIX}")
    logger.debug(f"DB_NAME: {settings.DB_NAME}")
    logger.debug(f"FILE_STORAGE_BACKEND: {settings.FILE_STORAGE_BACKEND}")
    logger.debug(f"UPLOAD_DIR: {settings.UPLOAD_DIR}")
    logger.debug(f"MONGODB_URL Set: {'Yes' if settings.MONGODB_URL else 'No - CRITICAL'}")
    logger.debug(f"JWT_SECRET_KEY Set: {'Yes' if settings.JWT_SECRET_KEY else 'No - CRITICAL'}")

# Module-level aliases used by main.py
PROJECT_NAME = settings.PROJECT_NAME
VERSION = settings.VERSION
API_V1_PREFIX = settings.API_V1_PREFIX
