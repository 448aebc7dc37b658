# pte_portal/db/database.py
import motor.motor_asyncio
import logging
from typing import Optional, Dict, Any, Tuple
from datetime import datetime, timezone

from ..core.config import settings, ConfigurationError, PROJECT_NAME

logger = logging.getLogger(f"{PROJECT_NAME}.db")

USER_COLLECTION = "users"
TASK_COLLECTION = "tasks"
SUBMISSION_COLLECTION = "submissions"
MATERIAL_COLLECTION = "materials"

EXPECTED_COLLECTIONS = [
    USER_COLLECTION,
    TASK_COLLECTION,
    SUBMISSION_COLLECTION,
    MATERIAL_COLLECTION,
]


async def connect_to_mongo() -> Tuple[motor.motor_asyncio.AsyncIOMotorClient, motor.motor_asyncio.AsyncIOMotorDatabase]:
    """
    Creates the process-wide client and verifies the server is reachable.

    The caller owns the returned client and must pass it to close_mongo_connection()
    on shutdown.

    Raises:
        ConfigurationError: If MONGODB_URL is not configured.
        Exception: Any driver error from the initial ping is propagated.
    """
    if not settings.MONGODB_URL:
        logger.error("FATAL ERROR: MONGODB_URL is not configured.")
        raise ConfigurationError("MONGODB_URL is not configured.")

    logger.info(f"Attempting to connect to MongoDB database: '{settings.DB_NAME}'...")
    client = motor.motor_asyncio.AsyncIOMotorClient(
        settings.MONGODB_URL,
        tls=settings.MONGODB_TLS,
        serverSelectionTimeoutMS=10000,
        maxPoolSize=10,
        tz_aware=True,
        uuidRepresentation='standard',
        appname=PROJECT_NAME,
    )
    try:
        await client.admin.command('ping')
    except Exception as e:
        logger.error(f"ERROR: Could not connect to MongoDB: {e}", exc_info=True)
        client.close()
        raise
    logger.info("MongoDB server ping successful.")

    db = client[settings.DB_NAME]
    logger.info(f"Successfully connected to MongoDB database: '{settings.DB_NAME}'")
    return client, db


def close_mongo_connection(client: Optional[motor.motor_asyncio.AsyncIOMotorClient]) -> None:
    if client is None:
        logger.info("No active MongoDB connection to close.")
        return
    logger.info("Closing MongoDB connection...")
    client.close()
    logger.info("MongoDB connection closed.")


async def check_database_health(db: Optional[motor.motor_asyncio.AsyncIOMotorDatabase]) -> Dict[str, Any]:
    """
    Performs a health check on the database connection and returns detailed status information.

    Returns:
        Dict containing status, connection details, collection info, errors, timestamp.
    """
    health_info = {
        "status": "OK",
        "connected": False,
        "collections": [],
        "expected_collections": EXPECTED_COLLECTIONS,
        "missing_collections": [],
        "error": None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if db is None:
        health_info.update({
            "status": "ERROR",
            "error": "Database instance not initialized (connection likely failed on startup)"
        })
        return health_info

    try:
        await db.client.admin.command('ping')
        health_info["connected"] = True

        collections = await db.list_collection_names()
        health_info["collections"] = collections

        # Collections are created lazily on first insert, so a gap is only a warning
        missing = [col for col in EXPECTED_COLLECTIONS if col not in collections]
        if missing:
            health_info["missing_collections"] = missing
            health_info["status"] = "WARNING"
            logger.warning(f"Database health check WARNING: Missing expected collections: {missing}")

        return health_info

    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        health_info.update({
            "status": "ERROR",
            "connected": False,
            "error": str(e)
        })
        return health_info
