# pte_portal/main.py
import logging
import psutil # For system metrics in health check
import time   # For uptime calculation
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Dict, Any
from datetime import datetime, timedelta, timezone

from .core.config import settings, validate_required_settings, PROJECT_NAME, API_V1_PREFIX, VERSION
from .db.database import connect_to_mongo, close_mongo_connection, check_database_health
from .db import crud
from .services.blob_storage import close_blob_service_client

# Import all endpoint routers
from .api.v1.endpoints.auth import router as auth_router
from .api.v1.endpoints.users import router as users_router
from .api.v1.endpoints.tasks import router as tasks_router
from .api.v1.endpoints.submissions import router as submissions_router
from .api.v1.endpoints.materials import router as materials_router
from .api.v1.endpoints.files import router as files_router
from .api.v1.endpoints.dashboard import router as dashboard_router

logger = logging.getLogger(__name__)

# Track application start time for uptime calculation
APP_START_TIME = time.time()

app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    description="API for PTE exam preparation: tasks, submissions, review and learning materials",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)
app.state.mongo_client = None
app.state.db = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Event Handlers for DB Connection ---
@app.on_event("startup")
async def startup_event():
    """Validate configuration, connect to MongoDB and ensure indexes."""
    logger.info("Executing startup event: Validating configuration...")
    validate_required_settings()

    logger.info("Connecting to database...")
    client, db = await connect_to_mongo()
    app.state.mongo_client = client
    app.state.db = db
    logger.info("Startup event: Database connection successful.")

    logger.info("Ensuring database indexes...")
    await crud.ensure_indexes(db)
    logger.info("Database indexes ensured.")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Executing shutdown event...")
    await close_blob_service_client()
    close_mongo_connection(app.state.mongo_client)
    app.state.mongo_client = None
    app.state.db = None


# --- Global Exception Handlers ---
# Every error body has the shape {"message": "..."} plus optional extra fields.
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        content = dict(exc.detail)
        content.setdefault("message", "Request failed")
    else:
        content = {"message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    parts = []
    for error in errors:
        location = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    logger.info(f"Request validation failed on {request.method} {request.url.path}: {parts}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "; ".join(parts) or "Invalid request"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


# --- API Endpoints ---
@app.get("/", tags=["Root"], include_in_schema=False)
async def read_root():
    """Root endpoint welcome message."""
    return {"message": f"Welcome to {PROJECT_NAME}"}


@app.get("/health", status_code=200, tags=["Health Check"])
async def health_check() -> Dict[str, Any]:
    """
    Comprehensive health check endpoint that verifies:
    - Application status and metrics (uptime, memory)
    - Database connectivity and collections
    """
    db_health = await check_database_health(app.state.db)

    process = psutil.Process()
    memory_info = process.memory_info()

    uptime_seconds = time.time() - APP_START_TIME
    uptime = str(timedelta(seconds=int(uptime_seconds)))

    health_info = {
        "status": "OK",
        "application": {
            "name": PROJECT_NAME,
            "version": VERSION,
            "status": "OK",
            "uptime": uptime,
            "memory_usage": {
                "rss_bytes": memory_info.rss,
                "vms_bytes": memory_info.vms,
                "percent": f"{process.memory_percent():.2f}%"
            }
        },
        "database": db_health,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

    if db_health.get("status") == "ERROR":
        health_info["status"] = "ERROR"
    elif db_health.get("status") == "WARNING":
        health_info["status"] = "WARNING"

    return health_info


# --- Liveness and Readiness Probes ---
@app.get("/healthz", tags=["Probes"], status_code=status.HTTP_200_OK)
async def liveness_probe():
    """Liveness probe: Checks if the application process is running and responsive."""
    return {"status": "live"}


@app.get("/readyz", tags=["Probes"])
async def readiness_probe(response: Response):
    """Readiness probe: ready once the database answers. Missing collections do not block readiness."""
    db_health = await check_database_health(app.state.db)
    if db_health.get("status") in ("OK", "WARNING"):
        response.status_code = status.HTTP_200_OK
        return {"status": "ready", "database": db_health}
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "not_ready", "database": db_health}


# --- Include API Routers ---
app.include_router(auth_router, prefix=API_V1_PREFIX)
app.include_router(users_router, prefix=API_V1_PREFIX)
app.include_router(tasks_router, prefix=API_V1_PREFIX)
app.include_router(submissions_router, prefix=API_V1_PREFIX)
app.include_router(materials_router, prefix=API_V1_PREFIX)
app.include_router(files_router, prefix=API_V1_PREFIX)
app.include_router(dashboard_router, prefix=API_V1_PREFIX)
