# tests/conftest.py
import os

# Settings are read at import time, so the environment must be in place first.
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-pytest")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("FILE_STORAGE_BACKEND", "local")

import logging
import uuid
from datetime import datetime, timezone
from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from pytest_mock import MockerFixture
from unittest.mock import AsyncMock, MagicMock

from pte_portal.core.config import settings
from pte_portal.core.security import issue_token

logger = logging.getLogger(__name__)


# --- Fixtures ---

@pytest_asyncio.fixture(scope="function")
async def app(mocker: MockerFixture, tmp_path) -> AsyncGenerator[FastAPI, None]:
    """FastAPI app with the database lifecycle mocked and uploads directed at a temp dir."""
    logger.info("Mocking DB connect/disconnect for app fixture...")
    mock_client = MagicMock(name="mongo_client")
    mock_db = MagicMock(name="mongo_db")
    mocker.patch("pte_portal.main.connect_to_mongo", new_callable=AsyncMock, return_value=(mock_client, mock_db))
    mocker.patch("pte_portal.main.close_mongo_connection", return_value=None)
    mocker.patch("pte_portal.main.crud.ensure_indexes", new_callable=AsyncMock, return_value=None)
    mocker.patch("pte_portal.main.close_blob_service_client", new_callable=AsyncMock, return_value=None)

    mocker.patch.object(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    mocker.patch.object(settings, "DOWNLOAD_SEARCH_DIRS", [str(tmp_path / "tmp")])

    from pte_portal.main import app as fastapi_app

    async with LifespanManager(fastapi_app, startup_timeout=15, shutdown_timeout=15):
        yield fastapi_app


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    # Unhandled errors must come back as 500 responses, not propagate into the test
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


@pytest.fixture
def api_prefix() -> str:
    return settings.API_V1_PREFIX


@pytest.fixture
def admin_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def student_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def admin_headers(admin_id: uuid.UUID) -> Dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(admin_id, 'admin')}"}


@pytest.fixture
def student_headers(student_id: uuid.UUID) -> Dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(student_id, 'student')}"}


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc)
