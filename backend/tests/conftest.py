"""
School Registry Backend: Test Configuration (conftest.py)
===========================================================

What:  Shared pytest fixtures for the entire test suite.

Fixture Hierarchy (all function-scoped):
    ├── mock_database:     Mock Database handle (no real DB needed)
    ├── mock_images:       Mock ImageStorage for service tests
    ├── image_storage:     Real ImageStorage over a temp directory
    ├── png_bytes:         Tiny PNG payload for upload tests
    ├── app_settings:      Settings pointing at a temp SQLite file
    ├── test_app:          Application built from app_settings
    └── test_client:       HTTPX AsyncClient with startup/shutdown run
"""

import io
import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.datastructures import Headers, UploadFile

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Set before any school_registry import so the module-level settings and app
# never point at a real database.
_test_root = tempfile.mkdtemp(prefix="school_registry_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_test_root}/module.db"
os.environ["DB_SSL_REQUIRED"] = "false"
os.environ["IMAGE_DIR"] = os.path.join(_test_root, "schoolImages")
os.environ["LOG_LEVEL"] = "WARNING"

from school_registry.config import Settings  # noqa: E402
from school_registry.main import create_app, lifespan  # noqa: E402
from school_registry.services.image_storage import ImageStorage  # noqa: E402

MAX_IMAGE_SIZE = 5 * 1024 * 1024


def make_upload(filename: str, content: bytes, content_type: str) -> UploadFile:
    """Build an UploadFile the way the multipart parser would."""
    return UploadFile(
        file=io.BytesIO(content),
        size=len(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def mock_database():
    """
    A stand-in for the Database handle.

    Usage:
        mock_database.execute.return_value = [{"id": 1, ...}]
    """
    database = MagicMock()
    database.execute = AsyncMock()
    database.init_schema = AsyncMock()
    database.ping = AsyncMock(return_value=True)
    database.dispose = AsyncMock()
    return database


@pytest.fixture
def mock_images():
    images = MagicMock()
    images.save = AsyncMock(return_value=None)
    images.remove = AsyncMock()
    return images


@pytest.fixture
def image_storage(tmp_path):
    return ImageStorage(image_dir=str(tmp_path / "schoolImages"), max_size=MAX_IMAGE_SIZE)


@pytest.fixture
def png_bytes():
    """PNG signature + IHDR chunk header; enough to look like a PNG."""
    return (
        b"\x89PNG\r\n\x1a\n"
        b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
        b"\x1f\x15\xc4\x89"
    )


@pytest.fixture
def school_form():
    return {
        "name": "Green Valley High School",
        "address": "12 Park Street",
        "city": "Pune",
        "state": "Maharashtra",
        "contact": "9876543210",
        "email_id": "office@greenvalley.edu",
    }


@pytest.fixture
def app_settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'schools.db'}",
        db_ssl_required=False,
        image_dir=str(tmp_path / "schoolImages"),
        log_level="WARNING",
    )


@pytest.fixture
def test_app(app_settings):
    return create_app(app_settings)


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    ASGITransport does not send lifespan events, so the lifespan context is
    entered here: the schools table exists before the first request.
    """
    async with lifespan(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
