"""
Shared fixtures for School Directory tests.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from school_directory.core.config import Settings
from school_directory.core.storage import ImageStore, ImageUpload
from school_directory.main import create_app
from school_directory.modules.schools.schemas import (
    JsonCreateRequest,
    MultipartCreateRequest,
    SchoolFields,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def database_url(tmp_path):
    """File-backed SQLite database, so reconnects keep the data."""
    return f"sqlite+aiosqlite:///{tmp_path / 'schools.db'}"


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "schoolImages"


@pytest.fixture
def settings(database_url, upload_dir):
    """Upload-mode settings pointing at the temporary database and directory."""
    return Settings(
        _env_file=None,
        python_env="test",
        database_url=database_url,
        image_mode="upload",
        upload_dir=str(upload_dir),
    )


@pytest.fixture
def default_mode_settings(settings):
    return settings.model_copy(update={"image_mode": "default"})


@pytest.fixture
def client(settings):
    """Test client for an upload-mode application."""
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def default_mode_client(default_mode_settings):
    """Test client for a default-image-mode application."""
    with TestClient(create_app(default_mode_settings)) as test_client:
        yield test_client


@pytest.fixture
def mock_db():
    """Create a mock database gateway."""
    db = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture
def mock_images():
    """Create a mock image store."""
    images = MagicMock(spec=ImageStore)
    images.save = AsyncMock(return_value="1700000000000_photo.png")
    images.fetch = AsyncMock()
    return images


@pytest.fixture
def school_data():
    """The Oak Elementary registration used throughout the tests."""
    return {
        "name": "Oak Elementary",
        "address": "1 Oak St",
        "city": "Springfield",
        "state": "IL",
        "contact": "5551234567",
        "email": "a@b.com",
    }


@pytest.fixture
def school_fields(school_data):
    return SchoolFields(**school_data)


@pytest.fixture
def png_upload():
    return ImageUpload(filename="photo.png", content_type="image/png", content=PNG_BYTES)


@pytest.fixture
def multipart_request(school_fields):
    """Upload-mode request without an image."""
    return MultipartCreateRequest(fields=school_fields)


@pytest.fixture
def multipart_request_with_image(school_fields, png_upload):
    return MultipartCreateRequest(fields=school_fields, image=png_upload)


@pytest.fixture
def json_request(school_fields):
    return JsonCreateRequest(fields=school_fields, image_url="https://example.com/school.jpg")


@pytest.fixture
def school_row(school_data):
    """A row as returned by SchoolRepository.list_all."""
    return {
        "id": 1,
        **school_data,
        "image": None,
        "created_at": datetime(2026, 10, 19, 12, 0, tzinfo=UTC),
    }
