import asyncio
import os
import sys
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add the parent directory to sys.path so we can import main
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Keep test logs out of the working directory
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "upload_service_test_logs"))

from config import UploadSettings
from main import app
from app.services.storage_manager import StorageManager


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def settings(upload_dir):
    return UploadSettings(upload_dir=upload_dir)


@pytest.fixture
def storage_manager(settings):
    manager = StorageManager(settings.upload_dir, settings.chunk_size)
    asyncio.run(manager.initialize())
    return manager


@pytest.fixture
def client(settings, storage_manager):
    """TestClient wired to an isolated upload directory."""
    app.state.settings = settings
    app.state.storage_manager = storage_manager
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def small_limits(client, upload_dir):
    """Shrink the size limits so over-limit uploads stay small."""
    app.state.settings = UploadSettings(upload_dir=upload_dir, max_image_size=1024, max_other_size=2048)
    return app.state.settings
