"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from shelf.main import app
from shelf.storage.service import FileStorageService


@pytest.fixture
def storage_root(tmp_path):
    """An empty storage root inside the test's temp directory."""
    return tmp_path / "uploads"


@pytest.fixture
def storage(storage_root):
    """A FileStorageService bound to a temp root, installed as the singleton."""
    FileStorageService.reset_instance()
    service = FileStorageService(root_dir=str(storage_root), max_file_bytes=1024)
    FileStorageService.set_instance(service)
    yield service
    FileStorageService.reset_instance()


@pytest.fixture
def api_client(storage):
    """Provide a TestClient for the main FastAPI app backed by a temp root."""
    return TestClient(app)
