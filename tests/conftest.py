import os
import tempfile

# Configure the service before any app imports
_scratch = tempfile.mkdtemp(prefix="document-service-tests-")
os.environ["LOG_DIR"] = os.path.join(_scratch, "logs")
os.environ["UPLOAD_DIR"] = os.path.join(_scratch, "uploads")
os.environ["STORAGE_BACKEND"] = "local"
os.environ["DATABASE_URL"] = "sqlite://"

# Dummy AWS credentials for moto
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from document_service.app import models
from document_service.app.main import app, get_db, get_storage
from document_service.app.storage import LocalStorage


@pytest.fixture
def db_session_factory():
    """In-memory database shared by every connection of one test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorage(str(tmp_path / "uploads"))


@pytest.fixture
def storage_backend(local_storage):
    """Storage used by the app; tests may override this fixture"""
    return local_storage


@pytest.fixture
def client(db_session_factory, storage_backend):
    def override_get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage_backend
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_image_bytes(fmt: str = "JPEG", size=(64, 32), color=(255, 255, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")
