import sys
import time
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, undefer

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "apps" / "backend"))

from db import Resume  # noqa: E402
from jobtracker.core import Settings  # noqa: E402
from jobtracker.main import create_app  # noqa: E402
from jobtracker.models.base import Base  # noqa: E402
from jobtracker.storage import StorageBackendError, StorageKind, UploadedObject  # noqa: E402

SECRET = "test"
PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n%%EOF"


class FakeObjectStore:
    """In-memory object store double."""

    def __init__(self, fail_uploads: bool = False, fail_deletes: bool = False) -> None:
        self.fail_uploads = fail_uploads
        self.fail_deletes = fail_deletes
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []

    async def upload(self, content: bytes, key: str, mime_type: str) -> UploadedObject:
        if self.fail_uploads:
            raise StorageBackendError("store unavailable")
        self.objects[key] = content
        return UploadedObject(url=f"https://cdn.example.com/{key}", object_id=key)

    async def delete(self, object_id: str) -> None:
        if self.fail_deletes:
            raise StorageBackendError("store unavailable")
        self.deleted.append(object_id)
        self.objects.pop(object_id, None)


class StubS3Client:
    """Records boto3 S3 calls instead of making them."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def put_object(self, **kwargs):
        self.calls.append(("put_object", kwargs))
        if self.error:
            raise self.error
        return {"ETag": '"abc"'}

    def delete_object(self, **kwargs):
        self.calls.append(("delete_object", kwargs))
        if self.error:
            raise self.error
        return {}


class SlowS3Client(StubS3Client):
    def __init__(self, delay):
        super().__init__()
        self.delay = delay

    def put_object(self, **kwargs):
        time.sleep(self.delay)
        return super().put_object(**kwargs)


def auth(user_id: int) -> dict:
    token = jwt.encode({"userId": user_id}, SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


def pdf_upload(name: str = "resume.pdf", data: bytes = PDF_BYTES, content_type: str = "application/pdf"):
    return {"file": (name, data, content_type)}


@pytest.fixture
def legacy_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path, legacy_dir):
    db_file = tmp_path / "test.db"
    return Settings(
        _env_file=None,
        SYNC_DATABASE_URL=f"sqlite:///{db_file}",
        ASYNC_DATABASE_URL=f"sqlite+aiosqlite:///{db_file}",
        SESSION_SECRET_KEY=SECRET,
        LEGACY_UPLOAD_DIR=str(legacy_dir),
        ALLOWED_ORIGINS=["http://localhost:5173"],
    )


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def sync_engine(settings):
    engine = create_engine(settings.SYNC_DATABASE_URL)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def client(settings, object_store, sync_engine):
    app = create_app(settings, object_store=object_store)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def insert_resume(sync_engine):
    """Insert a record directly, bypassing the upload path (legacy rows)."""

    def _insert(**fields) -> int:
        values = dict(
            owner_id=1,
            title="Old resume",
            original_name="old.pdf",
            stored_name="old.pdf",
            storage_kind=StorageKind.LEGACY_LOCAL,
            size_bytes=len(PDF_BYTES),
            mime_type="application/pdf",
            download_count=0,
            created_at=datetime(2025, 1, 2, 3, 4, 5),
            updated_at=datetime(2025, 1, 2, 3, 4, 5),
        )
        values.update(fields)
        with Session(sync_engine) as session:
            resume = Resume(**values)
            session.add(resume)
            session.commit()
            return resume.id

    return _insert


@pytest.fixture
def fetch_resume(sync_engine):
    def _fetch(resume_id: int) -> Resume | None:
        with Session(sync_engine, expire_on_commit=False) as session:
            return session.execute(
                select(Resume).where(Resume.id == resume_id).options(undefer(Resume.blob_content))
            ).scalar_one_or_none()

    return _fetch
