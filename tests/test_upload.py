import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile as StarletteUploadFile

from conftest import PDF_BYTES, FakeObjectStore, SlowS3Client, auth, pdf_upload
from jobtracker.main import create_app
from jobtracker.storage import S3ObjectStore, StorageKind


def _backend_fields(resume):
    return [resume.external_url, resume.blob_content, resume.legacy_path]


def test_upload_goes_to_object_store(client, object_store, fetch_resume):
    r = client.post(
        "/api/v1/resumes",
        files=pdf_upload(),
        data={"title": "Backend CV", "description": "for API roles"},
        headers=auth(1),
    )
    assert r.status_code == 201
    body = r.json()
    assert body["title"] == "Backend CV"
    assert body["originalName"] == "resume.pdf"
    assert body["sizeBytes"] == len(PDF_BYTES)
    assert body["mimeType"] == "application/pdf"
    assert body["storage"] == "external"
    assert body["previewUrl"] == f"/api/v1/resumes/{body['id']}/preview"
    assert body["downloadUrl"] == f"/api/v1/resumes/{body['id']}/download"
    for internal in ("blobContent", "externalUrl", "externalObjectId", "legacyPath"):
        assert internal not in body

    resume = fetch_resume(body["id"])
    assert resume.storage_kind == StorageKind.EXTERNAL
    assert resume.external_url.startswith("https://cdn.example.com/resumes/user_1/")
    assert resume.blob_content is None
    assert sum(f is not None for f in _backend_fields(resume)) == 1
    assert object_store.objects[resume.external_object_id] == PDF_BYTES


@pytest.fixture
def unavailable_store():
    return FakeObjectStore(fail_uploads=True)


def test_upload_falls_back_to_database_when_store_fails(settings, sync_engine, unavailable_store, fetch_resume):
    app = create_app(settings, object_store=unavailable_store)
    with TestClient(app) as client:
        r = client.post("/api/v1/resumes", files=pdf_upload(), headers=auth(1))
        assert r.status_code == 201
        body = r.json()
        assert body["storage"] == "embedded"

        resume = fetch_resume(body["id"])
        assert resume.external_url is None
        assert resume.blob_content == PDF_BYTES
        assert sum(f is not None for f in _backend_fields(resume)) == 1

        preview = client.get(f"/api/v1/resumes/{body['id']}/preview", headers=auth(1))
        assert preview.status_code == 200
        assert preview.content == PDF_BYTES


def test_upload_without_configured_store(settings, sync_engine, fetch_resume):
    app = create_app(settings, object_store=None)
    with TestClient(app) as client:
        r = client.post("/api/v1/resumes", files=pdf_upload(), headers=auth(3))
        assert r.status_code == 201
        assert r.json()["storage"] == "embedded"
        assert fetch_resume(r.json()["id"]).blob_content == PDF_BYTES


def test_title_defaults_to_file_name(client):
    r = client.post("/api/v1/resumes", files=pdf_upload("Jane Doe CV.pdf"), headers=auth(1))
    assert r.status_code == 201
    assert r.json()["title"] == "Jane Doe CV.pdf"
    assert r.json()["description"] is None


def test_octet_stream_uses_extension(client):
    r = client.post(
        "/api/v1/resumes",
        files=pdf_upload("cv.docx", b"PK\x03\x04docx", "application/octet-stream"),
        headers=auth(1),
    )
    assert r.status_code == 201
    assert r.json()["mimeType"] == (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    )


def test_upload_requires_file(client, object_store):
    r = client.post("/api/v1/resumes", data={"title": "no file"}, headers=auth(1))
    assert r.status_code == 400
    assert r.json()["detail"] == "No file uploaded"
    assert object_store.objects == {}


def test_upload_rejects_empty_file(client):
    r = client.post("/api/v1/resumes", files=pdf_upload(data=b""), headers=auth(1))
    assert r.status_code == 400
    assert "empty" in r.json()["detail"]


@pytest.mark.parametrize(
    "name, content_type",
    [
        ("resume.exe", "application/pdf"),
        ("resume.pdf", "image/png"),
        ("..resume.pdf", "application/pdf"),
        ("a" * 252 + ".pdf", "application/pdf"),
    ],
)
def test_upload_rejects_invalid_files(client, object_store, name, content_type):
    r = client.post("/api/v1/resumes", files=pdf_upload(name, content_type=content_type), headers=auth(1))
    assert r.status_code == 400
    assert object_store.objects == {}

    listed = client.get("/api/v1/resumes", headers=auth(1))
    assert listed.json() == []


def test_upload_size_limit(client, object_store):
    data = b"x" * (5 * 1024 * 1024 + 1)
    r = client.post("/api/v1/resumes", files=pdf_upload("big.pdf", data), headers=auth(1))
    assert r.status_code == 413
    assert object_store.objects == {}


def test_upload_requires_authentication(client):
    r = client.post("/api/v1/resumes", files=pdf_upload())
    assert r.status_code == 401

    r = client.post("/api/v1/resumes", files=pdf_upload(), headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_upload_falls_back_when_store_times_out(settings, sync_engine, fetch_resume):
    slow_store = S3ObjectStore("resumes", timeout=0.2, client=SlowS3Client(delay=1.0))
    app = create_app(settings, object_store=slow_store)
    with TestClient(app) as client:
        r = client.post("/api/v1/resumes", files=pdf_upload(), headers=auth(1))
        assert r.status_code == 201
        assert r.json()["storage"] == "embedded"
        assert fetch_resume(r.json()["id"]).blob_content == PDF_BYTES


def test_unreadable_upload_is_not_persisted(client, object_store, monkeypatch):
    async def broken_read(self, size=-1):
        raise OSError("connection reset")

    monkeypatch.setattr(StarletteUploadFile, "read", broken_read)

    r = client.post("/api/v1/resumes", files=pdf_upload(), headers=auth(1))
    assert r.status_code == 500
    assert r.json()["detail"] == "Uploaded file could not be read"
    assert object_store.objects == {}

    monkeypatch.undo()
    assert client.get("/api/v1/resumes", headers=auth(1)).json() == []


def test_failed_commit_removes_uploaded_object(client, object_store, monkeypatch):
    async def failing_commit(self):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)

    r = client.post("/api/v1/resumes", files=pdf_upload(), headers=auth(1))
    assert r.status_code == 500
    assert r.json()["detail"] == "Resume upload failed"
    assert len(object_store.deleted) == 1
    assert object_store.deleted[0].startswith("resumes/user_1/")
    assert object_store.objects == {}

    monkeypatch.undo()
    assert client.get("/api/v1/resumes", headers=auth(1)).json() == []


def test_upload_rejects_long_title(client, object_store):
    r = client.post(
        "/api/v1/resumes", files=pdf_upload(), data={"title": "t" * 256}, headers=auth(1)
    )
    assert r.status_code == 400
    assert "Title is too long" in r.json()["detail"]
    assert object_store.objects == {}

    r = client.post(
        "/api/v1/resumes", files=pdf_upload(), data={"title": "t" * 255}, headers=auth(1)
    )
    assert r.status_code == 201
