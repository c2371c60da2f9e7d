"""Tests for document uploads and metadata."""

from io import BytesIO

import pytest
from fastapi import UploadFile
from httpx import AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from projectcrm.api.v1.documents import read_upload
from projectcrm.config import get_settings
from projectcrm.exceptions import ValidationError
from projectcrm.services.storage import (
    DocumentStorage,
    category_for,
    is_allowed_upload,
    make_storage_path,
)


@pytest.mark.parametrize(
    ("mime_type", "filename", "expected"),
    [
        ("image/png", "company-logo.png", "logo"),
        ("image/jpeg", "team.jpg", "image"),
        ("application/pdf", "brief.pdf", "pdf"),
        ("text/markdown", "README", "markdown"),
        ("application/octet-stream", "notes.md", "markdown"),
        ("text/plain", "notes.txt", "general"),
    ],
)
def test_category_for(mime_type: str, filename: str, expected: str) -> None:
    assert category_for(mime_type, filename) == expected


def test_allowed_uploads() -> None:
    assert is_allowed_upload("application/pdf", "a.pdf")
    assert is_allowed_upload("application/octet-stream", "notes.MD")
    assert not is_allowed_upload("application/zip", "bundle.zip")


def test_storage_path_is_sanitized() -> None:
    assert make_storage_path("my report (v2).pdf", timestamp_ms=1700000000000) == (
        "1700000000000-my_report__v2_.pdf"
    )


@pytest.mark.asyncio
async def test_storage_rejects_escaping_paths(storage: DocumentStorage) -> None:
    with pytest.raises(ValueError):
        await storage.save("../outside.txt", b"x")


@pytest.mark.asyncio
async def test_upload_list_update_delete(client: AsyncClient, storage: DocumentStorage) -> None:
    response = await client.post(
        "/api/documents",
        files={"file": ("acme-logo.png", b"\x89PNG fake", "image/png")},
        data={"tags": "brand, acme ,", "description": "Primary logo"},
    )
    assert response.status_code == 201
    document = response.json()
    assert document["name"] == "acme-logo.png"
    assert document["category"] == "logo"
    assert document["tags"] == ["brand", "acme"]
    assert document["file_size"] == len(b"\x89PNG fake")
    assert document["url"] == f"/uploads/{document['storage_path']}"
    assert (storage.root / document["storage_path"]).read_bytes() == b"\x89PNG fake"

    response = await client.get("/api/documents", params={"category": "logo"})
    assert [d["id"] for d in response.json()] == [document["id"]]
    response = await client.get("/api/documents", params={"search": "primary"})
    assert len(response.json()) == 1

    response = await client.put(
        f"/api/documents/{document['id']}", json={"name": "Logo", "tags": ["brand"]}
    )
    assert response.json()["name"] == "Logo"
    assert response.json()["tags"] == ["brand"]
    assert response.json()["description"] == "Primary logo"

    response = await client.delete(f"/api/documents/{document['id']}")
    assert response.json() == {"message": "Document deleted successfully"}
    assert not (storage.root / document["storage_path"]).exists()

    response = await client.get(f"/api/documents/{document['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_upload_attached_to_project(client: AsyncClient) -> None:
    project = (await client.post("/api/projects", json={"name": "Agent"})).json()

    response = await client.post(
        "/api/documents",
        files={"file": ("roadmap.md", b"# Roadmap", "text/markdown")},
        data={"project_id": project["id"], "name": "Roadmap"},
    )

    assert response.status_code == 201
    assert response.json()["project"] == {"id": project["id"], "name": "Agent"}
    assert response.json()["category"] == "markdown"


@pytest.mark.asyncio
async def test_upload_rejects_bad_type(client: AsyncClient) -> None:
    response = await client.post(
        "/api/documents",
        files={"file": ("bundle.zip", b"PK", "application/zip")},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_upload_rejects_large_files(
    client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(get_settings(), "max_upload_size_bytes", 4)

    response = await client.post(
        "/api/documents",
        files={"file": ("big.pdf", b"%PDF-1.7", "application/pdf")},
    )

    assert response.status_code == 400
    assert "too large" in response.json()["error"]


@pytest.mark.asyncio
async def test_delete_survives_missing_blob(client: AsyncClient, storage: DocumentStorage) -> None:
    document = (
        await client.post(
            "/api/documents",
            files={"file": ("a.pdf", b"%PDF", "application/pdf")},
        )
    ).json()
    (storage.root / document["storage_path"]).unlink()

    response = await client.delete(f"/api/documents/{document['id']}")

    assert response.status_code == 200
    assert (await client.get("/api/documents")).json() == []


@pytest.mark.asyncio
async def test_read_upload_stops_past_limit_without_declared_size() -> None:
    upload = UploadFile(BytesIO(b"x" * 10), filename="a.txt")
    assert upload.size is None

    with pytest.raises(ValidationError, match="too large"):
        await read_upload(upload, max_bytes=9)

    upload = UploadFile(BytesIO(b"x" * 9), filename="a.txt")
    assert await read_upload(upload, max_bytes=9) == b"x" * 9


@pytest.mark.asyncio
async def test_failed_commit_removes_stored_file(
    client: AsyncClient, storage: DocumentStorage, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def failing_commit(self: AsyncSession) -> None:
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)

    response = await client.post(
        "/api/documents",
        files={"file": ("brief.pdf", b"%PDF", "application/pdf")},
    )

    assert response.status_code == 500
    assert response.json()["code"] == "STORE_ERROR"
    assert "disk I/O error" in response.json()["error"]
    assert list(storage.root.iterdir()) == []
