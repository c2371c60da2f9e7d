"""Documents API endpoints: uploads kept in the blob store plus metadata."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from projectcrm.api.schemas import MessageResponse
from projectcrm.api.v1.tasks import ProjectSummary
from projectcrm.config import get_settings
from projectcrm.db.session import get_db_session
from projectcrm.exceptions import NotFoundError, ValidationError
from projectcrm.models import Document, Project
from projectcrm.services.filters import DOCUMENT_FILTERS, build_list_query
from projectcrm.services.storage import (
    DocumentStorage,
    category_for,
    get_storage,
    is_allowed_upload,
    make_storage_path,
)

router = APIRouter()
logger = structlog.get_logger()

DOCUMENT_CATEGORIES = ("logo", "image", "pdf", "markdown", "general")
UPLOAD_CHUNK_SIZE = 1024 * 1024


class DocumentUpdate(BaseModel):
    """Update document metadata; the stored file itself never changes."""

    name: str | None = None
    description: str | None = None
    category: str | None = None
    tags: list[str] | str | None = None
    project_id: UUID | None = None


class DocumentResponse(BaseModel):
    """Document metadata with the public URL of its file."""

    id: UUID
    name: str
    file_name: str
    file_type: str
    file_size: int
    category: str
    storage_path: str
    description: str | None
    tags: list[str]
    project_id: UUID | None
    project: ProjectSummary | None = None
    url: str
    created_at: datetime
    updated_at: datetime


def parse_tags(value: list[str] | str | None) -> list[str]:
    """Accept a comma-separated string or a list of tags."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [tag.strip() for tag in value if tag and tag.strip()]


def to_response(document: Document, storage: DocumentStorage) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        name=document.name,
        file_name=document.file_name,
        file_type=document.file_type,
        file_size=document.file_size,
        category=document.category,
        storage_path=document.storage_path,
        description=document.description,
        tags=document.tags or [],
        project_id=document.project_id,
        project=ProjectSummary.model_validate(document.project) if document.project else None,
        url=storage.url_for(document.storage_path),
        created_at=document.created_at,
        updated_at=document.updated_at,
    )


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read an upload, stopping as soon as it exceeds ``max_bytes``."""
    limit_mb = max_bytes // (1024 * 1024)
    too_large = ValidationError(f"File too large. Maximum size is {limit_mb}MB")
    if file.size is not None and file.size > max_bytes:
        raise too_large

    chunks: list[bytes] = []
    total = 0
    while chunk := await file.read(UPLOAD_CHUNK_SIZE):
        total += len(chunk)
        if total > max_bytes:
            raise too_large
        chunks.append(chunk)
    return b"".join(chunks)


def _check_category(category: str) -> None:
    if category not in DOCUMENT_CATEGORIES:
        raise ValidationError(f"Invalid category: {category}")


async def _check_project(db: AsyncSession, project_id: UUID | None) -> None:
    if project_id is not None and await db.get(Project, project_id) is None:
        raise NotFoundError("Project", project_id)


async def _get_document(db: AsyncSession, document_id: UUID) -> Document:
    result = await db.execute(
        select(Document)
        .where(Document.id == document_id)
        .options(selectinload(Document.project))
        .execution_options(populate_existing=True)
    )
    document = result.scalar_one_or_none()
    if document is None:
        raise NotFoundError("Document", document_id)
    return document


@router.get("", response_model=list[DocumentResponse])
async def list_documents(
    db: AsyncSession = Depends(get_db_session),
    storage: DocumentStorage = Depends(get_storage),
    category: str | None = None,
    project_id: UUID | None = None,
    search: str | None = Query(None, max_length=100),
) -> list[DocumentResponse]:
    """List documents, newest first."""
    query = build_list_query(
        DOCUMENT_FILTERS, category=category, project_id=project_id, search=search
    ).options(selectinload(Document.project))
    result = await db.execute(query)
    return [to_response(document, storage) for document in result.scalars().all()]


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    storage: DocumentStorage = Depends(get_storage),
) -> DocumentResponse:
    """Get a specific document."""
    return to_response(await _get_document(db, document_id), storage)


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    name: str | None = Form(None),
    description: str | None = Form(None),
    category: str | None = Form(None),
    tags: str | None = Form(None),
    project_id: UUID | None = Form(None),
    db: AsyncSession = Depends(get_db_session),
    storage: DocumentStorage = Depends(get_storage),
) -> DocumentResponse:
    """Upload a file and record its metadata."""
    settings = get_settings()
    filename = file.filename or ""
    if not filename:
        raise ValidationError("No file provided")

    mime_type = file.content_type or "application/octet-stream"
    if not is_allowed_upload(mime_type, filename):
        raise ValidationError(
            "Invalid file type. Allowed: images, PDFs, and markdown files"
        )

    content = await read_upload(file, settings.max_upload_size_bytes)

    if category:
        _check_category(category)
    await _check_project(db, project_id)

    storage_path = make_storage_path(filename)
    await storage.save(storage_path, content)

    document = Document(
        name=name or filename,
        file_name=filename,
        file_type=mime_type,
        file_size=len(content),
        category=category or category_for(mime_type, filename),
        storage_path=storage_path,
        description=description,
        tags=parse_tags(tags),
        project_id=project_id,
    )
    db.add(document)
    try:
        await db.commit()
    except SQLAlchemyError:
        await storage.remove(storage_path)
        raise

    logger.info(
        "document_uploaded",
        document_id=str(document.id),
        category=document.category,
        size=document.file_size,
    )
    return to_response(await _get_document(db, document.id), storage)


@router.put("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: UUID,
    updates: DocumentUpdate,
    db: AsyncSession = Depends(get_db_session),
    storage: DocumentStorage = Depends(get_storage),
) -> DocumentResponse:
    """Update document metadata."""
    document = await _get_document(db, document_id)
    update_data = updates.model_dump(exclude_unset=True)

    if "name" in update_data and not (update_data["name"] or "").strip():
        raise ValidationError("Document name is required")
    if "category" in update_data:
        if update_data["category"] is None:
            raise ValidationError("category cannot be null")
        _check_category(update_data["category"])
    if "tags" in update_data:
        update_data["tags"] = parse_tags(update_data["tags"])
    if "project_id" in update_data:
        await _check_project(db, update_data["project_id"])

    for field, value in update_data.items():
        setattr(document, field, value)
    await db.commit()

    logger.info("document_updated", document_id=str(document_id))
    return to_response(await _get_document(db, document_id), storage)


@router.delete("/{document_id}", response_model=MessageResponse)
async def delete_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    storage: DocumentStorage = Depends(get_storage),
) -> dict[str, str]:
    """Delete a document and its stored file."""
    document = await _get_document(db, document_id)

    try:
        await storage.remove(document.storage_path)
    except (OSError, ValueError) as e:
        logger.warning(
            "blob_remove_failed",
            document_id=str(document_id),
            storage_path=document.storage_path,
            error=str(e),
        )

    await db.delete(document)
    await db.commit()

    logger.info("document_deleted", document_id=str(document_id))
    return {"message": "Document deleted successfully"}
