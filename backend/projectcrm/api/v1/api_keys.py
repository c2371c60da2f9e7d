"""Stored API key endpoints.

List and write responses only carry masked values; the full key is returned
by the single-item read, which also stamps ``last_used``.
"""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from projectcrm.api.schemas import MessageResponse
from projectcrm.db.base import utcnow
from projectcrm.db.session import get_db_session
from projectcrm.exceptions import NotFoundError, ValidationError
from projectcrm.models import APIKey
from projectcrm.services.filters import API_KEY_FILTERS, build_list_query
from projectcrm.utils.masking import mask_secret

router = APIRouter()
logger = structlog.get_logger()


class APIKeyCreate(BaseModel):
    """Store a credential."""

    name: str | None = None
    service: str | None = None
    api_key: str | None = None
    api_secret: str | None = None
    environment: str = "production"
    notes: str | None = None


class APIKeyUpdate(BaseModel):
    """Update a credential; omitted fields are left unchanged."""

    name: str | None = None
    service: str | None = None
    api_key: str | None = None
    api_secret: str | None = None
    environment: str | None = None
    notes: str | None = None


class APIKeyMaskedResponse(BaseModel):
    """Credential with its secrets masked."""

    id: UUID
    name: str
    service: str
    environment: str
    notes: str | None
    last_used: datetime | None
    created_at: datetime
    updated_at: datetime
    api_key_masked: str
    api_secret_masked: str | None


class APIKeyResponse(BaseModel):
    """Full credential, for copying."""

    id: UUID
    name: str
    service: str
    api_key: str
    api_secret: str | None
    environment: str
    notes: str | None
    last_used: datetime | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def to_masked(item: APIKey) -> APIKeyMaskedResponse:
    """Hide secrets for list views."""
    return APIKeyMaskedResponse(
        id=item.id,
        name=item.name,
        service=item.service,
        environment=item.environment,
        notes=item.notes,
        last_used=item.last_used,
        created_at=item.created_at,
        updated_at=item.updated_at,
        api_key_masked=mask_secret(item.api_key),
        api_secret_masked=mask_secret(item.api_secret) if item.api_secret else None,
    )


async def _get_api_key(db: AsyncSession, key_id: UUID) -> APIKey:
    item = await db.get(APIKey, key_id)
    if item is None:
        raise NotFoundError("API key", key_id)
    return item


@router.get("", response_model=list[APIKeyMaskedResponse])
async def list_api_keys(
    db: AsyncSession = Depends(get_db_session),
    environment: str | None = None,
    search: str | None = Query(None, max_length=100),
) -> list[APIKeyMaskedResponse]:
    """List credentials grouped by service, secrets masked."""
    result = await db.execute(
        build_list_query(API_KEY_FILTERS, environment=environment, search=search)
    )
    return [to_masked(item) for item in result.scalars().all()]


@router.get("/{key_id}", response_model=APIKeyResponse)
async def get_api_key(
    key_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> APIKey:
    """Get the full credential and record the access."""
    item = await _get_api_key(db, key_id)
    item.last_used = utcnow()
    await db.commit()

    logger.info("api_key_read", key_id=str(key_id), service=item.service)
    return item


@router.post("", response_model=APIKeyMaskedResponse, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    key_data: APIKeyCreate,
    db: AsyncSession = Depends(get_db_session),
) -> APIKeyMaskedResponse:
    """Store a new credential."""
    if not key_data.name or not key_data.service or not key_data.api_key:
        raise ValidationError("Name, service, and API key are required")

    item = APIKey(**key_data.model_dump())
    db.add(item)
    await db.commit()

    logger.info("api_key_created", key_id=str(item.id), service=item.service)
    return to_masked(item)


@router.put("/{key_id}", response_model=APIKeyMaskedResponse)
async def update_api_key(
    key_id: UUID,
    updates: APIKeyUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> APIKeyMaskedResponse:
    """Update a credential."""
    item = await _get_api_key(db, key_id)
    update_data = updates.model_dump(exclude_unset=True)
    for field in ("name", "service", "api_key", "environment"):
        if field in update_data and not update_data[field]:
            raise ValidationError(f"{field} cannot be empty")

    for field, value in update_data.items():
        setattr(item, field, value)
    await db.commit()

    logger.info("api_key_updated", key_id=str(key_id))
    return to_masked(item)


@router.delete("/{key_id}", response_model=MessageResponse)
async def delete_api_key(
    key_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, str]:
    """Delete a credential."""
    item = await _get_api_key(db, key_id)
    await db.delete(item)
    await db.commit()

    logger.info("api_key_deleted", key_id=str(key_id))
    return {"message": "API key deleted successfully"}
