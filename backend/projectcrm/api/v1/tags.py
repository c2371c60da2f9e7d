"""Tags API endpoints."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from projectcrm.api.schemas import MessageResponse
from projectcrm.db.session import get_db_session
from projectcrm.models import Tag
from projectcrm.services.tags import TagService

router = APIRouter()
logger = structlog.get_logger()

HEX_COLOR = "^#[0-9A-Fa-f]{6}$"


class TagCreate(BaseModel):
    """Create a tag."""

    name: str | None = None
    color: str | None = Field(None, pattern=HEX_COLOR)


class TagUpdate(BaseModel):
    """Rename or recolor a tag."""

    name: str | None = None
    color: str | None = Field(None, pattern=HEX_COLOR)


class TagResponse(BaseModel):
    """Tag response."""

    id: UUID
    name: str
    color: str
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("", response_model=list[TagResponse])
async def list_tags(
    db: AsyncSession = Depends(get_db_session),
) -> list[Tag]:
    """List all tags by name."""
    return await TagService(db).list_tags()


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    tag_data: TagCreate,
    db: AsyncSession = Depends(get_db_session),
) -> Tag:
    """Create a tag; names are unique."""
    tag = await TagService(db).create_tag(tag_data.name, tag_data.color)
    await db.commit()
    return tag


@router.put("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: UUID,
    tag_data: TagUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> Tag:
    """Update a tag."""
    tag = await TagService(db).update_tag(tag_id, name=tag_data.name, color=tag_data.color)
    await db.commit()
    return tag


@router.delete("/{tag_id}", response_model=MessageResponse)
async def delete_tag(
    tag_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, str]:
    """Delete a tag; projects keep their other tags."""
    await TagService(db).delete_tag(tag_id)
    await db.commit()
    return {"message": "Tag deleted successfully"}
