"""Clients API endpoints."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from projectcrm.api.schemas import MessageResponse
from projectcrm.db.session import get_db_session
from projectcrm.exceptions import NotFoundError, ValidationError
from projectcrm.models import Client, Project
from projectcrm.services.filters import CLIENT_FILTERS, build_list_query

router = APIRouter()
logger = structlog.get_logger()


class ClientCreate(BaseModel):
    """Create a client."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    notes: str | None = None


class ClientUpdate(ClientCreate):
    """Update a client; omitted fields are left unchanged."""


class ClientResponse(BaseModel):
    """Client response."""

    id: UUID
    name: str
    email: str | None
    phone: str | None
    company: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClientProjectSummary(BaseModel):
    """Project as listed on a client."""

    id: UUID
    name: str
    status: str
    priority: str
    updated_at: datetime

    class Config:
        from_attributes = True


class ClientDetailResponse(ClientResponse):
    """Client with the projects done for them."""

    projects: list[ClientProjectSummary] = []


async def _get_client(db: AsyncSession, client_id: UUID) -> Client:
    client = await db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    return client


@router.get("", response_model=list[ClientResponse])
async def list_clients(
    db: AsyncSession = Depends(get_db_session),
    search: str | None = Query(None, max_length=100),
) -> list[Client]:
    """List clients by name; ``search`` looks at name, email and company."""
    result = await db.execute(build_list_query(CLIENT_FILTERS, search=search))
    return list(result.scalars().all())


@router.get("/{client_id}", response_model=ClientDetailResponse)
async def get_client(
    client_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Get a client with their projects, most recently updated first."""
    client = await _get_client(db, client_id)
    result = await db.execute(
        select(Project)
        .where(Project.client_id == client_id)
        .order_by(Project.updated_at.desc())
    )
    return {
        **ClientResponse.model_validate(client).model_dump(),
        "projects": list(result.scalars().all()),
    }


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_data: ClientCreate,
    db: AsyncSession = Depends(get_db_session),
) -> Client:
    """Create a client."""
    if not (client_data.name or "").strip():
        raise ValidationError("Client name is required")

    client = Client(**client_data.model_dump())
    db.add(client)
    await db.commit()

    logger.info("client_created", client_id=str(client.id))
    return client


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: UUID,
    updates: ClientUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> Client:
    """Update a client."""
    client = await _get_client(db, client_id)
    update_data = updates.model_dump(exclude_unset=True)
    if "name" in update_data and not (update_data["name"] or "").strip():
        raise ValidationError("Client name is required")

    for field, value in update_data.items():
        setattr(client, field, value)
    await db.commit()

    logger.info("client_updated", client_id=str(client_id))
    return client


@router.delete("/{client_id}", response_model=MessageResponse)
async def delete_client(
    client_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, str]:
    """Delete a client; their projects are kept."""
    client = await _get_client(db, client_id)
    await db.delete(client)
    await db.commit()

    logger.info("client_deleted", client_id=str(client_id))
    return {"message": "Client deleted successfully"}
