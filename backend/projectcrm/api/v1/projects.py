"""Projects API endpoints."""

from datetime import date, datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from projectcrm.api.schemas import MessageResponse
from projectcrm.api.v1.tags import TagResponse
from projectcrm.db.session import get_db_session
from projectcrm.models import Milestone, Project
from projectcrm.services.projects import ProjectService

router = APIRouter()
logger = structlog.get_logger()


# Request/Response Models
class ProjectCreate(BaseModel):
    """Create a new project; ``tags`` is a list of tag ids."""

    name: str | None = None
    description: str | None = None
    status: str = "idea"
    priority: str = "medium"
    category: str | None = None
    client_id: UUID | None = None
    github_url: str | None = None
    demo_url: str | None = None
    tech_stack: list[str] = Field(default_factory=list)
    notes: str | None = None
    start_date: date | None = None
    target_date: date | None = None
    tags: list[UUID] = Field(default_factory=list)


class ProjectUpdate(BaseModel):
    """Update a project; a provided ``tags`` list replaces the whole set."""

    name: str | None = None
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    category: str | None = None
    client_id: UUID | None = None
    github_url: str | None = None
    demo_url: str | None = None
    tech_stack: list[str] | None = None
    notes: str | None = None
    start_date: date | None = None
    target_date: date | None = None
    completed_date: date | None = None
    tags: list[UUID] | None = None


class MilestoneCreate(BaseModel):
    """Add a milestone."""

    title: str | None = None
    due_date: date | None = None


class MilestoneUpdate(BaseModel):
    """Toggle milestone completion."""

    completed: bool


class MilestoneResponse(BaseModel):
    """Milestone response."""

    id: UUID
    project_id: UUID
    title: str
    due_date: date | None
    completed: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ProjectResponse(BaseModel):
    """Project with flattened tags and its milestones."""

    id: UUID
    name: str
    description: str | None
    status: str
    priority: str
    category: str | None
    client_id: UUID | None
    github_url: str | None
    demo_url: str | None
    tech_stack: list[str]
    notes: str | None
    start_date: date | None
    target_date: date | None
    completed_date: date | None
    created_at: datetime
    updated_at: datetime
    tags: list[TagResponse] = []
    milestones: list[MilestoneResponse] = []

    class Config:
        from_attributes = True


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    db: AsyncSession = Depends(get_db_session),
    status: str | None = None,
    priority: str | None = None,
    category: str | None = None,
    client_id: UUID | None = None,
    search: str | None = Query(None, max_length=100),
) -> list[Project]:
    """List projects, most recently updated first."""
    return await ProjectService(db).list_projects(
        status=status,
        priority=priority,
        category=category,
        client_id=client_id,
        search=search,
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Project:
    """Get a specific project."""
    return await ProjectService(db).get_project(project_id)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    db: AsyncSession = Depends(get_db_session),
) -> Project:
    """Create a project together with its tag links."""
    data = project_data.model_dump(exclude={"tags"})
    project = await ProjectService(db).create_project(data, tag_ids=project_data.tags)
    await db.commit()
    return project


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    updates: ProjectUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> Project:
    """Update a project."""
    update_data = updates.model_dump(exclude_unset=True, exclude={"tags"})
    tag_ids = updates.tags if "tags" in updates.model_fields_set else None
    project = await ProjectService(db).update_project(project_id, update_data, tag_ids=tag_ids)
    await db.commit()
    return project


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, str]:
    """Delete a project; its tag links and milestones go with it."""
    await ProjectService(db).delete_project(project_id)
    await db.commit()
    return {"message": "Project deleted successfully"}


@router.post(
    "/{project_id}/milestones",
    response_model=MilestoneResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_milestone(
    project_id: UUID,
    milestone_data: MilestoneCreate,
    db: AsyncSession = Depends(get_db_session),
) -> Milestone:
    """Add a milestone to a project."""
    milestone = await ProjectService(db).add_milestone(
        project_id, milestone_data.title, milestone_data.due_date
    )
    await db.commit()
    return milestone


@router.patch("/{project_id}/milestones/{milestone_id}", response_model=MilestoneResponse)
async def update_milestone(
    project_id: UUID,
    milestone_id: UUID,
    milestone_data: MilestoneUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> Milestone:
    """Toggle milestone completion."""
    milestone = await ProjectService(db).set_milestone_completed(
        project_id, milestone_id, milestone_data.completed
    )
    await db.commit()
    return milestone


@router.delete("/{project_id}/milestones/{milestone_id}", response_model=MessageResponse)
async def delete_milestone(
    project_id: UUID,
    milestone_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, str]:
    """Delete a milestone."""
    await ProjectService(db).delete_milestone(project_id, milestone_id)
    await db.commit()
    return {"message": "Milestone deleted"}
