"""Dashboard statistics endpoint."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from projectcrm.db.session import get_db_session
from projectcrm.models import Client, Project, Task
from projectcrm.services.kanban import KANBAN_COLUMNS

router = APIRouter()

RECENT_PROJECTS_LIMIT = 5


class StatusCount(BaseModel):
    status: str
    count: int


class PriorityCount(BaseModel):
    priority: str
    count: int


class RecentProject(BaseModel):
    """Recently updated project."""

    id: UUID
    name: str
    status: str
    priority: str
    category: str | None
    updated_at: datetime

    class Config:
        from_attributes = True


class DashboardStats(BaseModel):
    """Counts shown on the dashboard."""

    total_projects: int
    total_clients: int
    total_tasks: int
    by_status: list[StatusCount]
    by_priority: list[PriorityCount]
    tasks_by_status: dict[str, int]
    recent_projects: list[RecentProject]


async def _count(db: AsyncSession, model: type) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


async def _group_counts(db: AsyncSession, column) -> list[tuple[str, int]]:
    result = await db.execute(
        select(column, func.count()).group_by(column).order_by(column)
    )
    return [(value, count) for value, count in result.all()]


@router.get("", response_model=DashboardStats)
async def get_stats(
    db: AsyncSession = Depends(get_db_session),
) -> DashboardStats:
    """Totals, project breakdowns and task counts per kanban column."""
    tasks_by_status = dict.fromkeys(KANBAN_COLUMNS, 0)
    for task_status, count in await _group_counts(db, Task.status):
        if task_status in tasks_by_status:
            tasks_by_status[task_status] = count

    recent = await db.execute(
        select(Project).order_by(Project.updated_at.desc()).limit(RECENT_PROJECTS_LIMIT)
    )

    return DashboardStats(
        total_projects=await _count(db, Project),
        total_clients=await _count(db, Client),
        total_tasks=await _count(db, Task),
        by_status=[
            StatusCount(status=value, count=count)
            for value, count in await _group_counts(db, Project.status)
        ],
        by_priority=[
            PriorityCount(priority=value, count=count)
            for value, count in await _group_counts(db, Project.priority)
        ],
        tasks_by_status=tasks_by_status,
        recent_projects=[RecentProject.model_validate(p) for p in recent.scalars().all()],
    )
