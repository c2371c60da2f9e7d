"""Tasks API endpoints, including the kanban board."""

from datetime import date, datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from projectcrm.api.schemas import MessageResponse
from projectcrm.db.session import get_db_session
from projectcrm.models import Task
from projectcrm.services.kanban import TaskBoardService

router = APIRouter()
logger = structlog.get_logger()


# Request/Response Models
class TaskCreate(BaseModel):
    """Create a new task.

    ``title`` is optional here so a missing title is reported as a 400 by
    the service rather than as a schema error.
    """

    project_id: UUID | None = None
    title: str | None = None
    description: str | None = None
    status: str = "backlog"
    priority: str = "medium"
    due_date: date | None = None


class TaskUpdate(BaseModel):
    """Update a task; omitted fields are left unchanged."""

    project_id: UUID | None = None
    title: str | None = None
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    due_date: date | None = None
    position: int | None = None


class TaskMove(BaseModel):
    """Drag-and-drop move: target column and position."""

    status: str
    position: int


class ProjectSummary(BaseModel):
    """Minimal project projection embedded in tasks."""

    id: UUID
    name: str

    class Config:
        from_attributes = True


class TaskResponse(BaseModel):
    """Task response model."""

    id: UUID
    project_id: UUID | None
    title: str
    description: str | None
    status: str
    priority: str
    due_date: date | None
    position: int
    created_at: datetime
    updated_at: datetime
    project: ProjectSummary | None = None

    class Config:
        from_attributes = True


class KanbanResponse(BaseModel):
    """Tasks grouped by status for the board; every column is present."""

    backlog: list[TaskResponse]
    in_progress: list[TaskResponse]
    blocked: list[TaskResponse]
    done: list[TaskResponse]


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    db: AsyncSession = Depends(get_db_session),
    project_id: UUID | None = None,
    status: str | None = None,
) -> list[Task]:
    """List tasks ordered by position, newest first within a position."""
    return await TaskBoardService(db).list_tasks(project_id=project_id, status=status)


@router.get("/kanban", response_model=KanbanResponse)
async def get_kanban(
    db: AsyncSession = Depends(get_db_session),
    project_id: UUID | None = None,
) -> dict[str, list[Task]]:
    """Get tasks grouped by status for the kanban view."""
    return await TaskBoardService(db).list_kanban(project_id=project_id)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Get a specific task."""
    return await TaskBoardService(db).get_task(task_id)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Create a task at the end of its status column."""
    task = await TaskBoardService(db).create_task(**task_data.model_dump())
    await db.commit()
    return task


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    updates: TaskUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Update a task."""
    task = await TaskBoardService(db).update_task(
        task_id, updates.model_dump(exclude_unset=True)
    )
    await db.commit()
    return task


@router.patch("/{task_id}/status", response_model=TaskResponse)
async def move_task(
    task_id: UUID,
    move: TaskMove,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Move a task to a status column at the given position (drag and drop)."""
    task = await TaskBoardService(db).move_task(task_id, move.status, move.position)
    await db.commit()
    return task


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, str]:
    """Delete a task."""
    await TaskBoardService(db).delete_task(task_id)
    await db.commit()
    return {"message": "Task deleted successfully"}
