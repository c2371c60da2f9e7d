"""Task ordering and kanban board service.

Each task carries an integer ``position`` that orders it inside its status
column. New tasks are appended to the end of their column; moving a task
stores the status and position the caller asks for, without renumbering the
siblings. Two tasks may therefore share a position; display order falls back
to ``created_at`` (newest first) in that case.
"""

from datetime import date
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from projectcrm.exceptions import NotFoundError, ValidationError
from projectcrm.models import TASK_STATUSES, Task
from projectcrm.services.filters import TASK_FILTERS, build_list_query

logger = structlog.get_logger()

KANBAN_COLUMNS: tuple[str, ...] = TASK_STATUSES

# Fields a task update may touch
UPDATABLE_FIELDS = frozenset(
    {"project_id", "title", "description", "status", "priority", "due_date", "position"}
)
REQUIRED_FIELDS = frozenset({"status", "priority", "position"})


def empty_board() -> dict[str, list[Any]]:
    """A board with every column present and empty."""
    return {column: [] for column in KANBAN_COLUMNS}


def group_by_status(tasks: list[Task]) -> dict[str, list[Task]]:
    """Partition already-ordered tasks into the fixed kanban columns.

    Tasks whose status is not one of the columns are left out.
    """
    board: dict[str, list[Task]] = empty_board()
    for task in tasks:
        column = board.get(task.status)
        if column is not None:
            column.append(task)
    return board


class TaskBoardService:
    """Service for task CRUD and kanban ordering."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _base_query(self) -> Select:
        return (
            select(Task)
            .options(selectinload(Task.project))
            .execution_options(populate_existing=True)
        )

    async def _load(self, task_id: UUID) -> Task:
        result = await self.db.execute(self._base_query().where(Task.id == task_id))
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    # =========================================================================
    # Ordering
    # =========================================================================

    async def next_position(self, status: str) -> int:
        """Position that appends a task to the end of ``status``'s column."""
        result = await self.db.execute(
            select(func.max(Task.position)).where(Task.status == status)
        )
        max_position = result.scalar()
        return (max_position or 0) + 1

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_task(self, task_id: UUID) -> Task:
        """Get a task with its project summary."""
        return await self._load(task_id)

    async def list_tasks(
        self,
        project_id: UUID | None = None,
        status: str | None = None,
    ) -> list[Task]:
        """List tasks ordered by (position asc, created_at desc)."""
        query = build_list_query(
            TASK_FILTERS,
            self._base_query(),
            project_id=project_id,
            status=status,
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_kanban(self, project_id: UUID | None = None) -> dict[str, list[Task]]:
        """Get tasks grouped by status; every column key is always present."""
        tasks = await self.list_tasks(project_id=project_id)
        return group_by_status(tasks)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_task(
        self,
        title: str | None,
        project_id: UUID | None = None,
        description: str | None = None,
        status: str | None = None,
        priority: str | None = None,
        due_date: date | None = None,
    ) -> Task:
        """Create a task at the end of its status column."""
        if title is None or not title.strip():
            raise ValidationError("Title is required")

        status = status or "backlog"
        position = await self.next_position(status)

        task = Task(
            project_id=project_id,
            title=title,
            description=description,
            status=status,
            priority=priority or "medium",
            due_date=due_date,
            position=position,
        )
        self.db.add(task)
        await self.db.flush()

        logger.info(
            "task_created",
            task_id=str(task.id),
            status=status,
            position=position,
        )
        return await self._load(task.id)

    async def update_task(self, task_id: UUID, updates: dict[str, Any]) -> Task:
        """Apply a partial update; only the provided fields change."""
        task = await self._load(task_id)

        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        if "title" in updates and not (updates["title"] or "").strip():
            raise ValidationError("Title is required")
        for field in REQUIRED_FIELDS & set(updates):
            if updates[field] is None:
                raise ValidationError(f"{field} cannot be null")

        for field, value in updates.items():
            setattr(task, field, value)
        await self.db.flush()

        logger.info("task_updated", task_id=str(task_id), fields=sorted(updates))
        return await self._load(task_id)

    async def move_task(self, task_id: UUID, status: str, position: int) -> Task:
        """Put a task into ``status`` at ``position`` exactly as given."""
        task = await self._load(task_id)
        old_status = task.status

        task.status = status
        task.position = position
        await self.db.flush()

        logger.info(
            "task_moved",
            task_id=str(task_id),
            old_status=old_status,
            new_status=status,
            position=position,
        )
        return await self._load(task_id)

    async def delete_task(self, task_id: UUID) -> None:
        """Delete a task."""
        task = await self._load(task_id)
        await self.db.delete(task)
        await self.db.flush()

        logger.info("task_deleted", task_id=str(task_id))
