"""Project and milestone service."""

from collections.abc import Sequence
from datetime import date
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from projectcrm.exceptions import NotFoundError, ValidationError
from projectcrm.models import Milestone, Project, ProjectTag
from projectcrm.services.filters import PROJECT_FILTERS, build_list_query
from projectcrm.services.tags import replace_project_tags

logger = structlog.get_logger()

PROJECT_FIELDS = frozenset(
    {
        "name",
        "description",
        "status",
        "priority",
        "category",
        "client_id",
        "github_url",
        "demo_url",
        "tech_stack",
        "notes",
        "start_date",
        "target_date",
        "completed_date",
    }
)
NON_NULL_FIELDS = frozenset({"status", "priority", "tech_stack"})


class ProjectService:
    """Service for projects, their tags and milestones.

    Writes are flushed, not committed: the request's session commits once, so
    a project and its tag links are stored together or not at all.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _base_query(self) -> Select:
        return (
            select(Project)
            .options(
                selectinload(Project.tag_links).selectinload(ProjectTag.tag),
                selectinload(Project.milestones),
            )
            .execution_options(populate_existing=True)
        )

    async def _load(self, project_id: UUID) -> Project:
        result = await self.db.execute(self._base_query().where(Project.id == project_id))
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    @staticmethod
    def _check_fields(data: dict[str, Any]) -> None:
        unknown = set(data) - PROJECT_FIELDS
        if unknown:
            raise ValidationError(f"Unknown project fields: {', '.join(sorted(unknown))}")
        if "name" in data and not (data["name"] or "").strip():
            raise ValidationError("Project name is required")
        for field in NON_NULL_FIELDS & set(data):
            if data[field] is None:
                raise ValidationError(f"{field} cannot be null")

    # =========================================================================
    # Projects
    # =========================================================================

    async def list_projects(self, **filters: Any) -> list[Project]:
        """List projects matching ``filters`` (see ``PROJECT_FILTERS``)."""
        query = build_list_query(PROJECT_FILTERS, self._base_query(), **filters)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_project(self, project_id: UUID) -> Project:
        """Get a project with tags and milestones."""
        return await self._load(project_id)

    async def create_project(
        self,
        data: dict[str, Any],
        tag_ids: Sequence[UUID] = (),
    ) -> Project:
        """Create a project and link its tags."""
        if not (data.get("name") or "").strip():
            raise ValidationError("Project name is required")
        # null means "use the default" on create
        values = {key: value for key, value in data.items() if value is not None}
        self._check_fields(values)

        project = Project(**values)
        self.db.add(project)
        await self.db.flush()

        if tag_ids:
            await replace_project_tags(self.db, project.id, tag_ids)

        logger.info("project_created", project_id=str(project.id), tag_count=len(tag_ids))
        return await self._load(project.id)

    async def update_project(
        self,
        project_id: UUID,
        updates: dict[str, Any],
        tag_ids: Sequence[UUID] | None = None,
    ) -> Project:
        """Apply a partial update.

        ``tag_ids`` of ``None`` leaves the tags alone; any list (including an
        empty one) replaces the whole set.
        """
        project = await self._load(project_id)
        self._check_fields(updates)

        for field, value in updates.items():
            setattr(project, field, value)
        await self.db.flush()

        if tag_ids is not None:
            await replace_project_tags(self.db, project_id, tag_ids)

        logger.info(
            "project_updated",
            project_id=str(project_id),
            fields=sorted(updates),
            tags_replaced=tag_ids is not None,
        )
        return await self._load(project_id)

    async def delete_project(self, project_id: UUID) -> None:
        """Delete a project with its milestones and tag links."""
        project = await self._load(project_id)
        await self.db.delete(project)
        await self.db.flush()

        logger.info("project_deleted", project_id=str(project_id))

    # =========================================================================
    # Milestones
    # =========================================================================

    async def _get_milestone(self, project_id: UUID, milestone_id: UUID) -> Milestone:
        result = await self.db.execute(
            select(Milestone).where(
                Milestone.id == milestone_id,
                Milestone.project_id == project_id,
            )
        )
        milestone = result.scalar_one_or_none()
        if milestone is None:
            raise NotFoundError("Milestone", milestone_id)
        return milestone

    async def add_milestone(
        self,
        project_id: UUID,
        title: str | None,
        due_date: date | None = None,
    ) -> Milestone:
        """Add a milestone to a project."""
        await self._load(project_id)
        if title is None or not title.strip():
            raise ValidationError("Milestone title is required")

        milestone = Milestone(project_id=project_id, title=title, due_date=due_date)
        self.db.add(milestone)
        await self.db.flush()

        logger.info("milestone_added", project_id=str(project_id), milestone_id=str(milestone.id))
        return milestone

    async def set_milestone_completed(
        self,
        project_id: UUID,
        milestone_id: UUID,
        completed: bool,
    ) -> Milestone:
        """Mark a milestone done or not done."""
        milestone = await self._get_milestone(project_id, milestone_id)
        milestone.completed = completed
        await self.db.flush()

        logger.info(
            "milestone_updated",
            milestone_id=str(milestone_id),
            completed=completed,
        )
        return milestone

    async def delete_milestone(self, project_id: UUID, milestone_id: UUID) -> None:
        """Remove a milestone."""
        milestone = await self._get_milestone(project_id, milestone_id)
        await self.db.delete(milestone)
        await self.db.flush()

        logger.info("milestone_deleted", milestone_id=str(milestone_id))
