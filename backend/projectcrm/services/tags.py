"""Tag catalog and project-tag association management."""

from collections.abc import Sequence
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from projectcrm.exceptions import ConflictError, NotFoundError, ValidationError
from projectcrm.models import DEFAULT_TAG_COLOR, Project, ProjectTag, Tag

logger = structlog.get_logger()

TAG_EXISTS_MESSAGE = "Tag already exists"


def unique_ids(tag_ids: Sequence[UUID]) -> list[UUID]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set[UUID] = set()
    ordered = []
    for tag_id in tag_ids:
        if tag_id not in seen:
            seen.add(tag_id)
            ordered.append(tag_id)
    return ordered


def project_tags(project: Project) -> list[Tag]:
    """Flatten a project's association rows into its ordered tag records."""
    return [link.tag for link in project.tag_links]


async def replace_project_tags(
    db: AsyncSession,
    project_id: UUID,
    tag_ids: Sequence[UUID],
) -> list[UUID]:
    """Make ``tag_ids`` the project's complete tag set.

    All existing associations are deleted and one row per id is inserted in
    the submitted order. Applying the same list twice leaves the same set.
    Unknown tag ids are rejected before anything is written.
    """
    ordered = unique_ids(tag_ids)

    if ordered:
        result = await db.execute(select(Tag.id).where(Tag.id.in_(ordered)))
        known = set(result.scalars().all())
        missing = [str(tag_id) for tag_id in ordered if tag_id not in known]
        if missing:
            raise ValidationError(f"Unknown tag ids: {', '.join(missing)}")

    # Statement-level writes; callers reload the project to see the new set
    await db.execute(
        delete(ProjectTag)
        .where(ProjectTag.project_id == project_id)
        .execution_options(synchronize_session=False)
    )
    if ordered:
        await db.execute(
            insert(ProjectTag),
            [
                {"project_id": project_id, "tag_id": tag_id, "position": index}
                for index, tag_id in enumerate(ordered)
            ],
        )

    logger.info(
        "project_tags_replaced",
        project_id=str(project_id),
        tag_count=len(ordered),
    )
    return ordered


class TagService:
    """Service for the tag catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_tags(self) -> list[Tag]:
        """All tags ordered by name."""
        result = await self.db.execute(select(Tag).order_by(Tag.name.asc()))
        return list(result.scalars().all())

    async def get_tag(self, tag_id: UUID) -> Tag:
        """Get a tag by id."""
        tag = await self.db.get(Tag, tag_id)
        if tag is None:
            raise NotFoundError("Tag", tag_id)
        return tag

    async def _ensure_name_free(self, name: str, exclude_id: UUID | None = None) -> None:
        query = select(Tag.id).where(Tag.name == name)
        if exclude_id is not None:
            query = query.where(Tag.id != exclude_id)
        result = await self.db.execute(query)
        if result.first() is not None:
            raise ConflictError(TAG_EXISTS_MESSAGE)

    async def _flush_unique(self) -> None:
        try:
            await self.db.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent insert of the same name
            await self.db.rollback()
            raise ConflictError(TAG_EXISTS_MESSAGE) from exc

    async def create_tag(self, name: str | None, color: str | None = None) -> Tag:
        """Create a tag with a unique name."""
        if name is None or not name.strip():
            raise ValidationError("Tag name is required")

        await self._ensure_name_free(name)
        tag = Tag(name=name, color=color or DEFAULT_TAG_COLOR)
        self.db.add(tag)
        await self._flush_unique()

        logger.info("tag_created", tag_id=str(tag.id), name=name)
        return tag

    async def update_tag(
        self,
        tag_id: UUID,
        name: str | None = None,
        color: str | None = None,
    ) -> Tag:
        """Rename and/or recolor a tag."""
        tag = await self.get_tag(tag_id)

        if name is not None:
            if not name.strip():
                raise ValidationError("Tag name is required")
            await self._ensure_name_free(name, exclude_id=tag_id)
            tag.name = name
        if color is not None:
            tag.color = color
        await self._flush_unique()

        logger.info("tag_updated", tag_id=str(tag_id))
        return tag

    async def delete_tag(self, tag_id: UUID) -> None:
        """Delete a tag; its project associations are removed with it."""
        tag = await self.get_tag(tag_id)
        await self.db.delete(tag)
        await self.db.flush()

        logger.info("tag_deleted", tag_id=str(tag_id))
