"""Tests for the tag catalog and project tag associations."""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from projectcrm.exceptions import ConflictError, NotFoundError, ValidationError
from projectcrm.models import DEFAULT_TAG_COLOR, ProjectTag
from projectcrm.services.projects import ProjectService
from projectcrm.services.tags import TagService, replace_project_tags, unique_ids


def test_unique_ids_keeps_first_occurrence() -> None:
    a, b = uuid4(), uuid4()

    assert unique_ids([a, b, a, b]) == [a, b]
    assert unique_ids([]) == []


@pytest.mark.asyncio
async def test_create_tag_defaults_color(db: AsyncSession) -> None:
    tag = await TagService(db).create_tag("llm")

    assert tag.color == DEFAULT_TAG_COLOR


@pytest.mark.asyncio
async def test_duplicate_tag_name_conflicts(db: AsyncSession) -> None:
    service = TagService(db)
    await service.create_tag("llm")
    other = await service.create_tag("vision")

    with pytest.raises(ConflictError, match="Tag already exists"):
        await service.create_tag("llm")
    with pytest.raises(ConflictError):
        await service.update_tag(other.id, name="llm")


@pytest.mark.asyncio
async def test_tag_name_required(db: AsyncSession) -> None:
    with pytest.raises(ValidationError):
        await TagService(db).create_tag("  ")


@pytest.mark.asyncio
async def test_rename_to_own_name_is_allowed(db: AsyncSession) -> None:
    service = TagService(db)
    tag = await service.create_tag("llm", "#111111")

    updated = await service.update_tag(tag.id, name="llm", color="#222222")

    assert updated.color == "#222222"


@pytest.mark.asyncio
async def test_tags_listed_by_name(db: AsyncSession) -> None:
    service = TagService(db)
    for name in ("vision", "agents", "llm"):
        await service.create_tag(name)

    assert [tag.name for tag in await service.list_tags()] == ["agents", "llm", "vision"]


@pytest.mark.asyncio
async def test_replace_scenario(db: AsyncSession) -> None:
    tags = TagService(db)
    t1 = await tags.create_tag("t1")
    t2 = await tags.create_tag("t2")
    projects = ProjectService(db)

    project = await projects.create_project({"name": "P"}, tag_ids=[t1.id, t2.id])
    assert [tag.name for tag in project.tags] == ["t1", "t2"]

    project = await projects.update_project(project.id, {}, tag_ids=[t2.id])
    assert [tag.name for tag in project.tags] == ["t2"]

    project = await projects.update_project(project.id, {}, tag_ids=[])
    assert project.tags == []


@pytest.mark.asyncio
async def test_replace_is_idempotent(db: AsyncSession) -> None:
    tags = TagService(db)
    t1 = await tags.create_tag("t1")
    t2 = await tags.create_tag("t2")
    project = await ProjectService(db).create_project({"name": "P"})

    await replace_project_tags(db, project.id, [t2.id, t1.id])
    await replace_project_tags(db, project.id, [t2.id, t1.id, t2.id])

    result = await db.execute(
        select(ProjectTag.tag_id)
        .where(ProjectTag.project_id == project.id)
        .order_by(ProjectTag.position)
    )
    assert list(result.scalars().all()) == [t2.id, t1.id]


@pytest.mark.asyncio
async def test_update_without_tags_keeps_them(db: AsyncSession) -> None:
    t1 = await TagService(db).create_tag("t1")
    projects = ProjectService(db)
    project = await projects.create_project({"name": "P"}, tag_ids=[t1.id])

    project = await projects.update_project(project.id, {"status": "planning"})

    assert project.status == "planning"
    assert [tag.name for tag in project.tags] == ["t1"]


@pytest.mark.asyncio
async def test_unknown_tag_ids_are_rejected(db: AsyncSession) -> None:
    project = await ProjectService(db).create_project({"name": "P"})

    with pytest.raises(ValidationError, match="Unknown tag ids"):
        await replace_project_tags(db, project.id, [uuid4()])


@pytest.mark.asyncio
async def test_deleting_tag_removes_associations(db: AsyncSession) -> None:
    tags = TagService(db)
    t1 = await tags.create_tag("t1")
    t2 = await tags.create_tag("t2")
    projects = ProjectService(db)
    project = await projects.create_project({"name": "P"}, tag_ids=[t1.id, t2.id])
    await db.commit()

    await tags.delete_tag(t1.id)
    await db.commit()

    project = await projects.get_project(project.id)
    assert [tag.name for tag in project.tags] == ["t2"]
    with pytest.raises(NotFoundError):
        await tags.get_tag(t1.id)


@pytest.mark.asyncio
async def test_deleting_project_removes_associations(db: AsyncSession) -> None:
    t1 = await TagService(db).create_tag("t1")
    projects = ProjectService(db)
    project = await projects.create_project({"name": "P"}, tag_ids=[t1.id])
    await db.commit()

    await projects.delete_project(project.id)
    await db.commit()

    count = await db.execute(select(func.count()).select_from(ProjectTag))
    assert count.scalar_one() == 0


@pytest.mark.asyncio
async def test_tag_routes(client: AsyncClient) -> None:
    response = await client.post("/api/tags", json={"name": "rag", "color": "#ff0000"})
    assert response.status_code == 201
    tag = response.json()

    response = await client.post("/api/tags", json={"name": "rag"})
    assert response.status_code == 400
    assert response.json() == {"error": "Tag already exists", "code": "CONFLICT"}

    response = await client.put(f"/api/tags/{tag['id']}", json={"color": "#00ff00"})
    assert response.json()["color"] == "#00ff00"

    response = await client.delete(f"/api/tags/{tag['id']}")
    assert response.json() == {"message": "Tag deleted successfully"}

    response = await client.delete(f"/api/tags/{tag['id']}")
    assert response.status_code == 404
