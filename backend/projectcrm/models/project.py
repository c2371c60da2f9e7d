"""Project, milestone, tag and task models."""

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from projectcrm.db.base import Base, BaseModel, JSONType, UTCDateTime, utcnow

if TYPE_CHECKING:
    from projectcrm.models.client import Client

PROJECT_STATUSES = ("idea", "planning", "in_progress", "on_hold", "completed", "archived")
PRIORITIES = ("low", "medium", "high", "urgent")
TASK_STATUSES = ("backlog", "in_progress", "blocked", "done")
DEFAULT_TAG_COLOR = "#6366f1"


class Project(BaseModel):
    """A tracked project with milestones and tags."""

    __tablename__ = "projects"

    # Basic info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Status and priority are stored as given; see PROJECT_STATUSES/PRIORITIES
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="idea")
    priority: Mapped[str] = mapped_column(String(50), nullable=False, default="medium")
    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)

    client_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Links and stack
    github_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    demo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    tech_stack: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timeline
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    target_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completed_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Relationships
    client: Mapped["Client | None"] = relationship("Client", back_populates="projects")
    milestones: Mapped[list["Milestone"]] = relationship(
        "Milestone",
        back_populates="project",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Milestone.created_at",
    )
    tag_links: Mapped[list["ProjectTag"]] = relationship(
        "ProjectTag",
        back_populates="project",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProjectTag.position",
    )

    @property
    def tags(self) -> list["Tag"]:
        """Associated tags in the order they were assigned."""
        return [link.tag for link in self.tag_links]


class Milestone(BaseModel):
    """A dated checkpoint within a project."""

    __tablename__ = "milestones"

    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    project: Mapped["Project"] = relationship("Project", back_populates="milestones")


class Tag(BaseModel):
    """A named, colored label that can be attached to projects."""

    __tablename__ = "tags"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default=DEFAULT_TAG_COLOR)

    # Association rows go away with the tag (ON DELETE CASCADE)
    project_links: Mapped[list["ProjectTag"]] = relationship(
        "ProjectTag",
        back_populates="tag",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ProjectTag(Base):
    """Association row linking one project to one tag."""

    __tablename__ = "project_tags"

    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    # Index of the tag in the list the client submitted
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow
    )

    project: Mapped["Project"] = relationship("Project", back_populates="tag_links")
    tag: Mapped["Tag"] = relationship("Tag", back_populates="project_links", lazy="selectin")


class Task(BaseModel):
    """A kanban card, optionally attached to a project."""

    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_status_position", "status", "position"),)

    project_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="backlog", index=True)
    priority: Mapped[str] = mapped_column(String(50), nullable=False, default="medium")
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Ordering within status column; not unique
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    project: Mapped["Project | None"] = relationship("Project")
