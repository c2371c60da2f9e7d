"""SQLAlchemy models package."""

from projectcrm.models.client import APIKey, Client
from projectcrm.models.document import Document
from projectcrm.models.project import (
    DEFAULT_TAG_COLOR,
    PRIORITIES,
    PROJECT_STATUSES,
    TASK_STATUSES,
    Milestone,
    Project,
    ProjectTag,
    Tag,
    Task,
)
from projectcrm.models.user import AppUser, OTPCode

__all__ = [
    "APIKey",
    "AppUser",
    "Client",
    "DEFAULT_TAG_COLOR",
    "Document",
    "Milestone",
    "OTPCode",
    "PRIORITIES",
    "PROJECT_STATUSES",
    "Project",
    "ProjectTag",
    "TASK_STATUSES",
    "Tag",
    "Task",
]
