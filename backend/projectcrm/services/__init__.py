"""Services package."""

from projectcrm.services.email import EmailService
from projectcrm.services.kanban import TaskBoardService
from projectcrm.services.projects import ProjectService
from projectcrm.services.storage import DocumentStorage
from projectcrm.services.tags import TagService, replace_project_tags

__all__ = [
    "DocumentStorage",
    "EmailService",
    "ProjectService",
    "TagService",
    "TaskBoardService",
    "replace_project_tags",
]
