"""Python client for the project CRM API and its kanban board."""

from projectcrm.client.api import CRMClient
from projectcrm.client.board import DragSession, KanbanBoard

__all__ = ["CRMClient", "DragSession", "KanbanBoard"]
