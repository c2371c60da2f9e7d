"""Client-side kanban board with optimistic drag and drop.

The board mirrors ``GET /tasks/kanban``. Dropping a card moves it locally
first, then asks the server to put it at the end of the target column. If
the server call fails the board is reloaded from the server instead of
being patched back by hand.
"""

from dataclasses import dataclass

import httpx
import structlog

from projectcrm.client.api import CRMClient

logger = structlog.get_logger()

KANBAN_COLUMNS = ("backlog", "in_progress", "blocked", "done")


@dataclass(frozen=True)
class DragSession:
    """The card being dragged and the column it left."""

    task_id: str
    source_status: str


def empty_columns() -> dict[str, list[dict]]:
    return {status: [] for status in KANBAN_COLUMNS}


class KanbanBoard:
    """Board state for one (optional) project filter."""

    def __init__(self, api: CRMClient, project_id: str | None = None):
        self.api = api
        self.project_id = project_id
        self.columns: dict[str, list[dict]] = empty_columns()
        self.loading = True
        self.drag: DragSession | None = None

    async def load(self) -> None:
        """Fetch the board; on failure the current columns are kept."""
        try:
            board = await self.api.get_kanban(self.project_id)
        except httpx.HTTPError as e:
            logger.error("kanban_load_failed", project_id=self.project_id, error=str(e))
            return
        finally:
            self.loading = False

        self.columns = {status: list(board.get(status, [])) for status in KANBAN_COLUMNS}

    async def select_project(self, project_id: str | None) -> None:
        """Switch the project filter and reload."""
        self.project_id = project_id
        await self.load()

    def drag_start(self, task: dict) -> bool:
        """Pick up a card. Only one drag may be open at a time."""
        if self.drag is not None:
            return False
        self.drag = DragSession(task_id=str(task["id"]), source_status=task["status"])
        return True

    def drag_end(self) -> None:
        """Abandon the current drag without moving anything."""
        self.drag = None

    async def drop(self, target_status: str) -> bool:
        """Drop the dragged card on ``target_status``.

        Returns True when the server accepted the move. Dropping without an
        open drag, or onto the column the card came from, sends nothing.
        """
        if target_status not in KANBAN_COLUMNS:
            raise ValueError(f"Unknown kanban column: {target_status}")

        session = self.drag
        if session is None or session.source_status == target_status:
            self.drag = None
            return False

        try:
            source = self.columns.get(session.source_status, [])
            moved = next((t for t in source if str(t["id"]) == session.task_id), None)
            if moved is None:
                logger.warning("dragged_task_missing", task_id=session.task_id)
                return False

            self.columns[session.source_status] = [
                t for t in source if str(t["id"]) != session.task_id
            ]
            target = [*self.columns[target_status], {**moved, "status": target_status}]
            self.columns[target_status] = target
            position = len(target)

            try:
                await self.api.move_task(session.task_id, target_status, position)
            except httpx.HTTPError as e:
                logger.error(
                    "task_move_failed",
                    task_id=session.task_id,
                    status=target_status,
                    error=str(e),
                )
                await self.load()
                return False

            logger.info(
                "task_moved", task_id=session.task_id, status=target_status, position=position
            )
            return True
        finally:
            self.drag = None
