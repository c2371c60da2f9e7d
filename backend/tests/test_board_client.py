"""Tests for the client-side kanban board."""

import json

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport

from projectcrm.client import CRMClient, DragSession, KanbanBoard


def _task(task_id: str, status: str, position: int) -> dict:
    return {"id": task_id, "title": task_id, "status": status, "position": position}


class FakeServer:
    """Answers the kanban and move endpoints from an in-memory board."""

    def __init__(self, board: dict[str, list[dict]], fail_moves: bool = False):
        self.board = board
        self.fail_moves = fail_moves
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET" and request.url.path.endswith("/tasks/kanban"):
            return httpx.Response(200, json=self.board)
        if request.method == "PATCH":
            if self.fail_moves:
                return httpx.Response(500, json={"error": "boom", "code": "STORE_ERROR"})
            return httpx.Response(200, json=json.loads(request.content))
        return httpx.Response(404)

    @property
    def moves(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "PATCH"]


def _board(server: FakeServer) -> KanbanBoard:
    api = CRMClient(base_url="http://crm.test/api", transport=httpx.MockTransport(server))
    return KanbanBoard(api)


def _initial() -> dict[str, list[dict]]:
    return {
        "backlog": [_task("a", "backlog", 1), _task("b", "backlog", 2)],
        "in_progress": [_task("c", "in_progress", 1)],
        "blocked": [],
        "done": [],
    }


@pytest.mark.asyncio
async def test_load_fills_columns() -> None:
    board = _board(FakeServer(_initial()))
    assert board.loading is True

    await board.load()

    assert board.loading is False
    assert [t["id"] for t in board.columns["backlog"]] == ["a", "b"]
    assert board.columns["done"] == []


@pytest.mark.asyncio
async def test_load_failure_keeps_state() -> None:
    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    board = KanbanBoard(CRMClient(base_url="http://crm.test/api", transport=httpx.MockTransport(broken)))
    board.columns["backlog"] = [_task("a", "backlog", 1)]

    await board.load()

    assert board.loading is False
    assert [t["id"] for t in board.columns["backlog"]] == ["a"]


@pytest.mark.asyncio
async def test_select_project_passes_filter() -> None:
    server = FakeServer(_initial())
    board = _board(server)

    await board.select_project("p-1")

    assert server.requests[-1].url.params["project_id"] == "p-1"


@pytest.mark.asyncio
async def test_drop_moves_optimistically_to_end_of_column() -> None:
    server = FakeServer(_initial())
    board = _board(server)
    await board.load()

    assert board.drag_start(board.columns["backlog"][0])
    moved = await board.drop("in_progress")

    assert moved is True
    assert [t["id"] for t in board.columns["backlog"]] == ["b"]
    assert [t["id"] for t in board.columns["in_progress"]] == ["c", "a"]
    assert board.columns["in_progress"][1]["status"] == "in_progress"
    assert json.loads(server.moves[0].content) == {"status": "in_progress", "position": 2}
    assert server.moves[0].url.path == "/api/tasks/a/status"
    assert board.drag is None


@pytest.mark.asyncio
async def test_drop_on_same_column_sends_nothing() -> None:
    server = FakeServer(_initial())
    board = _board(server)
    await board.load()

    board.drag_start(board.columns["backlog"][1])
    moved = await board.drop("backlog")

    assert moved is False
    assert server.moves == []
    assert [t["id"] for t in board.columns["backlog"]] == ["a", "b"]
    assert board.drag is None


@pytest.mark.asyncio
async def test_drop_without_drag_is_noop() -> None:
    server = FakeServer(_initial())
    board = _board(server)

    assert await board.drop("done") is False
    assert server.moves == []


@pytest.mark.asyncio
async def test_drop_on_unknown_column_raises() -> None:
    board = _board(FakeServer(_initial()))

    with pytest.raises(ValueError):
        await board.drop("archived")


@pytest.mark.asyncio
async def test_failed_move_reloads_board() -> None:
    server = FakeServer(_initial(), fail_moves=True)
    board = _board(server)
    await board.load()

    board.drag_start(board.columns["backlog"][0])
    moved = await board.drop("done")

    assert moved is False
    assert [t["id"] for t in board.columns["backlog"]] == ["a", "b"]
    assert board.columns["done"] == []
    kanban_fetches = [r for r in server.requests if r.method == "GET"]
    assert len(kanban_fetches) == 2
    assert board.drag is None


def test_only_one_drag_at_a_time() -> None:
    board = _board(FakeServer(_initial()))

    assert board.drag_start(_task("a", "backlog", 1)) is True
    assert board.drag_start(_task("b", "backlog", 2)) is False
    assert board.drag == DragSession(task_id="a", source_status="backlog")

    board.drag_end()
    assert board.drag is None
    assert board.drag_start(_task("b", "backlog", 2)) is True


@pytest.mark.asyncio
async def test_board_against_api(app: FastAPI) -> None:
    api = CRMClient(base_url="http://testserver/api", transport=ASGITransport(app=app))
    await api.create_task("First")
    await api.create_task("Second")
    board = KanbanBoard(api)
    await board.load()

    board.drag_start(board.columns["backlog"][0])
    assert await board.drop("blocked") is True

    tasks = await api.list_tasks(status="blocked")
    assert [t["title"] for t in tasks] == ["First"]
    assert tasks[0]["position"] == 1
