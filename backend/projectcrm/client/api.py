"""HTTP client for the project CRM API."""

from typing import Any
from uuid import UUID

import httpx
import structlog

logger = structlog.get_logger()


class CRMClient:
    """Thin async wrapper over the REST endpoints the board uses.

    Every call raises ``httpx.HTTPError`` on transport failures and non-2xx
    answers; callers decide whether that is fatal.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000/api",
        timeout: float = 15.0,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token = token
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers=self._headers(),
        ) as client:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()

    @staticmethod
    def _params(**params: Any) -> dict[str, str]:
        return {key: str(value) for key, value in params.items() if value is not None}

    async def get_kanban(self, project_id: UUID | str | None = None) -> dict[str, list[dict]]:
        """Tasks grouped by kanban column."""
        return await self._request("GET", "/tasks/kanban", params=self._params(project_id=project_id))

    async def list_tasks(
        self,
        project_id: UUID | str | None = None,
        status: str | None = None,
    ) -> list[dict]:
        return await self._request(
            "GET", "/tasks", params=self._params(project_id=project_id, status=status)
        )

    async def create_task(self, title: str, **fields: Any) -> dict:
        payload = {"title": title, **{k: str(v) if isinstance(v, UUID) else v for k, v in fields.items()}}
        return await self._request("POST", "/tasks", json=payload)

    async def move_task(self, task_id: UUID | str, status: str, position: int) -> dict:
        """Move a task to ``status`` at ``position``."""
        return await self._request(
            "PATCH", f"/tasks/{task_id}/status", json={"status": status, "position": position}
        )

    async def list_projects(self, **filters: Any) -> list[dict]:
        return await self._request("GET", "/projects", params=self._params(**filters))

    async def list_tags(self) -> list[dict]:
        return await self._request("GET", "/tags")
