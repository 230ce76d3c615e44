from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import get_settings

logger = logging.getLogger(__name__)

# Python keyword -> wire field name for task bodies.
_TASK_FIELDS = {
    "title": "title",
    "description": "description",
    "completed": "completed",
    "priority": "priority",
    "category": "category",
    "due_date": "dueDate",
}


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of a client action; ``error`` is a human-readable message."""

    success: bool
    error: str | None = None


class ApiClientError(Exception):
    def __init__(self, status_code: int | None, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def task_body(fields: dict[str, Any]) -> dict[str, Any]:
    body: dict[str, Any] = {}
    for key, value in fields.items():
        if key not in _TASK_FIELDS:
            raise TypeError(f"unknown task field: {key}")
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        body[_TASK_FIELDS[key]] = value
    return body


class TaskTrackerAPI:
    """
    Thin REST client over httpx.

    Any httpx.Client works as transport, including FastAPI's TestClient.
    """

    def __init__(self, base_url: str | None = None, http: httpx.Client | None = None) -> None:
        self._http = http or httpx.Client(base_url=base_url or get_settings().api_url)

    def close(self) -> None:
        self._http.close()

    # ---- low-level helpers ----

    def _request(
        self,
        method: str,
        path: str,
        *,
        fallback: str,
        token: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            resp = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiClientError(None, fallback) from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise ApiClientError(resp.status_code, message or fallback)
        return data

    # ---- auth ----

    def register(self, username: str, email: str, password: str) -> dict[str, Any]:
        return self._request(
            "POST",
            "/auth/register",
            fallback="Registration failed",
            json={"username": username, "email": email, "password": password},
        )

    def login(self, email: str, password: str) -> dict[str, Any]:
        return self._request(
            "POST",
            "/auth/login",
            fallback="Login failed",
            json={"email": email, "password": password},
        )

    def me(self, token: str) -> dict[str, Any]:
        return self._request("GET", "/auth/me", fallback="Failed to load user", token=token)["user"]

    # ---- tasks ----

    def list_tasks(
        self,
        token: str | None,
        *,
        page: int | None = None,
        limit: int | None = None,
        completed: bool | None = None,
        priority: str | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "page": page,
            "limit": limit,
            "completed": None if completed is None else str(completed).lower(),
            "priority": priority,
            "sortBy": sort_by,
            "sortOrder": sort_order,
        }
        return self._request(
            "GET",
            "/tasks",
            fallback="Failed to fetch tasks",
            token=token,
            params={k: v for k, v in params.items() if v is not None},
        )

    def task_stats(self, token: str | None) -> dict[str, Any]:
        return self._request(
            "GET", "/tasks/stats", fallback="Failed to fetch task statistics", token=token
        )["stats"]

    def create_task(self, token: str | None, **fields: Any) -> dict[str, Any]:
        return self._request(
            "POST", "/tasks", fallback="Failed to create task", token=token, json=task_body(fields)
        )["task"]

    def update_task(self, token: str | None, task_id: str, **fields: Any) -> dict[str, Any]:
        return self._request(
            "PATCH",
            f"/tasks/{task_id}",
            fallback="Failed to update task",
            token=token,
            json=task_body(fields),
        )["task"]

    def toggle_task(self, token: str | None, task_id: str) -> dict[str, Any]:
        return self._request(
            "PATCH", f"/tasks/{task_id}/toggle", fallback="Failed to update task", token=token
        )["task"]

    def delete_task(self, token: str | None, task_id: str) -> None:
        self._request("DELETE", f"/tasks/{task_id}", fallback="Failed to delete task", token=token)
