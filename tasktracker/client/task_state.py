from __future__ import annotations

import uuid
from typing import Any

from .api import ActionResult, ApiClientError, TaskTrackerAPI
from .session import SessionState


def _canonical_id(task_id: str) -> str:
    # The server accepts any uuid spelling and answers with the hex form.
    try:
        return uuid.UUID(task_id).hex
    except (TypeError, ValueError):
        return task_id


class TaskState:
    """
    In-memory task list kept in step with the server.

    Nothing is predicted locally: the list only changes after the server
    confirms a call, and failed calls leave it untouched.
    """

    def __init__(self, api: TaskTrackerAPI, session: SessionState) -> None:
        self._api = api
        self._session = session

        self.tasks: list[dict[str, Any]] = []
        self.pagination: dict[str, Any] | None = None
        self.loading = False
        self.error: str | None = None

    def fetch_tasks(self, **filters: Any) -> ActionResult:
        self._start()
        try:
            data = self._api.list_tasks(self._session.token, **filters)
        except ApiClientError as exc:
            return self._fail(exc.message)
        self.tasks = list(data["tasks"])
        self.pagination = data.get("pagination")
        self.loading = False
        return ActionResult(success=True)

    def add_task(self, title: str, **fields: Any) -> ActionResult:
        self._start()
        try:
            task = self._api.create_task(self._session.token, title=title, **fields)
        except ApiClientError as exc:
            return self._fail(exc.message)
        self.tasks = [task, *self.tasks]
        self.loading = False
        return ActionResult(success=True)

    def update_task(self, task_id: str, **fields: Any) -> ActionResult:
        self._start()
        try:
            task = self._api.update_task(self._session.token, task_id, **fields)
        except ApiClientError as exc:
            return self._fail(exc.message)
        self._replace(task)
        return ActionResult(success=True)

    def toggle_task(self, task_id: str) -> ActionResult:
        self._start()
        try:
            task = self._api.toggle_task(self._session.token, task_id)
        except ApiClientError as exc:
            return self._fail(exc.message)
        self._replace(task)
        return ActionResult(success=True)

    def delete_task(self, task_id: str) -> ActionResult:
        self._start()
        try:
            self._api.delete_task(self._session.token, task_id)
        except ApiClientError as exc:
            return self._fail(exc.message)
        gone = _canonical_id(task_id)
        self.tasks = [t for t in self.tasks if _canonical_id(t["id"]) != gone]
        self.loading = False
        return ActionResult(success=True)

    def clear_error(self) -> None:
        self.error = None

    def _start(self) -> None:
        self.loading = True
        self.error = None

    def _replace(self, task: dict[str, Any]) -> None:
        self.tasks = [task if t["id"] == task["id"] else t for t in self.tasks]
        self.loading = False

    def _fail(self, message: str) -> ActionResult:
        self.loading = False
        self.error = message
        return ActionResult(success=False, error=message)
