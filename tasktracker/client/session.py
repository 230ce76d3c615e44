from __future__ import annotations

import logging
from typing import Any

from .api import ActionResult, ApiClientError, TaskTrackerAPI
from .storage import MemoryTokenStorage, TokenStorage

logger = logging.getLogger(__name__)


class SessionState:
    """
    Current user + token for one client.

    The token is read from storage on construction; call load() once at
    startup to resolve it to a user.
    """

    def __init__(
        self,
        api: TaskTrackerAPI,
        storage: TokenStorage | MemoryTokenStorage | None = None,
    ) -> None:
        self._api = api
        self._storage = storage if storage is not None else MemoryTokenStorage()

        self.user: dict[str, Any] | None = None
        self.token: str | None = self._storage.get()
        self.loading = False
        self.error: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.token is not None

    def load(self) -> None:
        if not self.token:
            self.loading = False
            return

        self.loading = True
        try:
            self.user = self._api.me(self.token)
        except ApiClientError as exc:
            # A stale token simply means "logged out".
            logger.info("Stored token rejected: %s", exc.message)
            self._clear()
        finally:
            self.loading = False

    def login(self, email: str, password: str) -> ActionResult:
        self.loading = True
        try:
            data = self._api.login(email, password)
        except ApiClientError as exc:
            return self._fail(exc.message)
        return self._establish(data)

    def register(self, username: str, email: str, password: str) -> ActionResult:
        self.loading = True
        try:
            data = self._api.register(username, email, password)
        except ApiClientError as exc:
            return self._fail(exc.message)
        return self._establish(data)

    def logout(self) -> None:
        self._clear()

    def clear_error(self) -> None:
        self.error = None

    def _establish(self, data: dict[str, Any]) -> ActionResult:
        self._storage.set(data["token"])
        self.token = data["token"]
        self.user = data["user"]
        self.loading = False
        self.error = None
        return ActionResult(success=True)

    def _fail(self, message: str) -> ActionResult:
        self._storage.clear()
        self.token = None
        self.user = None
        self.loading = False
        self.error = message
        return ActionResult(success=False, error=message)

    def _clear(self) -> None:
        self._storage.clear()
        self.token = None
        self.user = None
        self.loading = False
        self.error = None
