from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class TokenStorage:
    """Keeps the bearer token on disk so a session survives restarts."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def get(self) -> str | None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable token file %s", self._path)
            return None
        token = data.get("token") if isinstance(data, dict) else None
        return token if isinstance(token, str) and token else None

    def set(self, token: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps({"token": token}), encoding="utf-8")

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


class MemoryTokenStorage:
    def __init__(self, token: str | None = None) -> None:
        self._token = token

    def get(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None
