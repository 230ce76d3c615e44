from .api import ActionResult, ApiClientError, TaskTrackerAPI
from .session import SessionState
from .storage import MemoryTokenStorage, TokenStorage
from .task_state import TaskState

__all__ = [
    "ActionResult",
    "ApiClientError",
    "MemoryTokenStorage",
    "SessionState",
    "TaskState",
    "TaskTrackerAPI",
    "TokenStorage",
]
