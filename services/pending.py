# services/pending.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Optional, Tuple

from errors import OperationPendingError

logger = logging.getLogger(__name__)

Key = Tuple[str, str]


class PendingOverlay:
    """Marks (project_id, user_id) pairs with an in-flight write.

    A mark is cleared only once the backend has answered, success or failure.
    The UI reads it to disable the button that started the write.
    """

    def __init__(self):
        self._pending: Dict[Key, str] = {}

    def begin(self, project_id: str, user_id: str, action: str) -> None:
        key = (project_id, user_id)
        if key in self._pending:
            raise OperationPendingError(project_id, user_id, self._pending[key])
        self._pending[key] = action

    def end(self, project_id: str, user_id: str) -> None:
        self._pending.pop((project_id, user_id), None)

    def state(self, project_id: str, user_id: str) -> Optional[str]:
        return self._pending.get((project_id, user_id))

    def is_pending(self, project_id: str, user_id: str) -> bool:
        return (project_id, user_id) in self._pending

    def pending_for_project(self, project_id: str) -> Dict[str, str]:
        return {uid: action for (pid, uid), action in self._pending.items() if pid == project_id}

    @contextmanager
    def hold(self, project_id: str, user_id: str, action: str):
        self.begin(project_id, user_id, action)
        logger.debug("%s user %s on project %s", action, user_id, project_id)
        try:
            yield
        finally:
            self.end(project_id, user_id)

    def __len__(self):
        return len(self._pending)
