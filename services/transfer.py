# services/transfer.py
"""
Moving a member from one project to another.

The move is add-to-target first, remove-from-source second. If the second
step fails the member is on both projects until the removal is retried;
they are never left on neither. There is no automatic rollback of the add.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from errors import (
    CapacityExceededError,
    DuplicateMembershipError,
    InvalidTransferStateError,
    MembershipError,
    MembershipNotFoundError,
    TransferPartialFailureError,
)
from utils.capacity import ensure_can_add

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "developer"


class TransferState(str, Enum):
    IDLE = "idle"
    ADDING_TO_TARGET = "adding_to_target"
    REMOVING_FROM_SOURCE = "removing_from_source"
    DONE = "done"
    FAILED = "failed"


_ALLOWED = {
    TransferState.IDLE: {TransferState.ADDING_TO_TARGET, TransferState.DONE, TransferState.FAILED},
    TransferState.ADDING_TO_TARGET: {TransferState.REMOVING_FROM_SOURCE, TransferState.FAILED},
    TransferState.REMOVING_FROM_SOURCE: {TransferState.DONE, TransferState.FAILED},
    TransferState.DONE: set(),
    TransferState.FAILED: set(),
}


@dataclass
class Transfer:
    user_id: str
    source_project_id: str
    target_project_id: str
    role: Optional[str] = None
    state: TransferState = TransferState.IDLE
    already_member: bool = False
    target_added: bool = False
    target_project_name: Optional[str] = None
    error: Optional[Exception] = None
    history: List[TransferState] = field(default_factory=list)

    def advance(self, state: TransferState) -> None:
        if state not in _ALLOWED[self.state]:
            raise InvalidTransferStateError(f"Cannot move transfer from {self.state.value} to {state.value}")
        self.history.append(self.state)
        self.state = state

    def fail(self, error: Exception) -> None:
        self.error = error
        self.advance(TransferState.FAILED)

    @property
    def is_partial(self) -> bool:
        return self.state is TransferState.FAILED and self.target_added


class TransferCoordinator:
    def __init__(self, store, directory=None, limits: Optional[dict] = None):
        self._store = store
        self._directory = directory
        self._limits = dict(limits or {})

    def _prepare(self, t: Transfer) -> None:
        """Checks that run before anything is written; a failure here changes nothing."""
        source = self._store.find(t.source_project_id, t.user_id)
        if source is None:
            raise MembershipNotFoundError(t.source_project_id, t.user_id)
        if t.role is None:
            t.role = source.role or DEFAULT_ROLE
        ensure_can_add(self._store.get_roster(t.target_project_id), t.role, **self._limits)

    def _project_name(self, project_id: str) -> str:
        if self._directory is None:
            return project_id
        try:
            project = self._directory.get_project(project_id)
        except MembershipError as e:
            logger.warning("Could not resolve name of project %s: %s", project_id, e)
            return project_id
        return project.name if project is not None else project_id

    def transfer(self, user_id: str, source_project_id: str, target_project_id: str,
                 role: Optional[str] = None) -> Transfer:
        t = Transfer(user_id=user_id, source_project_id=source_project_id,
                     target_project_id=target_project_id, role=role)

        if source_project_id == target_project_id:
            t.already_member = True
            t.target_project_name = self._project_name(target_project_id)
            t.advance(TransferState.DONE)
            return t

        try:
            self._prepare(t)
        except CapacityExceededError as e:
            logger.info("Project %s cannot take user %s: %s", target_project_id, user_id, e)
            t.fail(e)
            raise
        except MembershipError as e:
            logger.warning("Transfer of %s from %s not started: %s", user_id, source_project_id, e)
            t.fail(e)
            raise

        t.advance(TransferState.ADDING_TO_TARGET)
        try:
            self._store.add(target_project_id, user_id, t.role,
                            is_team_lead=False, allocation_percentage=100)
        except DuplicateMembershipError as e:
            logger.info("User %s already assigned to project %s", user_id, target_project_id)
            t.fail(e)
            raise
        except MembershipError as e:
            logger.warning("Transfer of %s to %s failed while adding: %s", user_id, target_project_id, e)
            t.fail(e)
            raise
        t.target_added = True

        t.advance(TransferState.REMOVING_FROM_SOURCE)
        try:
            self._store.remove(source_project_id, user_id)
        except MembershipError as e:
            logger.error("User %s added to %s but still on %s: %s",
                         user_id, target_project_id, source_project_id, e)
            t.fail(e)
            raise TransferPartialFailureError(t, e) from e

        return self._finish(t)

    def retry_removal(self, transfer: Transfer) -> Transfer:
        """Re-issue only the removal step of a partial transfer."""
        if not transfer.is_partial:
            raise InvalidTransferStateError("Only a partially failed transfer can retry its removal")

        retry = Transfer(user_id=transfer.user_id,
                         source_project_id=transfer.source_project_id,
                         target_project_id=transfer.target_project_id,
                         role=transfer.role,
                         state=TransferState.REMOVING_FROM_SOURCE,
                         target_added=True,
                         history=list(transfer.history) + [transfer.state])
        try:
            self._store.remove(transfer.source_project_id, transfer.user_id)
        except MembershipError as e:
            retry.fail(e)
            raise TransferPartialFailureError(retry, e) from e
        return self._finish(retry)

    def _finish(self, t: Transfer) -> Transfer:
        self._store.invalidate(t.source_project_id)
        self._store.invalidate(t.target_project_id)
        t.target_project_name = self._project_name(t.target_project_id)
        t.advance(TransferState.DONE)
        logger.info("Moved user %s from %s to %s", t.user_id, t.source_project_id, t.target_project_id)
        return t

