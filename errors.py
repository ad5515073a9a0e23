# errors.py
from __future__ import annotations

from typing import Optional


class MembershipError(Exception):
    """Base class for team-allocation failures shown to the user."""


class DuplicateMembershipError(MembershipError):
    def __init__(self, project_id: str, user_id: str, message: Optional[str] = None):
        self.project_id = project_id
        self.user_id = user_id
        super().__init__(message or f"User {user_id} is already a member of project {project_id}")


class MembershipNotFoundError(MembershipError):
    def __init__(self, project_id: str, user_id: str):
        self.project_id = project_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not a member of project {project_id}")


class CapacityExceededError(MembershipError):
    """Raised before submitting an add that the roster cannot take."""

    def __init__(self, report, message: Optional[str] = None):
        self.report = report
        super().__init__(
            message
            or f"Team is at maximum capacity ({report.team_size}/{report.max_members} members)"
        )


class TransportError(MembershipError):
    """Network or server failure. No state changed, so the whole operation can be retried."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class TransferPartialFailureError(MembershipError):
    """The member was added to the target but could not be removed from the source."""

    def __init__(self, transfer, cause: Optional[Exception] = None):
        self.transfer = transfer
        self.cause = cause
        super().__init__(
            f"User {transfer.user_id} was added to project {transfer.target_project_id} "
            f"but is still on project {transfer.source_project_id}"
        )


class OperationPendingError(MembershipError):
    def __init__(self, project_id: str, user_id: str, action: str):
        self.project_id = project_id
        self.user_id = user_id
        self.action = action
        super().__init__(f"User {user_id} on project {project_id} is already {action}")


class InvalidTransferStateError(MembershipError):
    pass
