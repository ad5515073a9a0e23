# utils/capacity.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from errors import CapacityExceededError

MAX_TEAM_SIZE = 9
NEAR_CAPACITY_MARGIN = 2
MANAGER_ROLES = {"manager", "project manager", "project_manager", "pm"}


def is_manager_role(role: Optional[str]) -> bool:
    return (role or "").strip().lower() in MANAGER_ROLES


@dataclass(frozen=True)
class CapacityReport:
    team_size: int
    manager_count: int
    max_members: int
    max_managers: Optional[int]  # None: no manager ceiling configured
    can_add: bool
    can_add_manager: bool
    is_at_capacity: bool
    is_near_capacity: bool

    @property
    def has_manager(self) -> bool:
        return self.manager_count > 0


def _active(roster: Iterable) -> List:
    return [m for m in roster if getattr(m, "is_active", True)]


def validate(roster: Iterable, proposed_role: Optional[str] = None,
             max_members: int = MAX_TEAM_SIZE, max_managers: Optional[int] = None,
             near_margin: int = NEAR_CAPACITY_MARGIN) -> CapacityReport:
    """Advisory check of whether one more member (in `proposed_role`) fits the roster.

    The backend still has the final word: another client may fill the team
    between this check and the submit.
    """
    members = _active(roster)
    team_size = len(members)
    manager_count = sum(1 for m in members if is_manager_role(m.role))

    is_at_capacity = team_size >= max_members
    can_add_manager = max_managers is None or manager_count < max_managers
    can_add = not is_at_capacity
    if is_manager_role(proposed_role):
        can_add = can_add and can_add_manager

    return CapacityReport(
        team_size=team_size,
        manager_count=manager_count,
        max_members=max_members,
        max_managers=max_managers,
        can_add=can_add,
        can_add_manager=can_add_manager,
        is_at_capacity=is_at_capacity,
        is_near_capacity=team_size >= max_members - near_margin,
    )


def ensure_can_add(roster: Iterable, proposed_role: Optional[str] = None, **limits) -> CapacityReport:
    report = validate(roster, proposed_role, **limits)
    if report.is_at_capacity:
        raise CapacityExceededError(report)
    if not report.can_add:
        raise CapacityExceededError(
            report,
            f"Project already has {report.manager_count}/{report.max_managers} managers",
        )
    return report


def ensure_role_change(roster: Iterable, user_id: str, new_role: str, **limits) -> CapacityReport:
    """Check promoting an existing member; team size is unchanged by a role change."""
    members = _active(roster)
    current = next((m for m in members if m.user_id == user_id), None)
    others = [m for m in members if m.user_id != user_id]
    report = validate(others, new_role, **limits)
    if current is not None and is_manager_role(new_role) and not is_manager_role(current.role):
        if not report.can_add_manager:
            raise CapacityExceededError(
                report,
                f"Project already has {report.manager_count}/{report.max_managers} managers",
            )
    return validate(members, None, **limits)
