# services/membership_store.py
"""
Read-through cache of project rosters over a team-member backend.

The backend (``api_client.TeamMemberApi`` or ``db.SqlTeamBackend``) is the
source of truth. The store never patches a cached roster after a write: it
drops it and fetches it again, because the backend may change more than the
row that was written (e.g. re-resolving the project manager on removal).
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from errors import DuplicateMembershipError, MembershipError, MembershipNotFoundError, TransportError
from models.team_membership import TeamMembership
from services.pending import PendingOverlay

logger = logging.getLogger(__name__)


def _check_allocation(allocation_percentage: Optional[int]) -> None:
    if allocation_percentage is None:
        return
    if not 0 <= allocation_percentage <= 100:
        raise ValueError(f"Allocation must be between 0 and 100, got {allocation_percentage}")


class MembershipStore:
    def __init__(self, backend, overlay: Optional[PendingOverlay] = None):
        self._backend = backend
        self.overlay = overlay or PendingOverlay()
        self._rosters: Dict[str, List[TeamMembership]] = {}
        self._closed = False

    # ---- reads ----
    def get_roster(self, project_id: str) -> List[TeamMembership]:
        roster = self._rosters.get(project_id)
        if roster is None:
            roster = self._fetch(project_id)
        return list(roster)

    def find(self, project_id: str, user_id: str) -> Optional[TeamMembership]:
        return next((m for m in self.get_roster(project_id) if m.user_id == user_id), None)

    def is_member(self, project_id: str, user_id: str) -> bool:
        return self.find(project_id, user_id) is not None

    def cached_project_ids(self) -> List[str]:
        return list(self._rosters)

    def _fetch(self, project_id: str) -> List[TeamMembership]:
        members = [m for m in self._backend.list_members(project_id) if m.is_active]
        logger.debug("Fetched %d members for project %s", len(members), project_id)
        if not self._closed:
            self._rosters[project_id] = members
        return members

    def refresh(self, project_id: str) -> None:
        self._fetch(project_id)

    def invalidate(self, project_id: str) -> None:
        if self._closed:
            return
        self._rosters.pop(project_id, None)

    def _reload(self, project_id: str) -> None:
        # runs after the backend has answered; a failed refetch must not undo that answer
        if self._closed:
            return
        self.invalidate(project_id)
        try:
            self.refresh(project_id)
        except TransportError as e:
            logger.warning("Could not refetch roster of project %s: %s", project_id, e)

    # ---- writes ----
    def add(self, project_id: str, user_id: str, role: str, is_team_lead: bool = False,
            allocation_percentage: int = 100) -> TeamMembership:
        _check_allocation(allocation_percentage)
        if self.is_member(project_id, user_id):
            raise DuplicateMembershipError(project_id, user_id)

        with self.overlay.hold(project_id, user_id, "adding"):
            try:
                created = self._backend.add_to_project(
                    project_id, user_id, role,
                    is_team_lead=is_team_lead,
                    allocation_percentage=allocation_percentage,
                )
            except DuplicateMembershipError:
                # another client got there first; our cache is stale
                logger.warning("Backend rejected duplicate membership %s/%s", project_id, user_id)
                self._reload(project_id)
                raise
        logger.info("Added user %s to project %s as %s", user_id, project_id, role)
        self._reload(project_id)
        return created

    def remove(self, project_id: str, user_id: str) -> None:
        with self.overlay.hold(project_id, user_id, "removing"):
            try:
                self._backend.remove_from_project(project_id, user_id)
            except MembershipNotFoundError:
                logger.info("User %s was not on project %s; nothing to remove", user_id, project_id)
            else:
                logger.info("Removed user %s from project %s", user_id, project_id)
        self._reload(project_id)

    def update(self, project_id: str, user_id: str, role: Optional[str] = None,
               is_team_lead: Optional[bool] = None,
               allocation_percentage: Optional[int] = None) -> TeamMembership:
        _check_allocation(allocation_percentage)
        current = self.find(project_id, user_id)
        if current is None:
            raise MembershipNotFoundError(project_id, user_id)
        if current.id is None:
            # roster DTOs from the REST API carry the user id, not the membership id
            raise MembershipError(
                f"Membership of user {user_id} on project {project_id} has no id; "
                "remove and re-add the member to change it"
            )

        # the API's PUT replaces the whole record, so send every field
        changes = {
            "role": role if role is not None else current.role,
            "is_team_lead": is_team_lead if is_team_lead is not None else current.is_team_lead,
            "allocation_percentage": (allocation_percentage if allocation_percentage is not None
                                      else current.allocation_percentage),
        }
        with self.overlay.hold(project_id, user_id, "updating"):
            updated = self._backend.update_member(current.id, **changes)
        logger.info("Updated user %s on project %s: %s", user_id, project_id, changes)
        self._reload(project_id)
        return updated

    def close(self) -> None:
        """Stop touching the cache; writes already issued still finish."""
        self._closed = True
        self._rosters.clear()
