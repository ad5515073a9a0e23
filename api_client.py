# api_client.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

import requests
from dateutil import parser

from errors import DuplicateMembershipError, MembershipNotFoundError, TransportError
from models import Project, TeamMembership, User

logger = logging.getLogger(__name__)

DUPLICATE_MARKERS = ("duplicate", "unique", "already")


def parse_date(x) -> Optional[date]:
    if not x:
        return None
    if isinstance(x, date):
        return x
    try:
        return parser.parse(str(x)).date()
    except (ValueError, OverflowError):
        return None


def _skills(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return [str(s) for s in value]


def membership_from_payload(d: dict, project_id: Optional[str] = None) -> TeamMembership:
    # roster DTOs carry the user id as `id` and the allocation as `availability`;
    # membership entities carry `userId` and `allocationPercentage`
    user_id = d.get("userId") or d.get("id")
    membership_id = d.get("membershipId") or (d.get("id") if d.get("userId") else None)
    allocation = d.get("allocationPercentage")
    if allocation is None:
        allocation = d.get("availability")
    return TeamMembership(
        id=membership_id,
        project_id=str(d.get("projectId") or project_id or ""),
        user_id=str(user_id),
        role=d.get("role") or "developer",
        is_team_lead=bool(d.get("isTeamLead") or False),
        allocation_percentage=int(allocation) if allocation is not None else 100,
        is_active=bool(d.get("isActive", True)),
    )


def user_from_payload(d: dict) -> User:
    return User(
        id=str(d["id"]),
        name=d.get("name") or "",
        email=d.get("email") or "",
        role=(d.get("role") or "developer").lower(),
        department=d.get("department") or d.get("departmentName"),
        domain=d.get("domain") or d.get("domainName"),
        experience=d.get("experience"),
        skills=_skills(d.get("skills")),
        hourly_rate=d.get("hourlyRate"),
        availability=int(d.get("availability") if d.get("availability") is not None else 100),
    )


def project_from_payload(d: dict) -> Project:
    return Project(
        id=str(d["id"]),
        name=d.get("name") or str(d["id"]),
        status=d.get("status") or "active",
        manager_id=d.get("managerId"),
        budget=d.get("budget"),
        start_date=parse_date(d.get("startDate")),
        end_date=parse_date(d.get("endDate")),
    )


def _unwrap(body: Any) -> Any:
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


def _unwrap_list(body: Any) -> list:
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in ("data", "content"):
            if isinstance(body.get(key), list):
                return body[key]
    logger.warning("Unexpected list response format: %r", type(body).__name__)
    return []


def _message(body: Any, fallback: str = "") -> str:
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or fallback)
    return str(body or fallback)


def _is_duplicate(message: str) -> bool:
    m = message.lower()
    return any(marker in m for marker in DUPLICATE_MARKERS)


class TeamMemberApi:
    """Client for the SprintSync REST endpoints used by team allocation."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout_s: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_s = timeout_s
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings) -> "TeamMemberApi | None":
        if not settings.api_url:
            return None
        return cls(settings.api_url, settings.api_token, settings.api_timeout_s)

    def _request(self, method: str, path: str, json: Optional[dict] = None) -> requests.Response:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            return self.session.request(method, f"{self.base_url}{path}", headers=headers,
                                        json=json, timeout=self.timeout_s)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportError(f"{method} {path} failed: {e}") from e

    @staticmethod
    def _body(r: requests.Response) -> Any:
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError:
            return r.text

    def _check(self, r: requests.Response, method: str, path: str) -> Any:
        body = self._body(r)
        if r.status_code >= 400:
            msg = _message(body, r.reason or "")
            logger.warning("%s %s -> %s %s", method, path, r.status_code, msg)
            raise TransportError(f"{method} {path} returned {r.status_code}: {msg}", status_code=r.status_code)
        return body

    # ---- directory ----
    def get_user(self, user_id: str) -> Optional[User]:
        r = self._request("GET", f"/users/{user_id}")
        if r.status_code == 404:
            return None
        return user_from_payload(_unwrap(self._check(r, "GET", f"/users/{user_id}")))

    def get_project(self, project_id: str) -> Optional[Project]:
        r = self._request("GET", f"/projects/{project_id}")
        if r.status_code == 404:
            return None
        return project_from_payload(_unwrap(self._check(r, "GET", f"/projects/{project_id}")))

    def list_users(self) -> list[User]:
        body = self._check(self._request("GET", "/users"), "GET", "/users")
        return [user_from_payload(d) for d in _unwrap_list(body)]

    def list_projects(self) -> list[Project]:
        body = self._check(self._request("GET", "/projects"), "GET", "/projects")
        return [project_from_payload(d) for d in _unwrap_list(body)]

    # ---- team members ----
    def list_members(self, project_id: str) -> list[TeamMembership]:
        path = f"/project-team-members/project/{project_id}"
        body = self._check(self._request("GET", path), "GET", path)
        return [membership_from_payload(d, project_id) for d in _unwrap_list(body)]

    def add_to_project(self, project_id: str, user_id: str, role: str,
                       is_team_lead: bool = False, allocation_percentage: int = 100) -> TeamMembership:
        path = "/project-team-members/add-to-project"
        payload = {
            "projectId": project_id,
            "userId": user_id,
            "role": role,
            "isTeamLead": is_team_lead,
            "allocationPercentage": allocation_percentage,
        }
        r = self._request("POST", path, json=payload)
        body = self._body(r)
        failed = r.status_code >= 400 or (isinstance(body, dict) and body.get("success") is False)
        if failed:
            msg = _message(body, r.reason or "")
            if r.status_code == 409 or _is_duplicate(msg):
                raise DuplicateMembershipError(project_id, user_id, msg or None)
            logger.warning("POST %s -> %s %s", path, r.status_code, msg)
            raise TransportError(f"Failed to add team member: {msg}", status_code=r.status_code)
        data = _unwrap(body) or payload
        return membership_from_payload(data, project_id)

    def update_member(self, membership_id, **changes) -> TeamMembership:
        if membership_id is None:
            raise ValueError("membership id is required to update a team member")
        path = f"/project-team-members/{membership_id}"
        names = {"role": "role", "is_team_lead": "isTeamLead",
                 "allocation_percentage": "allocationPercentage", "is_active": "isActive"}
        payload = {names[k]: v for k, v in changes.items()}
        body = self._check(self._request("PUT", path, json=payload), "PUT", path)
        return membership_from_payload(_unwrap(body))

    def remove_from_project(self, project_id: str, user_id: str) -> None:
        path = f"/project-team-members/project/{project_id}/user/{user_id}"
        r = self._request("DELETE", path)
        if r.status_code == 404:
            raise MembershipNotFoundError(project_id, user_id)
        self._check(r, "DELETE", path)
