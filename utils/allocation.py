# utils/allocation.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from utils.salary import round_half_up

logger = logging.getLogger(__name__)

REDUCED_CAPACITY_ROLES = {"admin", "manager", "designer"}
FULL_WEEK_HOURS = 40
REDUCED_WEEK_HOURS = 35

OVERLOADED_ABOVE = 100
BUSY_ABOVE = 90
AVAILABLE_BELOW = 75

ALL = "all"


def weekly_baseline(role: Optional[str]) -> int:
    return REDUCED_WEEK_HOURS if (role or "").lower() in REDUCED_CAPACITY_ROLES else FULL_WEEK_HOURS


def status_for(utilization: float) -> str:
    if utilization > OVERLOADED_ABOVE:
        return "overloaded"
    if utilization > BUSY_ABOVE:
        return "busy"
    if utilization < AVAILABLE_BELOW:
        return "available"
    return "busy"


@dataclass(frozen=True)
class ProjectAssignment:
    project_id: str
    project_name: str
    role: str
    allocation_percentage: int


@dataclass(frozen=True)
class MemberAllocation:
    user_id: str
    name: str
    email: str
    role: str
    department: str
    domain: str
    capacity: float        # hours/week
    allocated: float       # hours/week
    utilization: float     # percent of capacity
    status: str
    projects: List[ProjectAssignment] = field(default_factory=list)

    @property
    def available_hours(self) -> float:
        return self.capacity - self.allocated


@dataclass(frozen=True)
class FleetStats:
    total_members: int
    avg_utilization: int
    available_hours: float
    overloaded_count: int


def user_projects(rosters: Mapping[str, Iterable], projects: Mapping[str, object]) -> Dict[str, List[ProjectAssignment]]:
    """Invert project -> members into user -> project assignments."""
    by_user: Dict[str, List[ProjectAssignment]] = {}
    for project_id, roster in rosters.items():
        project = projects.get(project_id)
        name = getattr(project, "name", None) or project_id
        for m in roster:
            if not getattr(m, "is_active", True):
                continue
            by_user.setdefault(m.user_id, []).append(
                ProjectAssignment(project_id, name, m.role, int(m.allocation_percentage or 0))
            )
    return by_user


def member_view(user, assignments: List[ProjectAssignment]) -> MemberAllocation:
    baseline = weekly_baseline(user.role)
    availability = user.availability if user.availability is not None else 100
    capacity = baseline * availability / 100
    allocated = sum(a.allocation_percentage for a in assignments) * baseline / 100
    utilization = (allocated / capacity * 100) if capacity else 0.0
    return MemberAllocation(
        user_id=user.id,
        name=user.name or "",
        email=user.email or "",
        role=user.role or "",
        department=user.department or "",
        domain=user.domain or "",
        capacity=capacity,
        allocated=allocated,
        utilization=utilization,
        status=status_for(utilization),
        projects=list(assignments),
    )


def build_member_views(users: Iterable, rosters: Mapping[str, Iterable],
                       projects: Mapping[str, object]) -> List[MemberAllocation]:
    assignments = user_projects(rosters, projects)
    return [member_view(u, assignments.get(u.id, [])) for u in users]


# ---- filters ----
Predicate = Callable[[MemberAllocation], bool]


def _is_set(value: Optional[str]) -> bool:
    return bool(value) and value != ALL


@dataclass
class AllocationFilter:
    search: str = ""
    department: str = ALL
    domain: str = ALL
    role: str = ALL

    def predicates(self) -> List[Predicate]:
        preds: List[Predicate] = []
        term = (self.search or "").strip().lower()
        if term:
            preds.append(lambda m: term in m.name.lower() or term in m.domain.lower() or term in m.role.lower())
        if _is_set(self.department):
            preds.append(lambda m: m.department == self.department)
        if _is_set(self.domain):
            preds.append(lambda m: m.domain == self.domain)
        if _is_set(self.role):
            preds.append(lambda m: m.role == self.role)
        return preds

    def matches(self, member: MemberAllocation) -> bool:
        return all(p(member) for p in self.predicates())


def filter_members(views: Iterable[MemberAllocation], filters: Optional[AllocationFilter] = None) -> List[MemberAllocation]:
    if filters is None:
        return list(views)
    preds = filters.predicates()
    return [v for v in views if all(p(v) for p in preds)]


# ---- aggregation ----
def fleet_stats(views: Iterable[MemberAllocation]) -> FleetStats:
    views = list(views)
    if not views:
        return FleetStats(0, 0, 0.0, 0)
    avg = sum(v.utilization for v in views) / len(views)
    return FleetStats(
        total_members=len(views),
        avg_utilization=int(round_half_up(avg)),
        available_hours=sum(v.available_hours for v in views),
        overloaded_count=sum(1 for v in views if v.utilization > OVERLOADED_ABOVE),
    )


def filtered_stats(views: Iterable[MemberAllocation], filters: Optional[AllocationFilter]) -> FleetStats:
    """Totals always follow the filtered set the UI is showing."""
    return fleet_stats(filter_members(views, filters))


def project_groups(views: Iterable[MemberAllocation]) -> Dict[str, List[MemberAllocation]]:
    groups: Dict[str, List[MemberAllocation]] = {}
    for v in views:
        for a in v.projects:
            groups.setdefault(a.project_name, []).append(v)
    return groups


def filter_options(views: Iterable[MemberAllocation]) -> Dict[str, List[str]]:
    views = list(views)
    def _distinct(attr):
        return sorted({getattr(v, attr) for v in views if getattr(v, attr)})
    return {"department": _distinct("department"), "domain": _distinct("domain"), "role": _distinct("role")}


def allocation_frame(views: Iterable[MemberAllocation]) -> pd.DataFrame:
    rows = []
    for v in views:
        rows.append({
            "Name": v.name,
            "Role": v.role,
            "Department": v.department,
            "Domain": v.domain,
            "Projects": ", ".join(f"{a.project_name} ({a.allocation_percentage}%)" for a in v.projects),
            "Allocated (h)": round(v.allocated, 1),
            "Capacity (h)": round(v.capacity, 1),
            "Utilization (%)": round(v.utilization),
            "Status": v.status,
        })
    columns = ["Name", "Role", "Department", "Domain", "Projects",
               "Allocated (h)", "Capacity (h)", "Utilization (%)", "Status"]
    return pd.DataFrame(rows, columns=columns)


class AllocationAggregator:
    """Recomputes member views from the store on every call; nothing is cached here."""

    def __init__(self, store, directory):
        self._store = store
        self._directory = directory

    def _rosters(self, projects: Mapping[str, object]) -> Dict[str, list]:
        return {pid: self._store.get_roster(pid) for pid in projects}

    def members(self, filters: Optional[AllocationFilter] = None) -> List[MemberAllocation]:
        projects = {p.id: p for p in self._directory.list_projects()}
        users = self._directory.list_users()
        views = build_member_views(users, self._rosters(projects), projects)
        logger.debug("Built %d member views across %d projects", len(views), len(projects))
        return filter_members(views, filters)

    def stats(self, filters: Optional[AllocationFilter] = None) -> FleetStats:
        return fleet_stats(self.members(filters))
