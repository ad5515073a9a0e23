# db.py

#============================================================#
#                  SprintSync Team Allocation                #
#============================================================#
# Created     : 2025-10-15                                   #
# Version     : V1.1.0                                       #
#------------------------------------------------------------#
# Purpose     : SQL backend for project team membership.     #
#               Same operations as the REST API client, so   #
#               the app runs on SQLite/Postgres without the  #
#               SprintSync server.                           #
#                                                            #
# Change Log  :                                              #
#  - V1.0.0 (2025-10-15): Initial release.                   #
#  - V1.1.0             : Team membership backend.           #
#============================================================#


from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Optional, List

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, select

from errors import DuplicateMembershipError, MembershipNotFoundError, TransportError
from models import Project, TeamMembership, User
from utils.capacity import is_manager_role

logger = logging.getLogger(__name__)


def make_engine(database_url: str):
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty database
        return create_engine(database_url, future=True,
                             connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(database_url, pool_pre_ping=True, future=True)


class SqlTeamBackend:
    def __init__(self, engine):
        self.engine = engine
        self.SessionLocal = sessionmaker(bind=engine, class_=Session,
                                         autoflush=False, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str) -> "SqlTeamBackend":
        backend = cls(make_engine(database_url))
        backend.init_db()
        return backend

    def init_db(self):
        SQLModel.metadata.create_all(self.engine)

    @contextmanager
    def _session(self):
        with self.SessionLocal() as s:
            try:
                yield s
            except IntegrityError:
                s.rollback()
                raise
            except SQLAlchemyError as e:
                s.rollback()
                logger.error("Database error: %s", e)
                raise TransportError(f"Database error: {e}") from e

    # ---- directory ----
    def get_user(self, user_id: str) -> Optional[User]:
        with self._session() as s:
            return s.get(User, user_id)

    def get_project(self, project_id: str) -> Optional[Project]:
        with self._session() as s:
            return s.get(Project, project_id)

    def list_users(self) -> List[User]:
        with self._session() as s:
            return list(s.exec(select(User).order_by(User.name)).all())

    def list_projects(self) -> List[Project]:
        with self._session() as s:
            return list(s.exec(select(Project).order_by(Project.name)).all())

    def upsert_user(self, user_id: str, name: str, email: str, **fields) -> User:
        with self._session() as s:
            user = s.get(User, user_id)
            if not user:
                user = User(id=user_id, name=name, email=email.strip().lower())
            else:
                user.name, user.email = name, email.strip().lower()
            for k, v in fields.items():
                setattr(user, k, v)
            s.add(user); s.commit(); s.refresh(user)
            return user

    def create_project(self, project_id: str, name: str, manager_id: Optional[str] = None,
                       status: str = "active", budget: Optional[float] = None,
                       start: Optional[date] = None, end: Optional[date] = None) -> Project:
        with self._session() as s:
            p = Project(id=project_id, name=name, manager_id=manager_id, status=status,
                        budget=budget, start_date=start, end_date=end)
            s.add(p); s.commit(); s.refresh(p)
            return p

    # ---- team members ----
    def _membership(self, s: Session, project_id: str, user_id: str) -> Optional[TeamMembership]:
        return s.exec(
            select(TeamMembership)
            .where(TeamMembership.project_id == project_id)
            .where(TeamMembership.user_id == user_id)
        ).one_or_none()

    def list_members(self, project_id: str) -> List[TeamMembership]:
        with self._session() as s:
            rows = s.exec(
                select(TeamMembership)
                .where(TeamMembership.project_id == project_id)
                .where(TeamMembership.is_active == True)  # noqa: E712
                .order_by(TeamMembership.id)
            ).all()
            return list(rows)

    def add_to_project(self, project_id: str, user_id: str, role: str,
                       is_team_lead: bool = False, allocation_percentage: int = 100) -> TeamMembership:
        with self._session() as s:
            if s.get(Project, project_id) is None:
                raise TransportError(f"Project {project_id} not found", status_code=404)
            if s.get(User, user_id) is None:
                raise TransportError(f"User {user_id} not found", status_code=404)

            m = self._membership(s, project_id, user_id)
            if m is not None and m.is_active:
                raise DuplicateMembershipError(project_id, user_id)
            if m is None:
                m = TeamMembership(project_id=project_id, user_id=user_id)
            # an inactive row is reused; the (project, user) pair is unique
            m.role, m.is_team_lead = role, is_team_lead
            m.allocation_percentage, m.is_active = allocation_percentage, True
            s.add(m)
            try:
                s.commit()
            except IntegrityError as e:
                s.rollback()
                raise DuplicateMembershipError(project_id, user_id) from e
            s.refresh(m)
            return m

    def update_member(self, membership_id: int, **changes) -> TeamMembership:
        allowed = {"role", "is_team_lead", "allocation_percentage", "is_active"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot update {sorted(unknown)}")
        with self._session() as s:
            m = s.get(TeamMembership, membership_id)
            if not m:
                raise TransportError(f"Team member {membership_id} not found", status_code=404)
            for k, v in changes.items():
                setattr(m, k, v)
            s.add(m); s.commit(); s.refresh(m)
            return m

    def remove_from_project(self, project_id: str, user_id: str) -> None:
        with self._session() as s:
            m = self._membership(s, project_id, user_id)
            if m is None or not m.is_active:
                raise MembershipNotFoundError(project_id, user_id)
            s.delete(m)

            p = s.get(Project, project_id)
            if p and p.manager_id == user_id:
                s.flush()
                p.manager_id = self._next_manager(s, project_id)
                logger.info("Project %s manager reassigned to %s", project_id, p.manager_id)
            s.commit()

    def _next_manager(self, s: Session, project_id: str) -> Optional[str]:
        for m in s.exec(
            select(TeamMembership)
            .where(TeamMembership.project_id == project_id)
            .where(TeamMembership.is_active == True)  # noqa: E712
            .order_by(TeamMembership.id)
        ).all():
            if is_manager_role(m.role):
                return m.user_id
        return None
