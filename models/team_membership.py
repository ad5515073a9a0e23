# models/team_membership.py
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint, CheckConstraint
from typing import Optional

class TeamMembership(SQLModel, table=True):
    __tablename__ = "project_team_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_user"),
        CheckConstraint(
            "allocation_percentage >= 0 AND allocation_percentage <= 100",
            name="ck_allocation_percentage",
        ),
        {"extend_existing": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    role: str = Field(default="developer")
    is_team_lead: bool = Field(default=False)
    allocation_percentage: int = Field(default=100)
    is_active: bool = Field(default=True)

    @property
    def key(self):
        return (self.project_id, self.user_id)
