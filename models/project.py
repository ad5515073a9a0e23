# models/project.py
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import date

class Project(SQLModel, table=True):
    __tablename__ = "projects"
    __table_args__ = {"extend_existing": True}

    id: str = Field(primary_key=True)
    name: str = Field(index=True)
    status: str = Field(default="active")
    manager_id: Optional[str] = Field(default=None, foreign_key="users.id")
    budget: Optional[float] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
