# models/user.py
from sqlmodel import SQLModel, Field, Column, JSON
from typing import Optional, List

USER_ROLES = ("developer", "designer", "manager", "admin")

class User(SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}

    id: str = Field(primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    role: str = Field(default="developer")  # developer | designer | manager | admin
    department: Optional[str] = None
    domain: Optional[str] = None
    experience: Optional[str] = Field(default="E1")
    skills: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    hourly_rate: Optional[float] = None
    availability: int = Field(default=100)
