# models/__init__.py
from .user import User
from .project import Project
from .team_membership import TeamMembership
