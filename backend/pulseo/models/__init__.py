"""Database models for Pulseo."""

from .database import Base, Database, get_db, utcnow
from .user import User
from .refresh_token import RefreshToken
from .column import Column
from .task import Task

__all__ = [
    "Base",
    "Database",
    "get_db",
    "utcnow",
    "User",
    "RefreshToken",
    "Column",
    "Task",
]
