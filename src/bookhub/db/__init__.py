"""Database module for local SQLite storage."""

from .models import Base, User
from .sqlite import Database, get_db, reset_db

__all__ = [
    "Base",
    "User",
    "Database",
    "get_db",
    "reset_db",
]
