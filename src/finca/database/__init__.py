"""Database layer for finca application."""

from finca.database.base import Database
from finca.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
