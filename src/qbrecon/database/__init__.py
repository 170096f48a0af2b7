"""Database layer for qbrecon application."""

from qbrecon.database.base import Database
from qbrecon.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
