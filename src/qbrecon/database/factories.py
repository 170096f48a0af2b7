"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from qbrecon.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV = "QBRECON_DB_PATH"


def default_database_path() -> Path:
    """Location used when neither --db-path nor QBRECON_DB_PATH is given."""
    return Path.home() / ".qbrecon" / "qbrecon.db"


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite-backed database.

    Args:
        database_path: SQLite file. Falls back to QBRECON_DB_PATH, then to
            ~/.qbrecon/qbrecon.db (its directory is created if missing).

    Returns:
        SQLAlchemyDatabase bound to the file
    """
    path = database_path or os.environ.get(DB_PATH_ENV)
    if not path:
        default = default_database_path()
        default.parent.mkdir(parents=True, exist_ok=True)
        path = str(default)

    return SQLAlchemyDatabase(f"sqlite:///{path}")
