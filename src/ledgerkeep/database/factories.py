"""Database factory functions for creating database instances."""

from typing import Optional

from ledgerkeep.config import Settings
from ledgerkeep.database.sqlalchemy_db import SQLAlchemyDatabase


def create_database(database_url: str) -> SQLAlchemyDatabase:
    """Create a database instance for any SQLAlchemy URL.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        SQLAlchemyDatabase instance
    """
    return SQLAlchemyDatabase(database_url)


def create_sqlite_database(
    database_path: Optional[str] = None, settings: Optional[Settings] = None
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, falls back to
            LEDGERKEEP_DATABASE_URL, then LEDGERKEEP_DB_PATH, then
            ~/.ledgerkeep/ledgerkeep.db
        settings: Settings to resolve defaults from; read from the environment
            when omitted

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if settings is None:
        settings = Settings.from_env()
    return create_database(settings.resolve_database_url(database_path))
