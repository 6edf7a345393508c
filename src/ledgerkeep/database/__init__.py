"""Database layer for ledgerkeep."""

from ledgerkeep.database.base import Database
from ledgerkeep.database.factories import create_database, create_sqlite_database

__all__ = ["Database", "create_database", "create_sqlite_database"]
