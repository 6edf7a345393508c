"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from ledgerkeep.domain.tree_cache import DEFAULT_MAX_ENTRIES, DEFAULT_TTL_SECONDS


@dataclass(frozen=True)
class Settings:
    """ledgerkeep settings.

    Attributes:
        database_url: SQLAlchemy URL, or None to derive one from ``db_path``
        db_path: SQLite file path, or None for ``~/.ledgerkeep/ledgerkeep.db``
        tree_cache_ttl: Seconds a cached category tree stays valid
        tree_cache_size: Maximum number of organizations with a cached tree
        log_level: Level name for the ledgerkeep logger
    """

    database_url: Optional[str] = None
    db_path: Optional[str] = None
    tree_cache_ttl: float = DEFAULT_TTL_SECONDS
    tree_cache_size: int = DEFAULT_MAX_ENTRIES
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from LEDGERKEEP_* environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        try:
            ttl = float(env.get("LEDGERKEEP_TREE_CACHE_TTL", DEFAULT_TTL_SECONDS))
            size = int(env.get("LEDGERKEEP_TREE_CACHE_SIZE", DEFAULT_MAX_ENTRIES))
        except ValueError as e:
            raise ValueError(f"Invalid cache setting: {e}")
        return cls(
            database_url=env.get("LEDGERKEEP_DATABASE_URL") or None,
            db_path=env.get("LEDGERKEEP_DB_PATH") or None,
            tree_cache_ttl=ttl,
            tree_cache_size=size,
            log_level=env.get("LEDGERKEEP_LOG_LEVEL", "WARNING").upper(),
        )

    def resolve_database_url(self, db_path: Optional[str] = None) -> str:
        """Return the database URL, preferring an explicit path argument."""
        if db_path is not None:
            return f"sqlite:///{db_path}"
        if self.database_url is not None:
            return self.database_url
        if self.db_path is not None:
            return f"sqlite:///{self.db_path}"

        db_dir = Path.home() / ".ledgerkeep"
        db_dir.mkdir(exist_ok=True)
        return f"sqlite:///{db_dir / 'ledgerkeep.db'}"
