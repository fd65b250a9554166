"""
Database initialization and repository wiring for SQLite.

The Database class owns the single connection and hands each repository a
reference to it:

- contents: pleas, encouragements, posts and comments
- users: push tokens, opt-in flags and blocks
- threads: conversations and messages
- daily_content: one devotional per date
- config: externally editable prompt documents

Lifecycle:
    1. ``await database.initialize()`` at startup
    2. Use the repositories
    3. ``await database.shutdown()`` at exit
"""

from __future__ import annotations

from pathlib import Path

from anchor.database.db_connection import ConnectionManager
from anchor.database.db_schema import SchemaManager
from anchor.repositories.config_repo import ConfigRepository
from anchor.repositories.content_repo import ContentRepository
from anchor.repositories.daily_content_repo import DailyContentRepository
from anchor.repositories.thread_repo import ThreadRepository
from anchor.repositories.user_profile_repo import UserProfileRepository
from anchor.util.logger import get_logger

logger = get_logger("database")


class Database:
    """Central coordinator for the connection, schema and repositories."""

    def __init__(self, db_path: Path | str) -> None:
        """
        Args:
            db_path: Path to the SQLite database file, or ``":memory:"``.
        """
        self.db_path = db_path
        self._initialized = False
        self.connection = ConnectionManager()

        self.contents = ContentRepository(self.connection)
        self.users = UserProfileRepository(self.connection)
        self.threads = ThreadRepository(self.connection)
        self.daily_content = DailyContentRepository(self.connection)
        self.config = ConfigRepository(self.connection)

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> bool:
        """
        Open the connection and create the schema.

        Returns:
            True if initialization succeeded, False otherwise.
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        try:
            await self.connection.open(self.db_path)
            await SchemaManager.initialize_schema(self.connection.connection)
        except Exception as e:
            logger.error("[DATABASE] Database initialization failed: %s", e)
            await self.connection.close()
            return False

        self._initialized = True
        logger.info("[DATABASE] Database initialized at %s", self.db_path)
        return True

    async def shutdown(self) -> None:
        """Close the connection. Safe to call more than once."""
        if not self._initialized:
            return

        await self.connection.close()
        self._initialized = False
        logger.info("[DATABASE] Database shutdown complete")
