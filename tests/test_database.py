"""Tests for the database coordinator, connection manager and schema."""

import pytest

from anchor.database.database import Database
from anchor.database.db_connection import MEMORY_PATH, ConnectionManager
from anchor.database.db_schema import SCHEMA_VERSION


class TestDatabaseLifecycle:
    """Tests for Database.initialize/shutdown."""

    @pytest.mark.asyncio
    async def test_initialize_creates_tables(self, database):
        """Test that every document table exists after initialize."""
        async with database.connection.connection.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = {row["name"] for row in await cursor.fetchall()}

        assert {
            "content_items",
            "threads",
            "messages",
            "user_profiles",
            "user_blocks",
            "daily_content",
            "config_documents",
            "schema_version",
        } <= tables

    @pytest.mark.asyncio
    async def test_schema_version_recorded(self, database):
        """Test that the schema version row is written."""
        async with database.connection.connection.execute("SELECT version FROM schema_version") as cursor:
            rows = await cursor.fetchall()
        assert [row["version"] for row in rows] == [SCHEMA_VERSION]

    @pytest.mark.asyncio
    async def test_initialize_twice_is_noop(self, database):
        """Test that a second initialize returns True without reopening."""
        assert database.initialized
        assert await database.initialize()

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self):
        """Test that shutdown can be called more than once."""
        db = Database(MEMORY_PATH)
        assert await db.initialize()
        await db.shutdown()
        await db.shutdown()
        assert not db.initialized
        assert not db.connection.is_open

    @pytest.mark.asyncio
    async def test_initialize_failure_returns_false(self, tmp_path):
        """Test that an unopenable path reports failure and leaves no connection."""
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        db = Database(blocker / "anchor.db")

        assert await db.initialize() is False
        assert not db.connection.is_open


class TestConnectionManager:
    """Tests for ConnectionManager."""

    def test_connection_before_open_raises(self):
        """Test that reading the connection before open raises RuntimeError."""
        manager = ConnectionManager()
        with pytest.raises(RuntimeError):
            _ = manager.connection

    @pytest.mark.asyncio
    async def test_transaction_rolls_back_on_error(self, database):
        """Test that an exception inside transaction() discards the write."""
        with pytest.raises(ValueError):
            async with database.connection.transaction() as conn:
                await conn.execute("INSERT INTO config_documents (doc_id, prompt) VALUES ('x', 'y')")
                raise ValueError("boom")

        assert await database.config.get_prompt("x") is None

    @pytest.mark.asyncio
    async def test_file_database_created(self, tmp_path):
        """Test that a file-backed database creates its parent directory."""
        path = tmp_path / "nested" / "anchor.db"
        db = Database(path)
        assert await db.initialize()
        await db.shutdown()
        assert path.exists()
