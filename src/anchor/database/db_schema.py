"""
Database schema initialization and version tracking.

Creates the document tables used by the pipeline:

- content_items: pleas, encouragements, posts and comments (one row per
  document, ``content_type`` discriminates the variant)
- threads / messages: private conversations
- user_profiles / user_blocks: push registration, opt-in flags, blocks
- daily_content: one devotional per date
- config_documents: externally editable prompts
"""

import aiosqlite
from anchor.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates tables, indexes and triggers, and records the schema version."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create or update all database tables, indexes, and triggers.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._create_triggers(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        await db.execute("""
            CREATE TABLE IF NOT EXISTS content_items (
                id TEXT PRIMARY KEY,
                content_type TEXT NOT NULL,
                parent_id TEXT,
                author_id TEXT NOT NULL,
                title TEXT NOT NULL DEFAULT '',
                body TEXT NOT NULL DEFAULT '',
                status TEXT NOT NULL DEFAULT 'pending',
                rejection_reason TEXT,
                comment_count INTEGER NOT NULL DEFAULT 0,
                unread_encouragement_count INTEGER,
                unread_counted INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS threads (
                id TEXT PRIMARY KEY,
                user_a TEXT NOT NULL,
                user_b TEXT NOT NULL,
                user_a_unread_count INTEGER NOT NULL DEFAULT 0,
                user_b_unread_count INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                id TEXT PRIMARY KEY,
                thread_id TEXT NOT NULL,
                sender_id TEXT NOT NULL,
                text TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL,
                FOREIGN KEY (thread_id) REFERENCES threads(id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS user_profiles (
                user_id TEXT PRIMARY KEY,
                push_token TEXT,
                pref_pleas INTEGER NOT NULL DEFAULT 1,
                pref_encouragements INTEGER NOT NULL DEFAULT 1,
                pref_messages INTEGER NOT NULL DEFAULT 1,
                pref_general INTEGER NOT NULL DEFAULT 1,
                pref_accountability INTEGER NOT NULL DEFAULT 1,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS user_blocks (
                user_id TEXT NOT NULL,
                blocked_user_id TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (user_id, blocked_user_id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS daily_content (
                date TEXT PRIMARY KEY,
                prayer_text TEXT NOT NULL,
                verse_text TEXT NOT NULL,
                verse_reference TEXT NOT NULL,
                chapter_text TEXT NOT NULL,
                chapter_reference TEXT NOT NULL,
                bible_version TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS config_documents (
                doc_id TEXT PRIMARY KEY,
                prompt TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        """Create indexes for the trigger and fan-out queries."""
        await db.execute("CREATE INDEX IF NOT EXISTS idx_content_parent ON content_items(parent_id, content_type)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_content_author ON content_items(author_id, content_type)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_threads_user_a ON threads(user_a)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_threads_user_b ON threads(user_b)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_messages_thread ON messages(thread_id, created_at)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_profiles_pleas ON user_profiles(pref_pleas)")

    @staticmethod
    async def _create_triggers(db: aiosqlite.Connection) -> None:
        """Create triggers for automatic timestamp updates."""
        await db.execute("""
            CREATE TRIGGER IF NOT EXISTS update_user_profiles_timestamp
            AFTER UPDATE ON user_profiles
            FOR EACH ROW
            WHEN NEW.updated_at = OLD.updated_at
            BEGIN
                UPDATE user_profiles SET updated_at = CURRENT_TIMESTAMP
                WHERE user_id = NEW.user_id;
            END
        """)

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        """Update schema version tracking."""
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
