"""
Repository for threads and messages.
"""

from __future__ import annotations

from datetime import datetime

import aiosqlite

from anchor.database.db_connection import ConnectionManager
from anchor.datatypes.content_datatypes import Message, Thread


def _row_to_thread(row: aiosqlite.Row) -> Thread:
    return Thread(
        id=row["id"],
        user_a=row["user_a"],
        user_b=row["user_b"],
        user_a_unread_count=row["user_a_unread_count"],
        user_b_unread_count=row["user_b_unread_count"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class ThreadRepository:
    """CRUD for threads and their messages."""

    def __init__(self, db: ConnectionManager) -> None:
        self._db = db

    async def create(self, thread: Thread) -> None:
        async with self._db.transaction() as conn:
            await conn.execute(
                "INSERT INTO threads (id, user_a, user_b, created_at) VALUES (?, ?, ?, ?)",
                (thread.id, thread.user_a, thread.user_b, thread.created_at.isoformat()),
            )

    async def add_message(self, message: Message) -> None:
        """Insert a message and bump the unread counter of every non-sender."""
        async with self._db.transaction() as conn:
            await conn.execute(
                "INSERT INTO messages (id, thread_id, sender_id, text, created_at) VALUES (?, ?, ?, ?, ?)",
                (message.id, message.thread_id, message.sender_id, message.text, message.created_at.isoformat()),
            )
            await conn.execute(
                """
                UPDATE threads
                SET user_a_unread_count = user_a_unread_count + (user_a != ?),
                    user_b_unread_count = user_b_unread_count + (user_b != ?)
                WHERE id = ?
                """,
                (message.sender_id, message.sender_id, message.thread_id),
            )

    async def get(self, thread_id: str) -> Thread | None:
        async with self._db.connection.execute(
            "SELECT id, user_a, user_b, user_a_unread_count, user_b_unread_count, created_at "
            "FROM threads WHERE id = ?",
            (thread_id,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_thread(row) if row else None

    async def get_message(self, message_id: str) -> Message | None:
        async with self._db.connection.execute(
            "SELECT id, thread_id, sender_id, text, created_at FROM messages WHERE id = ?",
            (message_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return Message(
            id=row["id"],
            thread_id=row["thread_id"],
            sender_id=row["sender_id"],
            text=row["text"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    async def unread_messages_for_user(self, user_id: str) -> int:
        """Sum of the user's unread counters across every thread they are in."""
        async with self._db.connection.execute(
            """
            SELECT COALESCE(SUM(
                CASE WHEN user_a = ? THEN user_a_unread_count ELSE 0 END +
                CASE WHEN user_b = ? THEN user_b_unread_count ELSE 0 END
            ), 0)
            FROM threads WHERE user_a = ? OR user_b = ?
            """,
            (user_id, user_id, user_id, user_id),
        ) as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0
