"""
Repository for the content_items table.

Status writes are conditional on ``status = 'pending'`` so a settle can only
happen once; counters are updated in SQL (``x = x + 1``), never read and
written back from Python.
"""

from __future__ import annotations

from datetime import datetime

import aiosqlite

from anchor.database.db_connection import ConnectionManager
from anchor.datatypes.content_datatypes import ContentItem, ContentStatus, ContentType
from anchor.util.logger import get_logger

logger = get_logger("content_repo")

_COLUMNS = (
    "id, content_type, parent_id, author_id, title, body, status, rejection_reason, "
    "comment_count, unread_encouragement_count, created_at"
)


def _row_to_item(row: aiosqlite.Row) -> ContentItem:
    return ContentItem(
        id=row["id"],
        content_type=ContentType(row["content_type"]),
        author_id=row["author_id"],
        text=row["body"],
        title=row["title"],
        parent_id=row["parent_id"],
        status=ContentStatus(row["status"]),
        rejection_reason=row["rejection_reason"],
        created_at=datetime.fromisoformat(row["created_at"]),
        comment_count=row["comment_count"],
        unread_encouragement_count=row["unread_encouragement_count"],
    )


class ContentRepository:
    """CRUD and settle operations for pleas, encouragements, posts and comments."""

    def __init__(self, db: ConnectionManager) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, item: ContentItem) -> None:
        """Insert a new content document."""
        async with self._db.transaction() as conn:
            await conn.execute(
                f"INSERT INTO content_items ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    item.id,
                    item.content_type.value,
                    item.parent_id,
                    item.author_id,
                    item.title,
                    item.text,
                    item.status.value,
                    item.rejection_reason,
                    item.comment_count,
                    item.unread_encouragement_count,
                    item.created_at.isoformat(),
                ),
            )

    async def set_status(
        self,
        item: ContentItem,
        status: ContentStatus,
        reason: str | None = None,
        *,
        init_unread: bool = False,
        increment_parent_comments: bool = False,
    ) -> bool:
        """Settle a pending item to ``status``.

        Args:
            item: The item being settled.
            status: Terminal status to write.
            reason: Rejection reason, stored as-is.
            init_unread: Initialize ``unread_encouragement_count`` to 0 if unset.
            increment_parent_comments: Add one to the parent post's
                ``comment_count`` in the same transaction.

        Returns:
            True if the row was pending and has now settled; False if it had
            already settled (nothing is written in that case).
        """
        if not status.is_terminal:
            raise ValueError(f"Cannot settle {item.id} to non-terminal status {status}")

        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                """
                UPDATE content_items
                SET status = ?,
                    rejection_reason = ?,
                    unread_encouragement_count = CASE
                        WHEN ? THEN COALESCE(unread_encouragement_count, 0)
                        ELSE unread_encouragement_count
                    END,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND status = 'pending'
                """,
                (status.value, reason, int(init_unread), item.id),
            )
            applied = cursor.rowcount == 1

            if applied and increment_parent_comments and item.parent_id:
                await conn.execute(
                    "UPDATE content_items SET comment_count = comment_count + 1 WHERE id = ? AND content_type = ?",
                    (item.parent_id, ContentType.POST.value),
                )

        if not applied:
            logger.debug("[CONTENT REPO] %s %s already settled; status write skipped", item.content_type, item.id)
        return applied

    async def claim_unread_increment(self, encouragement_id: str, plea_id: str) -> bool:
        """Increment a plea's unread counter once per encouragement.

        The encouragement's ``unread_counted`` flag is flipped and the plea's
        counter incremented in one transaction; later calls for the same
        encouragement find the flag set and change nothing.

        Returns:
            True if this call performed the increment.
        """
        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                "UPDATE content_items SET unread_counted = 1 WHERE id = ? AND unread_counted = 0",
                (encouragement_id,),
            )
            claimed = cursor.rowcount == 1
            if claimed:
                await conn.execute(
                    """
                    UPDATE content_items
                    SET unread_encouragement_count = COALESCE(unread_encouragement_count, 0) + 1
                    WHERE id = ? AND content_type = ?
                    """,
                    (plea_id, ContentType.PLEA.value),
                )
        return claimed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, content_type: ContentType, content_id: str) -> ContentItem | None:
        """Return the item, or None if no item of that type has this id."""
        async with self._db.connection.execute(
            f"SELECT {_COLUMNS} FROM content_items WHERE id = ? AND content_type = ?",
            (content_id, content_type.value),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_item(row) if row else None

    async def unread_encouragements_for_author(self, author_id: str) -> int:
        """Sum of unread encouragement counters across the author's pleas."""
        async with self._db.connection.execute(
            "SELECT COALESCE(SUM(unread_encouragement_count), 0) FROM content_items "
            "WHERE author_id = ? AND content_type = ?",
            (author_id, ContentType.PLEA.value),
        ) as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0
