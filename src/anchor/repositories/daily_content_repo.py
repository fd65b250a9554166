"""
Repository for the daily_content table (one row per calendar date).
"""

from __future__ import annotations

from datetime import datetime
from typing import List

import aiosqlite

from anchor.database.db_connection import ConnectionManager
from anchor.datatypes.daily_content_datatypes import DailyContent

_COLUMNS = (
    "date, prayer_text, verse_text, verse_reference, chapter_text, "
    "chapter_reference, bible_version, created_at"
)


def _row_to_content(row: aiosqlite.Row) -> DailyContent:
    return DailyContent(
        date=row["date"],
        prayer_text=row["prayer_text"],
        verse_text=row["verse_text"],
        verse_reference=row["verse_reference"],
        chapter_text=row["chapter_text"],
        chapter_reference=row["chapter_reference"],
        bible_version=row["bible_version"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class DailyContentRepository:
    """Reads recent devotionals and upserts by date."""

    def __init__(self, db: ConnectionManager) -> None:
        self._db = db

    async def upsert(self, content: DailyContent) -> None:
        """Insert or overwrite the record for ``content.date``."""
        async with self._db.transaction() as conn:
            await conn.execute(
                f"""
                INSERT INTO daily_content ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(date) DO UPDATE SET
                    prayer_text       = excluded.prayer_text,
                    verse_text        = excluded.verse_text,
                    verse_reference   = excluded.verse_reference,
                    chapter_text      = excluded.chapter_text,
                    chapter_reference = excluded.chapter_reference,
                    bible_version     = excluded.bible_version,
                    created_at        = excluded.created_at
                """,
                (
                    content.date,
                    content.prayer_text,
                    content.verse_text,
                    content.verse_reference,
                    content.chapter_text,
                    content.chapter_reference,
                    content.bible_version,
                    content.created_at.isoformat(),
                ),
            )

    async def get(self, date: str) -> DailyContent | None:
        async with self._db.connection.execute(
            f"SELECT {_COLUMNS} FROM daily_content WHERE date = ?", (date,)
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_content(row) if row else None

    async def recent(self, limit: int) -> List[DailyContent]:
        """Return up to ``limit`` records, newest date first."""
        async with self._db.connection.execute(
            f"SELECT {_COLUMNS} FROM daily_content ORDER BY date DESC LIMIT ?", (limit,)
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_content(row) for row in rows]
