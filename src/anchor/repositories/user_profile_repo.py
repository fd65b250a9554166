"""
Repository for user_profiles and user_blocks.
"""

from __future__ import annotations

from typing import List, Mapping, Set

import aiosqlite

from anchor.database.db_connection import ConnectionManager
from anchor.datatypes.notification_datatypes import (
    NotificationPreferences,
    PreferenceCategory,
    UserNotificationProfile,
)
from anchor.util.logger import get_logger

logger = get_logger("user_profile_repo")

_PREF_COLUMNS = {category: f"pref_{category.value}" for category in PreferenceCategory}

_SELECT = "SELECT user_id, push_token, " + ", ".join(_PREF_COLUMNS.values()) + " FROM user_profiles"


def _row_to_profile(row: aiosqlite.Row) -> UserNotificationProfile:
    return UserNotificationProfile(
        user_id=row["user_id"],
        push_token=row["push_token"],
        preferences=NotificationPreferences(
            **{category.value: bool(row[column]) for category, column in _PREF_COLUMNS.items()}
        ),
    )


class UserProfileRepository:
    """Push tokens, opt-in flags and block lists."""

    def __init__(self, db: ConnectionManager) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def register_push_token(self, user_id: str, token: str | None) -> None:
        """Create the profile or merge a new token into it."""
        async with self._db.transaction() as conn:
            await conn.execute(
                """
                INSERT INTO user_profiles (user_id, push_token) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET push_token = excluded.push_token
                """,
                (user_id, token),
            )

    async def update_preferences(self, user_id: str, preferences: Mapping[str, bool]) -> None:
        """Merge the given opt-in flags; unknown keys are ignored."""
        updates = {
            _PREF_COLUMNS[category]: int(bool(preferences[category.value]))
            for category in PreferenceCategory
            if category.value in preferences
        }
        async with self._db.transaction() as conn:
            await conn.execute("INSERT OR IGNORE INTO user_profiles (user_id) VALUES (?)", (user_id,))
            if updates:
                assignments = ", ".join(f"{column} = ?" for column in updates)
                await conn.execute(
                    f"UPDATE user_profiles SET {assignments} WHERE user_id = ?",
                    (*updates.values(), user_id),
                )

    async def block(self, user_id: str, blocked_user_id: str) -> None:
        async with self._db.transaction() as conn:
            await conn.execute(
                "INSERT OR IGNORE INTO user_blocks (user_id, blocked_user_id) VALUES (?, ?)",
                (user_id, blocked_user_id),
            )

    async def unblock(self, user_id: str, blocked_user_id: str) -> None:
        async with self._db.transaction() as conn:
            await conn.execute(
                "DELETE FROM user_blocks WHERE user_id = ? AND blocked_user_id = ?",
                (user_id, blocked_user_id),
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, user_id: str) -> UserNotificationProfile | None:
        async with self._db.connection.execute(f"{_SELECT} WHERE user_id = ?", (user_id,)) as cursor:
            row = await cursor.fetchone()
        return _row_to_profile(row) if row else None

    async def list_opted_in(self, category: PreferenceCategory) -> List[UserNotificationProfile]:
        """Return profiles that opted into ``category`` and have a token."""
        column = _PREF_COLUMNS[category]
        async with self._db.connection.execute(
            f"{_SELECT} WHERE {column} = 1 AND push_token IS NOT NULL",
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_profile(row) for row in rows]

    async def either_blocked(self, user_a: str, user_b: str) -> bool:
        """True if either user has blocked the other."""
        async with self._db.connection.execute(
            """
            SELECT 1 FROM user_blocks
            WHERE (user_id = ? AND blocked_user_id = ?) OR (user_id = ? AND blocked_user_id = ?)
            LIMIT 1
            """,
            (user_a, user_b, user_b, user_a),
        ) as cursor:
            return await cursor.fetchone() is not None

    async def blocked_user_ids(self, user_id: str) -> Set[str]:
        """Users blocked by, or blocking, ``user_id``."""
        async with self._db.connection.execute(
            """
            SELECT blocked_user_id AS other FROM user_blocks WHERE user_id = ?
            UNION
            SELECT user_id AS other FROM user_blocks WHERE blocked_user_id = ?
            """,
            (user_id, user_id),
        ) as cursor:
            rows = await cursor.fetchall()
        return {row["other"] for row in rows}
