"""
Repository for the config_documents table (externally editable prompts).
"""

from __future__ import annotations

from anchor.database.db_connection import ConnectionManager


class ConfigRepository:
    """Read/replace prompt documents by id."""

    def __init__(self, db: ConnectionManager) -> None:
        self._db = db

    async def get_prompt(self, doc_id: str) -> str | None:
        async with self._db.connection.execute(
            "SELECT prompt FROM config_documents WHERE doc_id = ?", (doc_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return row["prompt"] if row else None

    async def set_prompt(self, doc_id: str, prompt: str) -> None:
        async with self._db.transaction() as conn:
            await conn.execute(
                """
                INSERT INTO config_documents (doc_id, prompt) VALUES (?, ?)
                ON CONFLICT(doc_id) DO UPDATE SET
                    prompt     = excluded.prompt,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (doc_id, prompt),
            )
