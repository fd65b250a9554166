"""
Daily devotional generation.

One record per calendar date: a model-written prayer and verse, plus the
full chapter text from the scripture service. Recent records are listed in
the prompt so the model picks something new. Generation never fails
outright:

- bad model output or an unparseable reference -> the fallback verse/prayer
- chapter fetch failure -> placeholder text with a reader link
"""

from __future__ import annotations

import asyncio
from typing import List

from openai import AsyncOpenAI

from anchor.datatypes.daily_content_datatypes import (
    ChapterPassage,
    DailyContent,
    GeneratedDevotional,
    ScriptureReference,
)
from anchor.devotional import devotional_prompt
from anchor.devotional.devotional_prompt import DevotionalPromptStore
from anchor.devotional.reference_parser import parse_reference
from anchor.devotional.scripture_client import ScriptureClient, placeholder_passage
from anchor.exceptions import AnchorError, GenerationError, ScriptureServiceError
from anchor.repositories.interfaces import DailyContentStore
from anchor.util.logger import get_logger

logger = get_logger("daily_content_generator")

FALLBACK_REFERENCE = ScriptureReference(book="Philippians", chapter=4, start_verse=6, end_verse=7)

FALLBACK_DEVOTIONAL = GeneratedDevotional(
    prayer_content=(
        "Lord, when my heart is heavy and my thoughts run ahead of me, teach me to bring "
        "everything to You in prayer. Guard my heart and mind with Your peace today, and "
        "help me trust that You are near. Amen."
    ),
    verse=(
        "do not be anxious about anything, but in everything by prayer and supplication "
        "with thanksgiving let your requests be made known to God. And the peace of God, "
        "which surpasses all understanding, will guard your hearts and your minds in "
        "Christ Jesus."
    ),
    reference=str(FALLBACK_REFERENCE),
)


class DailyContentGenerator:
    """Builds and stores the devotional for a target date."""

    def __init__(
        self,
        store: DailyContentStore,
        prompts: DevotionalPromptStore,
        client: AsyncOpenAI,
        scripture: ScriptureClient,
        *,
        model: str,
        temperature: float = 0.8,
        timeout: float = 30.0,
        history_size: int = 7,
        bible_version: str = "ESV",
    ) -> None:
        self._store = store
        self._prompts = prompts
        self._client = client
        self._scripture = scripture
        self._model = model
        self._temperature = temperature
        self._timeout = timeout
        self._history_size = history_size
        self._bible_version = bible_version

    async def generate(self, target_date: str) -> DailyContent:
        """Generate, upsert and return the devotional for ``target_date``."""
        recent = await self._load_recent()
        template = await self._prompts.load()
        prompt = devotional_prompt.build_generation_prompt(template, recent, target_date)

        try:
            devotional = await self._request_devotional(prompt)
            reference = parse_reference(devotional.reference)
        except AnchorError as exc:
            logger.warning("[DAILY CONTENT] %s: generation unusable (%s); using fallback verse", target_date, exc)
            devotional, reference = FALLBACK_DEVOTIONAL, FALLBACK_REFERENCE

        passage = await self._chapter_text(reference)

        content = DailyContent(
            date=target_date,
            prayer_text=devotional.prayer_content,
            verse_text=devotional.verse,
            verse_reference=str(reference),
            chapter_text=passage.text,
            chapter_reference=reference.chapter_query,
            bible_version=self._bible_version,
        )
        await self._store.upsert(content)
        logger.info(
            "[DAILY CONTENT] Stored %s: %s (chapter %s%s)",
            target_date,
            content.verse_reference,
            content.chapter_reference,
            ", placeholder" if passage.placeholder else "",
        )
        return content

    async def _load_recent(self) -> List[DailyContent]:
        try:
            return await self._store.recent(self._history_size)
        except Exception as exc:
            logger.error("[DAILY CONTENT] Failed to load recent history: %s", exc)
            return []

    async def _request_devotional(self, prompt: str) -> GeneratedDevotional:
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self._temperature,
                    response_format=devotional_prompt.response_format(),
                ),
                timeout=self._timeout,
            )
            raw = response.choices[0].message.content or ""
        except asyncio.TimeoutError as exc:
            raise GenerationError(f"Generation timed out after {self._timeout:.1f}s") from exc
        except Exception as exc:
            raise GenerationError(f"Generation request failed: {exc}") from exc

        return devotional_prompt.parse_devotional_response(raw)

    async def _chapter_text(self, reference: ScriptureReference) -> ChapterPassage:
        try:
            return await self._scripture.fetch_chapter(reference.book, reference.chapter)
        except ScriptureServiceError as exc:
            logger.warning("[SCRIPTURE] %s unavailable (%s); using placeholder", reference.chapter_query, exc)
        except Exception as exc:
            logger.error("[SCRIPTURE] Unexpected error fetching %s: %s", reference.chapter_query, exc)
        return placeholder_passage(reference.book, reference.chapter, self._scripture.reader_url)
