"""
Daily devotional records and scripture references.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(slots=True, frozen=True)
class ScriptureReference:
    """A parsed ``<Book> <chapter>:<start>[-<end>]`` reference."""
    book: str
    chapter: int
    start_verse: int
    end_verse: int

    @property
    def chapter_query(self) -> str:
        """Passage query for the whole chapter, e.g. ``"Romans 8"``."""
        return f"{self.book} {self.chapter}"

    def __str__(self) -> str:
        if self.end_verse != self.start_verse:
            return f"{self.book} {self.chapter}:{self.start_verse}-{self.end_verse}"
        return f"{self.book} {self.chapter}:{self.start_verse}"


@dataclass(slots=True)
class GeneratedDevotional:
    """The three fields the generation model must return."""
    prayer_content: str
    verse: str
    reference: str


@dataclass(slots=True)
class ChapterPassage:
    """Chapter text returned by the scripture service."""
    query: str
    text: str
    placeholder: bool = False


@dataclass(slots=True)
class DailyContent:
    """One devotional record, keyed by calendar date (``YYYY-MM-DD``)."""
    date: str
    prayer_text: str
    verse_text: str
    verse_reference: str
    chapter_text: str
    chapter_reference: str
    bible_version: str = "ESV"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
