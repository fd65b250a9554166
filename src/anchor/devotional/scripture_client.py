"""
ESV passage-text client.

Fetches whole chapters for the daily devotional. Requests are bounded by the
configured timeout; every failure surfaces as ``ScriptureServiceError`` so
the generator can fall back to a placeholder with a reader link.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict

import aiohttp

from anchor.configuration.service_settings import ScriptureSettings
from anchor.datatypes.daily_content_datatypes import ChapterPassage
from anchor.exceptions import ScriptureServiceError
from anchor.util.logger import get_logger

logger = get_logger("scripture_client")

# Verse numbers on; headings, footnotes and copyright off. The passage
# reference stays on and is stripped by strip_chapter_title.
PASSAGE_PARAMS: Dict[str, str] = {
    "include-passage-references": "true",
    "include-verse-numbers": "true",
    "include-first-verse-numbers": "true",
    "include-footnotes": "false",
    "include-footnote-body": "false",
    "include-headings": "false",
    "include-short-copyright": "false",
    "include-copyright": "false",
}


def strip_chapter_title(text: str, query: str) -> str:
    """Remove a leading line that is exactly ``query`` (e.g. ``"Romans 8"``).

    Any other first line, including a longer reference like ``"Romans 8:1"``,
    leaves the text unchanged.
    """
    first, sep, rest = text.partition("\n")
    if sep and first.strip() == query:
        return rest.lstrip("\n")
    if not sep and text.strip() == query:
        return ""
    return text


def reader_link(book: str, chapter: int, reader_url: str = "https://www.esv.org/") -> str:
    base = reader_url if reader_url.endswith("/") else f"{reader_url}/"
    return f"{base}{'+'.join(book.split())}+{chapter}/"


def placeholder_passage(book: str, chapter: int, reader_url: str = "https://www.esv.org/") -> ChapterPassage:
    """Chapter text used when the scripture service is unavailable."""
    query = f"{book} {chapter}"
    link = reader_link(book, chapter, reader_url)
    text = f"The full text of {query} could not be loaded right now.\n\nRead {query} online: {link}"
    return ChapterPassage(query=query, text=text, placeholder=True)


class ScriptureClient:
    """Thin async wrapper around the ESV ``/v3/passage/text/`` endpoint."""

    def __init__(self, settings: ScriptureSettings, session: aiohttp.ClientSession | None = None) -> None:
        self._settings = settings
        self._session = session
        self._owns_session = session is None

    @property
    def reader_url(self) -> str:
        return self._settings.reader_url

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._settings.request_timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch_chapter(self, book: str, chapter: int) -> ChapterPassage:
        """Return the text of ``<book> <chapter>`` without its title line.

        Raises:
            ScriptureServiceError: On missing credentials, non-2xx responses,
                timeouts or an empty passage list.
        """
        query = f"{book} {chapter}"
        payload = await self._request_passage(query)

        passages = payload.get("passages") or []
        text = passages[0] if passages and isinstance(passages[0], str) else ""
        if not text.strip():
            raise ScriptureServiceError(f"No passage text returned for {query}")

        stripped = strip_chapter_title(text, query).strip()
        logger.debug("[SCRIPTURE] Fetched %s (%d chars)", query, len(stripped))
        return ChapterPassage(query=query, text=stripped)

    async def _request_passage(self, query: str) -> Dict[str, Any]:
        api_key = self._settings.api_key
        if not api_key:
            raise ScriptureServiceError("ESV_API_KEY is not set")

        session = await self._get_session()
        params = {"q": query, **PASSAGE_PARAMS}
        headers = {"Authorization": f"Token {api_key}"}

        async def _get() -> Dict[str, Any]:
            async with session.get(self._settings.base_url, params=params, headers=headers) as response:
                if response.status >= 300:
                    body = await response.text()
                    raise ScriptureServiceError(
                        f"ESV API returned HTTP {response.status} for {query}: {body[:200]}"
                    )
                return await response.json()

        try:
            return await asyncio.wait_for(_get(), timeout=self._settings.request_timeout)
        except asyncio.TimeoutError as exc:
            raise ScriptureServiceError(f"ESV API timed out for {query}") from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise ScriptureServiceError(f"ESV API request failed for {query}: {exc}") from exc
