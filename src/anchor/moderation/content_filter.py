"""Stage B: the prompt-driven chat-completion filter.

The model must answer with exactly ``ALLOW``. The stripped answer is compared
case-sensitively; every other answer, and every error or timeout, rejects the
content (fail-closed).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from openai import AsyncOpenAI

from anchor.datatypes.content_datatypes import ContentType
from anchor.util.logger import get_logger

logger = get_logger("content_filter")

ALLOW_TOKEN = "ALLOW"

REASON_HATEFUL = "Content contains hateful or derogatory language"
REASON_SPAM = "Content appears to be spam or trolling"
REASON_GUIDELINES = "Message doesn't align with community guidelines"
REASON_GUIDELINES_POST = "Post doesn't align with community guidelines"
REASON_ERROR = "Unable to process message at this time"
REASON_ERROR_POST = "Unable to process post at this time"


def rejection_reason_for(answer: str, content_type: ContentType) -> str:
    """Map a non-ALLOW answer to the reason shown to the author."""
    lowered = answer.lower()
    if "hateful" in lowered or "derogatory" in lowered:
        return REASON_HATEFUL
    if "spam" in lowered or "trolling" in lowered:
        return REASON_SPAM
    return guidelines_reason_for(content_type)


def guidelines_reason_for(content_type: ContentType) -> str:
    return REASON_GUIDELINES_POST if content_type is ContentType.POST else REASON_GUIDELINES


def error_reason_for(content_type: ContentType) -> str:
    return REASON_ERROR_POST if content_type is ContentType.POST else REASON_ERROR


@dataclass(slots=True)
class FilterVerdict:
    """Outcome of one Stage B call."""
    allowed: bool
    reason: str | None = None
    answer: str | None = None
    error: bool = False


class ContentFilter:
    """Sends a rendered filtering prompt and interprets the answer."""

    def __init__(self, client: AsyncOpenAI, model: str, max_tokens: int, timeout: float) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens
        self._timeout = timeout

    async def check(self, prompt: str, content_type: ContentType, content_id: str = "") -> FilterVerdict:
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model,
                    messages=[{"role": "system", "content": prompt}],
                    temperature=0,
                    max_tokens=self._max_tokens,
                ),
                timeout=self._timeout,
            )
            answer = (response.choices[0].message.content or "").strip()
        except asyncio.TimeoutError:
            logger.warning("[STAGE B] Filter timed out after %.1fs for %s %s; rejecting", self._timeout, content_type, content_id)
            return FilterVerdict(allowed=False, reason=error_reason_for(content_type), error=True)
        except Exception as exc:
            logger.error("[STAGE B] Filter failed for %s %s: %s; rejecting", content_type, content_id, exc)
            return FilterVerdict(allowed=False, reason=error_reason_for(content_type), error=True)

        logger.debug("[STAGE B] %s %s answered %r", content_type, content_id, answer)
        if answer == ALLOW_TOKEN:
            return FilterVerdict(allowed=True, answer=answer)
        return FilterVerdict(allowed=False, reason=rejection_reason_for(answer, content_type), answer=answer)
