"""Stage A: the general-purpose moderation classifier.

Fails open. Any error or timeout is logged and treated as "not flagged", so
an unavailable classifier never blocks content on its own; Stage B still runs.
"""

from __future__ import annotations

import asyncio

from openai import AsyncOpenAI

from anchor.util.logger import get_logger

logger = get_logger("moderation_classifier")


class ModerationClassifier:
    """Wraps the OpenAI moderations endpoint."""

    def __init__(self, client: AsyncOpenAI, model: str, timeout: float) -> None:
        self._client = client
        self._model = model
        self._timeout = timeout

    async def is_flagged(self, text: str, content_id: str = "") -> bool:
        """Return True only when the classifier positively flags ``text``."""
        try:
            response = await asyncio.wait_for(
                self._client.moderations.create(model=self._model, input=text),
                timeout=self._timeout,
            )
            flagged = bool(response.results[0].flagged)
        except asyncio.TimeoutError:
            logger.warning("[STAGE A] Classifier timed out after %.1fs for %s; treating as not flagged", self._timeout, content_id)
            return False
        except Exception as exc:
            logger.error("[STAGE A] Classifier failed for %s: %s; treating as not flagged", content_id, exc)
            return False

        logger.debug("[STAGE A] %s flagged=%s", content_id, flagged)
        return flagged
