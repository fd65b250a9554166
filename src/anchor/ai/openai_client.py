"""Construction of the shared AsyncOpenAI client."""

from __future__ import annotations

from openai import AsyncOpenAI

from anchor.configuration.ai_settings import AISettings
from anchor.util.logger import get_logger

logger = get_logger("openai_client")


def build_openai_client(ai_settings: AISettings) -> AsyncOpenAI:
    """Create the client used by the classifier, the filter and the generator.

    Raises:
        openai.OpenAIError: If no API key is configured.
    """
    client = AsyncOpenAI(
        api_key=ai_settings.api_key,
        base_url=ai_settings.base_url,
        timeout=ai_settings.request_timeout,
        max_retries=ai_settings.max_retries,
    )
    logger.info(
        "[AI] Initialized OpenAI client (base_url=%s, timeout=%.1fs, max_retries=%d)",
        ai_settings.base_url or "default",
        ai_settings.request_timeout,
        ai_settings.max_retries,
    )
    return client
