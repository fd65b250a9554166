"""Per-content-type filtering prompts for the Stage B chat filter.

Prompts are read from the ``config_documents`` table on every load so edits
take effect without a restart. A missing, unreadable or invalid document
falls back to the hardcoded prompt for that type.
"""

from __future__ import annotations

from typing import Dict, FrozenSet

from anchor.datatypes.content_datatypes import ContentType
from anchor.exceptions import PromptTemplateError
from anchor.moderation.prompt_templates import PromptTemplate, find_placeholders
from anchor.repositories.interfaces import ConfigStore
from anchor.util.logger import get_logger

logger = get_logger("filtering_prompts")

FILTERING_PROMPT_DOCS: Dict[ContentType, str] = {
    ContentType.PLEA: "pleaFilteringPrompt",
    ContentType.ENCOURAGEMENT: "encouragementFilteringPrompt",
    ContentType.POST: "postFilteringPrompt",
    ContentType.COMMENT: "commentFilteringPrompt",
}

FALLBACK_FILTERING_PROMPTS: Dict[ContentType, str] = {
    ContentType.PLEA: (
        "You are an expert moderator for a Christian accountability support app. "
        "Block inappropriate context. Only reply ALLOW or BLOCK. {message}"
    ),
    ContentType.ENCOURAGEMENT: (
        "You are an expert moderator for a Christian encouragement system. "
        "Only reply ALLOW or BLOCK. {message}"
    ),
    ContentType.POST: (
        "You are an expert moderator for a Christian community forum. "
        "Block trolling, spam, hate speech, or inappropriate content. "
        "Only reply ALLOW or BLOCK. {message}"
    ),
    ContentType.COMMENT: (
        "You are an expert moderator for community comments. "
        "Block trolling, spam, or inappropriate responses. "
        "Only reply ALLOW or BLOCK. {message}"
    ),
}

REQUIRED_PLACEHOLDERS: FrozenSet[str] = frozenset({"message"})

# A post prompt may place the title and content separately instead of {message}
POST_FIELD_PLACEHOLDERS: FrozenSet[str] = frozenset({"title", "content"})

OPTIONAL_PLACEHOLDERS: Dict[ContentType, FrozenSet[str]] = {
    ContentType.PLEA: frozenset(),
    ContentType.ENCOURAGEMENT: frozenset({"originalPlea"}),
    ContentType.POST: POST_FIELD_PLACEHOLDERS,
    ContentType.COMMENT: frozenset(),
}


def build_filtering_template(content_type: ContentType, text: str, source: str = "fallback") -> PromptTemplate:
    """Validate ``text`` as the filtering prompt for ``content_type``.

    Every prompt needs ``{message}``, except that a post prompt carrying both
    ``{title}`` and ``{content}`` may leave it out.
    """
    required = REQUIRED_PLACEHOLDERS
    optional = OPTIONAL_PLACEHOLDERS[content_type]
    if content_type is ContentType.POST and "{message}" not in (text or ""):
        if POST_FIELD_PLACEHOLDERS <= find_placeholders(text):
            required, optional = POST_FIELD_PLACEHOLDERS, REQUIRED_PLACEHOLDERS
    return PromptTemplate.build(text, required=required, optional=optional, source=source)


def fallback_template(content_type: ContentType) -> PromptTemplate:
    return build_filtering_template(content_type, FALLBACK_FILTERING_PROMPTS[content_type])


class FilteringPromptStore:
    """Read-through access to the filtering prompts with hardcoded fallback."""

    def __init__(self, config: ConfigStore) -> None:
        self._config = config

    async def load(self, content_type: ContentType) -> PromptTemplate:
        """Return the configured prompt for ``content_type``, or its fallback."""
        doc_id = FILTERING_PROMPT_DOCS[content_type]
        try:
            text = await self._config.get_prompt(doc_id)
        except Exception as exc:
            logger.error("[PROMPTS] Failed to read %s: %s; using fallback", doc_id, exc)
            return fallback_template(content_type)

        if not text:
            logger.debug("[PROMPTS] %s not configured; using fallback", doc_id)
            return fallback_template(content_type)

        try:
            return build_filtering_template(content_type, text, source=doc_id)
        except PromptTemplateError as exc:
            logger.warning("[PROMPTS] %s is invalid (%s); using fallback", doc_id, exc)
            return fallback_template(content_type)

    async def replace(self, content_type: ContentType, text: str) -> PromptTemplate:
        """Validate and store a new prompt.

        Raises:
            PromptTemplateError: If the text is blank or lacks ``{message}``
                (or, for posts, both ``{title}`` and ``{content}``); nothing
                is written in that case.
        """
        doc_id = FILTERING_PROMPT_DOCS[content_type]
        template = build_filtering_template(content_type, text, source=doc_id)
        await self._config.set_prompt(doc_id, text)
        logger.info("[PROMPTS] Replaced %s (%d chars)", doc_id, len(text))
        return template
