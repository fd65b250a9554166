"""Generation prompt and response schema for the daily devotional.

The base prompt lives in the ``dailyContentPrompt`` config document and
falls back to ``FALLBACK_DAILY_CONTENT_PROMPT``. The "do not reuse" block is
injected at ``{recentContent}`` when the prompt has that placeholder and
appended otherwise.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable

import jsonschema
from jsonschema import ValidationError

from anchor.datatypes.daily_content_datatypes import DailyContent, GeneratedDevotional
from anchor.exceptions import GenerationError, PromptTemplateError
from anchor.moderation.prompt_templates import PromptTemplate
from anchor.repositories.interfaces import ConfigStore
from anchor.util.logger import get_logger

logger = get_logger("devotional_prompt")

DAILY_CONTENT_PROMPT_DOC = "dailyContentPrompt"

RECENT_PLACEHOLDER = "recentContent"
DATE_PLACEHOLDER = "targetDate"

FALLBACK_DAILY_CONTENT_PROMPT = """
You are writing the daily devotional for a Christian accountability app whose
users are fighting temptation and looking for hope.

For {targetDate}, choose one Bible verse (ESV) that offers strength, hope or
freedom, and write a short, heartfelt prayer (2-3 sentences) that:
1. Reflects on the meaning and message of this verse
2. Asks God for help in applying this truth to daily life
3. Uses warm, accessible language
4. Ends with "Amen"

Respond with JSON containing:
- prayerContent: the prayer
- verse: the exact ESV text of the verse or verses
- reference: formatted as "<Book> <chapter>:<verse>" or "<Book> <chapter>:<start>-<end>"

{recentContent}
""".strip()

# Sent as the structured-output schema and used to validate the reply
DAILY_CONTENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "prayerContent": {"type": "string"},
        "verse": {"type": "string"},
        "reference": {"type": "string"},
    },
    "required": ["prayerContent", "verse", "reference"],
    "additionalProperties": False,
}


def response_format() -> Dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": "daily_content",
            "strict": True,
            "schema": DAILY_CONTENT_SCHEMA,
        },
    }


def build_devotional_template(text: str, source: str = "fallback") -> PromptTemplate:
    return PromptTemplate.build(text, optional=(RECENT_PLACEHOLDER, DATE_PLACEHOLDER), source=source)


def format_recent_block(recent: Iterable[DailyContent]) -> str:
    """List recent devotionals the model must not repeat."""
    lines = [
        f'- {item.date}: {item.verse_reference} | "{item.verse_text}" | Prayer: "{item.prayer_text}"'
        for item in recent
    ]
    if not lines:
        return ""
    header = (
        "Do not reuse any of the following recent devotionals. Choose a different "
        "verse and reference, and write a new prayer:"
    )
    return "\n".join([header, *lines])


def build_generation_prompt(template: PromptTemplate, recent: Iterable[DailyContent], target_date: str) -> str:
    """Render the base prompt with the date and the recent-history block."""
    block = format_recent_block(recent)
    rendered = template.render(**{RECENT_PLACEHOLDER: block, DATE_PLACEHOLDER: target_date}).strip()
    if block and not template.has_placeholder(RECENT_PLACEHOLDER):
        rendered = f"{rendered}\n\n{block}"
    return rendered


def parse_devotional_response(raw: str) -> GeneratedDevotional:
    """Validate the model's JSON reply.

    Raises:
        GenerationError: If the reply is not JSON, fails the schema, or has
            a blank field.
    """
    try:
        payload = json.loads((raw or "").strip())
    except json.JSONDecodeError as exc:
        raise GenerationError(f"Reply is not valid JSON: {exc}") from exc

    try:
        jsonschema.validate(instance=payload, schema=DAILY_CONTENT_SCHEMA)
    except ValidationError as exc:
        raise GenerationError(f"Reply failed schema validation: {exc.message}") from exc

    devotional = GeneratedDevotional(
        prayer_content=payload["prayerContent"].strip(),
        verse=payload["verse"].strip(),
        reference=payload["reference"].strip(),
    )
    for name in ("prayer_content", "verse", "reference"):
        if not getattr(devotional, name):
            raise GenerationError(f"Reply field {name} is empty")
    return devotional


class DevotionalPromptStore:
    """Reads and replaces the base generation prompt."""

    def __init__(self, config: ConfigStore) -> None:
        self._config = config

    async def load(self) -> PromptTemplate:
        try:
            text = await self._config.get_prompt(DAILY_CONTENT_PROMPT_DOC)
        except Exception as exc:
            logger.error("[PROMPTS] Failed to read %s: %s; using fallback", DAILY_CONTENT_PROMPT_DOC, exc)
            text = None

        if text:
            try:
                return build_devotional_template(text, source=DAILY_CONTENT_PROMPT_DOC)
            except PromptTemplateError as exc:
                logger.warning("[PROMPTS] %s is invalid (%s); using fallback", DAILY_CONTENT_PROMPT_DOC, exc)
        return build_devotional_template(FALLBACK_DAILY_CONTENT_PROMPT)

    async def replace(self, text: str) -> PromptTemplate:
        """Validate and store a new base prompt.

        Raises:
            PromptTemplateError: If the text is blank.
        """
        template = build_devotional_template(text, source=DAILY_CONTENT_PROMPT_DOC)
        await self._config.set_prompt(DAILY_CONTENT_PROMPT_DOC, text)
        logger.info("[PROMPTS] Replaced %s (%d chars)", DAILY_CONTENT_PROMPT_DOC, len(text))
        return template
