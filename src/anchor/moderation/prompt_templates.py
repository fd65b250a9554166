"""Prompt templates with named ``{placeholder}`` slots.

Templates are validated when they are loaded: every required placeholder must
appear in the text. Rendering is plain string replacement, so literal braces
elsewhere in a prompt (JSON examples and the like) are left untouched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable

from anchor.exceptions import PromptTemplateError

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def find_placeholders(text: str) -> FrozenSet[str]:
    """Return the names of every ``{name}`` slot in ``text``."""
    return frozenset(PLACEHOLDER_PATTERN.findall(text or ""))


@dataclass(frozen=True, slots=True)
class PromptTemplate:
    """Prompt text plus the placeholders it must and may contain.

    Raises:
        PromptTemplateError: If the text is blank or a required placeholder
            is missing.
    """
    text: str
    required: FrozenSet[str] = field(default_factory=frozenset)
    optional: FrozenSet[str] = field(default_factory=frozenset)
    source: str = "fallback"

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise PromptTemplateError("Prompt template is empty")
        missing = self.required - self.placeholders
        if missing:
            raise PromptTemplateError(
                f"Prompt template is missing required placeholder(s): {', '.join(sorted(missing))}"
            )

    @classmethod
    def build(
        cls,
        text: str,
        required: Iterable[str] = (),
        optional: Iterable[str] = (),
        source: str = "fallback",
    ) -> "PromptTemplate":
        return cls(text=text, required=frozenset(required), optional=frozenset(optional), source=source)

    @property
    def placeholders(self) -> FrozenSet[str]:
        return find_placeholders(self.text)

    def has_placeholder(self, name: str) -> bool:
        return f"{{{name}}}" in self.text

    def render(self, **values: Any) -> str:
        """Substitute every known placeholder occurrence.

        Required placeholders must be given a value; optional ones default to
        an empty string. Unknown ``{...}`` sequences are left as written.
        Substitution is a single pass over the template, so placeholder-like
        text inside a value is never expanded.
        """
        missing = [name for name in self.required if name not in values]
        if missing:
            raise PromptTemplateError(f"No value supplied for placeholder(s): {', '.join(sorted(missing))}")

        known = self.required | self.optional

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name not in known:
                return match.group(0)
            value = values.get(name)
            return "" if value is None else str(value)

        return PLACEHOLDER_PATTERN.sub(substitute, self.text)
