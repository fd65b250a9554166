import os
from typing import Any, Dict


class AISettings:
    """Helper exposing typed accessors for the OpenAI-backed stages.

    Covers the moderation classifier (Stage A), the chat-completion filter
    (Stage B) and the devotional generator. The API key is never read from
    the YAML file; it comes from ``OPENAI_API_KEY``.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        """Return the underlying mapping (shallow copy recommended by callers)."""
        return self.data

    @property
    def api_key(self) -> str | None:
        return os.getenv("OPENAI_API_KEY") or None

    @property
    def base_url(self) -> str | None:
        val = self.data.get("base_url")
        return str(val) if val else None

    @property
    def moderation_model(self) -> str:
        return str(self.data.get("moderation_model") or "omni-moderation-latest")

    @property
    def filter_model(self) -> str:
        return str(self.data.get("filter_model") or "gpt-4o")

    @property
    def generation_model(self) -> str:
        return str(self.data.get("generation_model") or "gpt-4o")

    @property
    def request_timeout(self) -> float:
        return float(self.data.get("request_timeout_seconds", 30.0))

    @property
    def max_retries(self) -> int:
        return int(self.data.get("max_retries", 2))

    @property
    def filter_max_tokens(self) -> int:
        return int(self.data.get("filter_max_tokens", 20))

    @property
    def generation_temperature(self) -> float:
        return float(self.data.get("generation_temperature", 0.8))
