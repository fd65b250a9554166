"""Typed accessors for the non-AI sections of ``app_config.yml``."""

import os
from datetime import time
from typing import Any, Dict


class _SectionSettings:
    """Base wrapper around one mapping section of the YAML config."""

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return self.data


class ScriptureSettings(_SectionSettings):
    """ESV passage-text API settings."""

    @property
    def api_key(self) -> str | None:
        return os.getenv("ESV_API_KEY") or None

    @property
    def base_url(self) -> str:
        return str(self.data.get("base_url") or "https://api.esv.org/v3/passage/text/")

    @property
    def reader_url(self) -> str:
        return str(self.data.get("reader_url") or "https://www.esv.org/")

    @property
    def bible_version(self) -> str:
        return str(self.data.get("bible_version") or "ESV")

    @property
    def request_timeout(self) -> float:
        return float(self.data.get("request_timeout_seconds", 15.0))


class PushSettings(_SectionSettings):
    """Expo push-delivery settings."""

    @property
    def endpoint(self) -> str:
        return str(self.data.get("endpoint") or "https://exp.host/--/api/v2/push/send")

    @property
    def access_token(self) -> str | None:
        return os.getenv("EXPO_ACCESS_TOKEN") or None

    @property
    def chunk_size(self) -> int:
        # Expo rejects requests with more than 100 messages
        return max(1, min(100, int(self.data.get("chunk_size", 100))))

    @property
    def request_timeout(self) -> float:
        return float(self.data.get("request_timeout_seconds", 15.0))


class DailyContentSettings(_SectionSettings):
    """Devotional generation and scheduling settings."""

    @property
    def history_size(self) -> int:
        return int(self.data.get("history_size", 7))

    @property
    def days_ahead(self) -> int:
        return int(self.data.get("days_ahead", 2))

    @property
    def run_at_utc(self) -> time:
        """Daily run time, parsed from an ``HH:MM`` string (default 02:00)."""
        raw = str(self.data.get("run_at_utc", "02:00"))
        try:
            hour, minute = (int(part) for part in raw.split(":", 1))
            return time(hour=hour, minute=minute)
        except ValueError:
            return time(hour=2, minute=0)


class EventSettings(_SectionSettings):
    """Event bus worker pool and redelivery settings."""

    @property
    def worker_count(self) -> int:
        return max(1, int(self.data.get("worker_count", 4)))

    @property
    def max_delivery_attempts(self) -> int:
        return max(1, int(self.data.get("max_delivery_attempts", 3)))

    @property
    def retry_backoff_seconds(self) -> float:
        return float(self.data.get("retry_backoff_seconds", 2.0))

    @property
    def dead_letter_limit(self) -> int:
        return max(1, int(self.data.get("dead_letter_limit", 1000)))
