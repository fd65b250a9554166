"""
Notification events, recipient profiles and push delivery results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping


class NotificationEvent(Enum):
    """Events the dispatcher fans out."""

    NEW_PLEA = "new_plea"
    NEW_ENCOURAGEMENT = "new_encouragement"
    NEW_MESSAGE = "new_message"
    REJECTION = "rejection"

    def __str__(self) -> str:
        return self.value


class PreferenceCategory(Enum):
    """Per-user opt-in flags."""

    PLEAS = "pleas"
    ENCOURAGEMENTS = "encouragements"
    MESSAGES = "messages"
    GENERAL = "general"
    ACCOUNTABILITY = "accountability"


@dataclass(slots=True)
class NotificationPreferences:
    """Opt-in flags; every category defaults to enabled."""
    pleas: bool = True
    encouragements: bool = True
    messages: bool = True
    general: bool = True
    accountability: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "NotificationPreferences":
        """Build preferences from a partial mapping; unset keys stay enabled."""
        data = data or {}
        return cls(**{
            category.value: bool(data[category.value])
            for category in PreferenceCategory
            if data.get(category.value) is not None
        })

    def allows(self, category: PreferenceCategory) -> bool:
        return bool(getattr(self, category.value))

    def as_dict(self) -> Dict[str, bool]:
        return {category.value: self.allows(category) for category in PreferenceCategory}


@dataclass(slots=True)
class UserNotificationProfile:
    """Push registration of one user."""
    user_id: str
    push_token: str | None = None
    preferences: NotificationPreferences = field(default_factory=NotificationPreferences)


@dataclass(slots=True)
class PushMessage:
    """One Expo push message addressed to a single device token."""
    to: str
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)
    sound: str = "default"
    badge: int | None = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "to": self.to,
            "sound": self.sound,
            "title": self.title,
            "body": self.body,
            "data": self.data,
        }
        if self.badge is not None:
            payload["badge"] = self.badge
        return payload


@dataclass(slots=True)
class ChunkResult:
    """Outcome of one push-delivery request.

    Attributes:
        size: Number of messages in the chunk.
        delivered: True when the request itself succeeded.
        error: Request-level error, if the call failed.
        ticket_errors: Per-message errors reported by the service.
    """
    size: int
    delivered: bool
    error: str | None = None
    ticket_errors: List[str] = field(default_factory=list)


@dataclass(slots=True)
class DeliveryResult:
    """Best-effort outcome of one fan-out, enumerated per chunk."""
    event: NotificationEvent
    recipients: int = 0
    chunks: List[ChunkResult] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and all(chunk.delivered and not chunk.ticket_errors for chunk in self.chunks)

    @property
    def sent(self) -> int:
        return sum(chunk.size for chunk in self.chunks if chunk.delivered)

    @property
    def failed_chunks(self) -> List[ChunkResult]:
        return [chunk for chunk in self.chunks if not chunk.delivered]
