"""
Typed events published on the event bus.

Each event stands in for a document-store trigger: creation of a content
document, a status transition, a new thread message, or the daily tick.
Events carry identifiers only; handlers re-read the documents they act on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from anchor.datatypes.content_datatypes import ContentStatus, ContentType


@dataclass(slots=True, frozen=True)
class ContentCreated:
    """A content document was written; ``initial_status`` is its status at creation."""
    content_type: ContentType
    content_id: str
    initial_status: ContentStatus = ContentStatus.PENDING


@dataclass(slots=True, frozen=True)
class StatusChanged:
    content_type: ContentType
    content_id: str
    before: ContentStatus
    after: ContentStatus

    @property
    def became_approved(self) -> bool:
        return self.before is not ContentStatus.APPROVED and self.after is ContentStatus.APPROVED


@dataclass(slots=True, frozen=True)
class MessageCreated:
    thread_id: str
    message_id: str


@dataclass(slots=True, frozen=True)
class ScheduledTick:
    target_date: str
    fired_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Event = ContentCreated | StatusChanged | MessageCreated | ScheduledTick
