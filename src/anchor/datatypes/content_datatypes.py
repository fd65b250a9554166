"""
Content types and data structures for user-generated content.

This module defines the ContentType and ContentStatus enums and the
ContentItem, Thread and Message dataclasses that flow through the
moderation and notification pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ContentType(Enum):
    """Moderated content variants."""

    PLEA = "plea"
    ENCOURAGEMENT = "encouragement"
    POST = "post"
    COMMENT = "comment"

    def __str__(self) -> str:
        return self.value


class ContentStatus(Enum):
    """Moderation status. ``pending`` settles exactly once to a terminal value."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not ContentStatus.PENDING

    def __str__(self) -> str:
        return self.value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ContentItem:
    """A plea, encouragement, post or comment.

    Attributes:
        id: Document identifier.
        content_type: Variant of the item.
        author_id: User who wrote the item (the helper for encouragements).
        text: Message text; the body for posts.
        title: Post title (empty for other variants).
        parent_id: Plea of an encouragement, post of a comment.
        status: Current moderation status.
        rejection_reason: Human-readable reason when rejected.
        comment_count: Approved comments (posts only).
        unread_encouragement_count: Unread approved encouragements (pleas only,
            ``None`` until the plea is first moderated).
    """
    id: str
    content_type: ContentType
    author_id: str
    text: str = ""
    title: str = ""
    parent_id: str | None = None
    status: ContentStatus = ContentStatus.PENDING
    rejection_reason: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    comment_count: int = 0
    unread_encouragement_count: int | None = None

    @property
    def raw_text(self) -> str:
        """Text as written, title and body joined for posts."""
        if self.content_type is ContentType.POST:
            return "\n".join(part for part in (self.title, self.text) if part)
        return self.text

    @property
    def normalized_text(self) -> str:
        """Whitespace-trimmed text used for the empty check and prompts."""
        if self.content_type is ContentType.POST:
            return "\n".join(part.strip() for part in (self.title, self.text) if part.strip())
        return self.text.strip()

    @property
    def is_empty(self) -> bool:
        return not self.normalized_text


@dataclass(slots=True)
class Thread:
    """A private conversation between two users."""
    id: str
    user_a: str
    user_b: str
    user_a_unread_count: int = 0
    user_b_unread_count: int = 0
    created_at: datetime = field(default_factory=utc_now)

    def other_participants(self, sender_id: str) -> list[str]:
        """Return every participant except ``sender_id``."""
        return [uid for uid in (self.user_a, self.user_b) if uid != sender_id]


@dataclass(slots=True)
class Message:
    """One message inside a thread. Messages are not moderated."""
    id: str
    thread_id: str
    sender_id: str
    text: str = ""
    created_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class ModerationOutcome:
    """Result of one Moderation Gate invocation.

    Attributes:
        content_type: Variant that was moderated.
        content_id: Item identifier.
        status: Terminal status of the item after the invocation.
        previous_status: Status observed before moderation.
        reason: Rejection reason, if any.
        stage: Which step decided (``empty``, ``stage_a``, ``stage_b`` or ``settled``).
        applied: False when the item was already terminal and nothing was written.
    """
    content_type: ContentType
    content_id: str
    status: ContentStatus
    previous_status: ContentStatus
    reason: str | None = None
    stage: str = "stage_b"
    applied: bool = True
