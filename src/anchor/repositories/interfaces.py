"""
Narrow repository interfaces consumed by the pipeline services.

The gate, generator and dispatcher depend on these protocols rather than on
SQLite; the implementations live next to this module.
"""

from __future__ import annotations

from typing import List, Mapping, Protocol, Set

from anchor.datatypes.content_datatypes import ContentItem, ContentStatus, ContentType, Message, Thread
from anchor.datatypes.daily_content_datatypes import DailyContent
from anchor.datatypes.notification_datatypes import PreferenceCategory, UserNotificationProfile


class ContentStore(Protocol):
    async def insert(self, item: ContentItem) -> None: ...

    async def get(self, content_type: ContentType, content_id: str) -> ContentItem | None: ...

    async def set_status(
        self,
        item: ContentItem,
        status: ContentStatus,
        reason: str | None = None,
        *,
        init_unread: bool = False,
        increment_parent_comments: bool = False,
    ) -> bool: ...

    async def claim_unread_increment(self, encouragement_id: str, plea_id: str) -> bool: ...

    async def unread_encouragements_for_author(self, author_id: str) -> int: ...


class UserProfileStore(Protocol):
    async def get(self, user_id: str) -> UserNotificationProfile | None: ...

    async def register_push_token(self, user_id: str, token: str | None) -> None: ...

    async def update_preferences(self, user_id: str, preferences: Mapping[str, bool]) -> None: ...

    async def list_opted_in(self, category: PreferenceCategory) -> List[UserNotificationProfile]: ...

    async def either_blocked(self, user_a: str, user_b: str) -> bool: ...

    async def blocked_user_ids(self, user_id: str) -> Set[str]: ...


class ThreadStore(Protocol):
    async def get(self, thread_id: str) -> Thread | None: ...

    async def get_message(self, message_id: str) -> Message | None: ...

    async def unread_messages_for_user(self, user_id: str) -> int: ...


class DailyContentStore(Protocol):
    async def recent(self, limit: int) -> List[DailyContent]: ...

    async def get(self, date: str) -> DailyContent | None: ...

    async def upsert(self, content: DailyContent) -> None: ...


class ConfigStore(Protocol):
    async def get_prompt(self, doc_id: str) -> str | None: ...

    async def set_prompt(self, doc_id: str, prompt: str) -> None: ...
