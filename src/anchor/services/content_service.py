"""
Client-facing write surface.

Each operation writes a document and publishes the event the document store
would raise for that write. The mobile client only writes documents and
reads status fields; everything else happens in the event handlers.
"""

from __future__ import annotations

import uuid
from typing import Mapping

from anchor.datatypes.content_datatypes import ContentItem, ContentStatus, ContentType, Message, Thread
from anchor.datatypes.event_datatypes import ContentCreated, MessageCreated, StatusChanged
from anchor.events.event_bus import EventBus
from anchor.repositories.content_repo import ContentRepository
from anchor.repositories.thread_repo import ThreadRepository
from anchor.repositories.user_profile_repo import UserProfileRepository
from anchor.util.logger import get_logger

logger = get_logger("content_service")


def new_id() -> str:
    return uuid.uuid4().hex


class ContentService:
    """Writes content, messages and profile data, and publishes events."""

    def __init__(
        self,
        bus: EventBus,
        contents: ContentRepository,
        threads: ThreadRepository,
        users: UserProfileRepository,
    ) -> None:
        self._bus = bus
        self._contents = contents
        self._threads = threads
        self._users = users

    # ------------------------------------------------------
    # Content
    # ------------------------------------------------------

    async def submit_plea(self, author_id: str, text: str, *, status: ContentStatus = ContentStatus.PENDING) -> ContentItem:
        return await self._create(ContentItem(
            id=new_id(), content_type=ContentType.PLEA, author_id=author_id, text=text, status=status,
        ))

    async def submit_encouragement(
        self,
        author_id: str,
        plea_id: str,
        text: str,
        *,
        status: ContentStatus = ContentStatus.PENDING,
    ) -> ContentItem:
        return await self._create(ContentItem(
            id=new_id(),
            content_type=ContentType.ENCOURAGEMENT,
            author_id=author_id,
            text=text,
            parent_id=plea_id,
            status=status,
        ))

    async def submit_post(
        self,
        author_id: str,
        title: str,
        body: str,
        *,
        status: ContentStatus = ContentStatus.PENDING,
    ) -> ContentItem:
        return await self._create(ContentItem(
            id=new_id(), content_type=ContentType.POST, author_id=author_id, title=title, text=body, status=status,
        ))

    async def submit_comment(
        self,
        author_id: str,
        post_id: str,
        text: str,
        *,
        status: ContentStatus = ContentStatus.PENDING,
    ) -> ContentItem:
        return await self._create(ContentItem(
            id=new_id(),
            content_type=ContentType.COMMENT,
            author_id=author_id,
            text=text,
            parent_id=post_id,
            status=status,
        ))

    async def review_content(
        self,
        content_type: ContentType,
        content_id: str,
        status: ContentStatus,
        reason: str | None = None,
    ) -> bool:
        """Manually settle a pending item.

        Returns:
            True if the item was pending and is now settled; a
            ``StatusChanged`` event is published in that case.
        """
        item = await self._contents.get(content_type, content_id)
        if item is None:
            logger.warning("[CONTENT SERVICE] Review of missing %s %s", content_type, content_id)
            return False

        applied = await self._contents.set_status(
            item,
            status,
            reason,
            init_unread=content_type is ContentType.PLEA,
            increment_parent_comments=content_type is ContentType.COMMENT and status is ContentStatus.APPROVED,
        )
        if applied:
            logger.info("[CONTENT SERVICE] %s %s reviewed -> %s", content_type, content_id, status)
            await self._bus.publish(StatusChanged(content_type, content_id, before=item.status, after=status))
        return applied

    async def _create(self, item: ContentItem) -> ContentItem:
        await self._contents.insert(item)
        await self._bus.publish(ContentCreated(item.content_type, item.id, initial_status=item.status))
        logger.debug("[CONTENT SERVICE] Created %s %s (%s)", item.content_type, item.id, item.status)
        return item

    # ------------------------------------------------------
    # Threads
    # ------------------------------------------------------

    async def open_thread(self, user_a: str, user_b: str) -> Thread:
        if user_a == user_b:
            raise ValueError("A thread needs two different participants")
        thread = Thread(id=new_id(), user_a=user_a, user_b=user_b)
        await self._threads.create(thread)
        return thread

    async def send_message(self, thread_id: str, sender_id: str, text: str) -> Message:
        thread = await self._threads.get(thread_id)
        if thread is None:
            raise ValueError(f"Thread {thread_id} does not exist")
        if sender_id not in (thread.user_a, thread.user_b):
            raise ValueError(f"{sender_id} is not a participant of thread {thread_id}")

        message = Message(id=new_id(), thread_id=thread_id, sender_id=sender_id, text=text)
        await self._threads.add_message(message)
        await self._bus.publish(MessageCreated(thread_id=thread_id, message_id=message.id))
        return message

    # ------------------------------------------------------
    # Profiles
    # ------------------------------------------------------

    async def register_push_token(self, user_id: str, token: str | None) -> None:
        await self._users.register_push_token(user_id, token)

    async def update_preferences(self, user_id: str, preferences: Mapping[str, bool]) -> None:
        await self._users.update_preferences(user_id, preferences)

    async def block_user(self, user_id: str, blocked_user_id: str) -> None:
        if user_id == blocked_user_id:
            raise ValueError("Users cannot block themselves")
        await self._users.block(user_id, blocked_user_id)

    async def unblock_user(self, user_id: str, blocked_user_id: str) -> None:
        await self._users.unblock(user_id, blocked_user_id)
