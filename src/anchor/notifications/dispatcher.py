"""
Notification fan-out for pleas, encouragements, messages and rejections.

The dispatcher resolves who should hear about an event, filters by token
validity, opt-in flags and blocks, never includes the actor, and hands the
messages to the push client. Delivery is best-effort: every operation returns
a ``DeliveryResult`` instead of raising for push or recipient problems.
"""

from __future__ import annotations

from typing import List

from anchor.datatypes.content_datatypes import ContentItem, ContentType, Message
from anchor.datatypes.notification_datatypes import (
    DeliveryResult,
    NotificationEvent,
    PreferenceCategory,
    PushMessage,
)
from anchor.notifications.audience import can_receive, select_recipients
from anchor.notifications.push_client import PushClient
from anchor.repositories.interfaces import ContentStore, ThreadStore, UserProfileStore
from anchor.util.logger import get_logger

logger = get_logger("dispatcher")

PREVIEW_LENGTH = 100

PLEA_TITLE = "Someone is struggling"
PLEA_EMPTY_BODY = "They need encouragement. Tap to respond."
ENCOURAGEMENT_TITLE = "Someone encouraged you!"
ENCOURAGEMENT_EMPTY_BODY = "Someone sent encouragement. Tap to view."
REJECTION_TITLES = {
    ContentType.PLEA: "Your request wasn't shared",
    ContentType.POST: "Your post wasn't published",
}
REJECTION_DEFAULT_BODY = "It doesn't align with community guidelines."


def sender_label(sender_id: str) -> str:
    """Pseudonymous sender name shown as the message push title."""
    return f"user-{sender_id[:5]}"


class NotificationDispatcher:
    """Resolves audiences and sends push notifications for pipeline events."""

    def __init__(
        self,
        contents: ContentStore,
        users: UserProfileStore,
        threads: ThreadStore,
        push: PushClient,
    ) -> None:
        self._contents = contents
        self._users = users
        self._threads = threads
        self._push = push

    async def dispatch(self, event: NotificationEvent, payload: ContentItem | Message) -> DeliveryResult:
        """Route ``event`` to the matching fan-out."""
        if event is NotificationEvent.NEW_MESSAGE and isinstance(payload, Message):
            return await self.notify_new_message(payload.thread_id, payload)
        if isinstance(payload, ContentItem):
            if event is NotificationEvent.NEW_PLEA:
                return await self.notify_new_plea(payload)
            if event is NotificationEvent.NEW_ENCOURAGEMENT:
                return await self.notify_new_encouragement(payload)
            if event is NotificationEvent.REJECTION:
                return await self.notify_rejection(payload)
        raise ValueError(f"Cannot dispatch {event} with payload {type(payload).__name__}")

    # ------------------------------------------------------------------
    # Fan-outs
    # ------------------------------------------------------------------

    async def notify_new_plea(self, plea: ContentItem) -> DeliveryResult:
        """Notify every opted-in user except the author and blocked users."""
        event = NotificationEvent.NEW_PLEA
        try:
            profiles = await self._users.list_opted_in(PreferenceCategory.PLEAS)
            blocked = await self._users.blocked_user_ids(plea.author_id)
        except Exception as exc:
            logger.error("[DISPATCH] Failed to resolve audience for plea %s: %s", plea.id, exc)
            return DeliveryResult(event=event, error=str(exc))

        recipients = select_recipients(profiles, PreferenceCategory.PLEAS, exclude={plea.author_id, *blocked})
        text = plea.text.strip()
        body = f'They wrote: "{text[:PREVIEW_LENGTH]}"' if text else PLEA_EMPTY_BODY

        messages = [
            PushMessage(
                to=profile.push_token or "",
                title=PLEA_TITLE,
                body=body,
                data={"pleaId": plea.id, "type": "plea"},
            )
            for profile in recipients
        ]
        logger.info("[DISPATCH] Plea %s: %d recipient(s)", plea.id, len(messages))
        return await self._push.send(messages, event)

    async def notify_new_encouragement(self, encouragement: ContentItem) -> DeliveryResult:
        """Count the encouragement as unread once and tell the plea's author.

        The unread increment and the push both skip blocked pairs. A repeated
        delivery finds the increment already claimed and sends nothing.
        """
        event = NotificationEvent.NEW_ENCOURAGEMENT
        plea = await self._contents.get(ContentType.PLEA, encouragement.parent_id or "")
        if plea is None:
            logger.warning("[DISPATCH] Plea %s for encouragement %s not found", encouragement.parent_id, encouragement.id)
            return DeliveryResult(event=event, error="plea not found")

        if await self._users.either_blocked(plea.author_id, encouragement.author_id):
            logger.info("[DISPATCH] Skipping encouragement %s: blocked pair", encouragement.id)
            return DeliveryResult(event=event)

        if not await self._contents.claim_unread_increment(encouragement.id, plea.id):
            logger.info("[DISPATCH] Encouragement %s already counted; skipping", encouragement.id)
            return DeliveryResult(event=event)

        if plea.author_id == encouragement.author_id:
            return DeliveryResult(event=event)

        try:
            profile = await self._users.get(plea.author_id)
        except Exception as exc:
            logger.error("[DISPATCH] Failed to load profile %s: %s", plea.author_id, exc)
            return DeliveryResult(event=event, error=str(exc))

        if not can_receive(profile, PreferenceCategory.ENCOURAGEMENTS):
            return DeliveryResult(event=event)

        text = encouragement.text.strip()
        message = PushMessage(
            to=profile.push_token or "",
            title=ENCOURAGEMENT_TITLE,
            body=f'"{text[:PREVIEW_LENGTH]}"' if text else ENCOURAGEMENT_EMPTY_BODY,
            data={"pleaId": plea.id, "type": "encouragement"},
            badge=await self.badge_count(plea.author_id),
        )
        return await self._push.send([message], event)

    async def notify_new_message(self, thread_id: str, message: Message) -> DeliveryResult:
        """Notify the thread's other participant."""
        event = NotificationEvent.NEW_MESSAGE
        try:
            thread = await self._threads.get(thread_id)
        except Exception as exc:
            logger.error("[DISPATCH] Failed to load thread %s: %s", thread_id, exc)
            return DeliveryResult(event=event, error=str(exc))
        if thread is None:
            logger.warning("[DISPATCH] Thread %s not found for message %s", thread_id, message.id)
            return DeliveryResult(event=event, error="thread not found")

        messages: List[PushMessage] = []
        for recipient_id in thread.other_participants(message.sender_id):
            try:
                if await self._users.either_blocked(message.sender_id, recipient_id):
                    logger.info("[DISPATCH] Skipping message %s: blocked pair", message.id)
                    continue
                profile = await self._users.get(recipient_id)
            except Exception as exc:
                logger.error("[DISPATCH] Failed to resolve recipient %s: %s", recipient_id, exc)
                continue
            if not can_receive(profile, PreferenceCategory.MESSAGES):
                continue

            messages.append(
                PushMessage(
                    to=profile.push_token or "",
                    title=sender_label(message.sender_id),
                    body=message.text[:PREVIEW_LENGTH],
                    data={"threadId": thread_id, "messageId": message.id},
                    badge=await self.badge_count(recipient_id),
                )
            )

        return await self._push.send(messages, event)

    async def notify_rejection(self, item: ContentItem) -> DeliveryResult:
        """Tell the author their content was rejected, regardless of opt-in."""
        event = NotificationEvent.REJECTION
        try:
            profile = await self._users.get(item.author_id)
        except Exception as exc:
            logger.error("[DISPATCH] Failed to load profile %s: %s", item.author_id, exc)
            return DeliveryResult(event=event, error=str(exc))

        if not can_receive(profile, None):
            logger.debug("[DISPATCH] Author %s of %s %s has no push token", item.author_id, item.content_type, item.id)
            return DeliveryResult(event=event)

        message = PushMessage(
            to=profile.push_token or "",
            title=REJECTION_TITLES.get(item.content_type, "Your message wasn't shared"),
            body=item.rejection_reason or REJECTION_DEFAULT_BODY,
            data={
                "type": "rejection",
                "contentType": item.content_type.value,
                "contentId": item.id,
                "originalText": item.raw_text,
                "reason": item.rejection_reason,
            },
        )
        return await self._push.send([message], event)

    # ------------------------------------------------------------------
    # Badge
    # ------------------------------------------------------------------

    async def badge_count(self, user_id: str) -> int:
        """Unread thread messages plus unread encouragements; 0 on error."""
        try:
            messages = await self._threads.unread_messages_for_user(user_id)
            encouragements = await self._contents.unread_encouragements_for_author(user_id)
        except Exception as exc:
            logger.error("[DISPATCH] Failed to compute badge for %s: %s", user_id, exc)
            return 0
        return messages + encouragements
