"""Two-stage moderation of user-generated content.

Every plea, encouragement, post and comment passes through
``ModerationGate.moderate`` exactly once per delivery. The steps run in order
and stop at the first that decides:

1. Missing item: nothing to do. Already terminal: no-op.
2. Empty text: pleas are approved, everything else is rejected.
3. Stage A classifier: flagged content is rejected with the guidelines reason
   without calling Stage B.
4. Stage B filter: anything but ``ALLOW`` (or any error) is rejected.

Stage A fails open and Stage B fails closed. The settle is conditional on the
item still being pending, so redelivered events never change a decision.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict

from anchor.datatypes.content_datatypes import (
    ContentItem,
    ContentStatus,
    ContentType,
    ModerationOutcome,
)
from anchor.moderation.content_filter import ContentFilter, guidelines_reason_for
from anchor.moderation.filtering_prompts import FilteringPromptStore
from anchor.moderation.moderation_classifier import ModerationClassifier
from anchor.repositories.interfaces import ContentStore
from anchor.util.logger import get_logger

if TYPE_CHECKING:
    from anchor.notifications.dispatcher import NotificationDispatcher

logger = get_logger("moderation_gate")

EMPTY_MESSAGE_REASON = "Message cannot be empty"
EMPTY_POST_REASON = "Post cannot be empty"

STAGE_EMPTY = "empty"
STAGE_A = "stage_a"
STAGE_B = "stage_b"
STAGE_SETTLED = "settled"

# Authors are told about rejections of these types only
_NOTIFY_ON_REJECTION = frozenset({ContentType.PLEA, ContentType.POST})


class ModerationGate:
    """Settles pending content to approved or rejected."""

    def __init__(
        self,
        contents: ContentStore,
        classifier: ModerationClassifier,
        content_filter: ContentFilter,
        prompts: FilteringPromptStore,
        dispatcher: "NotificationDispatcher | None" = None,
    ) -> None:
        self._contents = contents
        self._classifier = classifier
        self._filter = content_filter
        self._prompts = prompts
        self._dispatcher = dispatcher

    async def moderate(self, content_type: ContentType, content_id: str) -> ModerationOutcome | None:
        """Moderate one item and write its terminal status.

        Returns:
            The outcome, or None if the item does not exist. ``applied`` is
            False when the item had already settled.
        """
        item = await self._contents.get(content_type, content_id)
        if item is None:
            logger.warning("[GATE] %s %s not found; skipping", content_type, content_id)
            return None

        if item.status.is_terminal:
            logger.info("[GATE] %s %s already %s; skipping", content_type, content_id, item.status)
            return ModerationOutcome(
                content_type=content_type,
                content_id=content_id,
                status=item.status,
                previous_status=item.status,
                reason=item.rejection_reason,
                stage=STAGE_SETTLED,
                applied=False,
            )

        if item.is_empty:
            if content_type is ContentType.PLEA:
                return await self._settle(item, ContentStatus.APPROVED, None, STAGE_EMPTY)
            reason = EMPTY_POST_REASON if content_type is ContentType.POST else EMPTY_MESSAGE_REASON
            return await self._settle(item, ContentStatus.REJECTED, reason, STAGE_EMPTY)

        if await self._classifier.is_flagged(item.raw_text, content_id):
            logger.info("[GATE] %s %s flagged by classifier", content_type, content_id)
            reason = guidelines_reason_for(content_type)
            return await self._settle(item, ContentStatus.REJECTED, reason, STAGE_A)

        prompt = await self._render_prompt(item)
        verdict = await self._filter.check(prompt, content_type, content_id)
        if verdict.allowed:
            return await self._settle(item, ContentStatus.APPROVED, None, STAGE_B)
        return await self._settle(item, ContentStatus.REJECTED, verdict.reason, STAGE_B)

    async def _render_prompt(self, item: ContentItem) -> str:
        template = await self._prompts.load(item.content_type)
        values: Dict[str, str] = {"message": item.normalized_text}

        if item.content_type is ContentType.ENCOURAGEMENT:
            values["originalPlea"] = await self._original_plea_text(item.parent_id)
        elif item.content_type is ContentType.POST:
            values["title"] = item.title.strip()
            values["content"] = item.text.strip()

        return template.render(**values)

    async def _original_plea_text(self, plea_id: str | None) -> str:
        if not plea_id:
            return "(Original plea not found)"
        try:
            plea = await self._contents.get(ContentType.PLEA, plea_id)
        except Exception as exc:
            logger.error("[GATE] Failed to read plea %s for context: %s", plea_id, exc)
            return "(Unable to retrieve original plea)"
        if plea is None:
            return "(Original plea not found)"
        return plea.text or "(No message in plea)"

    async def _settle(
        self,
        item: ContentItem,
        status: ContentStatus,
        reason: str | None,
        stage: str,
    ) -> ModerationOutcome:
        applied = await self._contents.set_status(
            item,
            status,
            reason,
            init_unread=item.content_type is ContentType.PLEA,
            increment_parent_comments=(
                item.content_type is ContentType.COMMENT and status is ContentStatus.APPROVED
            ),
        )
        outcome = ModerationOutcome(
            content_type=item.content_type,
            content_id=item.id,
            status=status if applied else item.status,
            previous_status=item.status,
            reason=reason,
            stage=stage,
            applied=applied,
        )

        if not applied:
            # A concurrent delivery settled it first; re-read the winner
            current = await self._contents.get(item.content_type, item.id)
            if current is not None:
                outcome.status = current.status
                outcome.reason = current.rejection_reason
            logger.info("[GATE] %s %s settled concurrently; nothing written", item.content_type, item.id)
            return outcome

        logger.info(
            "[GATE] %s %s -> %s (stage=%s%s)",
            item.content_type,
            item.id,
            status,
            stage,
            f", reason={reason}" if reason else "",
        )

        if status is ContentStatus.REJECTED and item.content_type in _NOTIFY_ON_REJECTION:
            await self._notify_rejection(item, reason)

        return outcome

    async def _notify_rejection(self, item: ContentItem, reason: str | None) -> None:
        if self._dispatcher is None:
            return
        item.status = ContentStatus.REJECTED
        item.rejection_reason = reason
        try:
            await self._dispatcher.notify_rejection(item)
        except Exception as exc:
            logger.error("[GATE] Rejection notice for %s %s failed: %s", item.content_type, item.id, exc)
