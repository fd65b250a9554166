"""
Event handlers wiring the pipeline together.

- ContentCreated: pending items go through the moderation gate; items
  created already approved take the approved path directly.
- StatusChanged: newly approved pleas fan out; newly approved
  encouragements notify the plea's author.
- MessageCreated: the other participant is notified.
- ScheduledTick: the devotional for the target date is generated.

Handlers re-read the documents they act on and rely on the conditional
writes underneath, so redelivered events are harmless.
"""

from __future__ import annotations

from anchor.datatypes.content_datatypes import ContentItem, ContentStatus, ContentType
from anchor.datatypes.event_datatypes import ContentCreated, MessageCreated, ScheduledTick, StatusChanged
from anchor.devotional.daily_content_generator import DailyContentGenerator
from anchor.events.event_bus import EventBus
from anchor.moderation.moderation_gate import ModerationGate
from anchor.notifications.dispatcher import NotificationDispatcher
from anchor.repositories.interfaces import ContentStore, ThreadStore
from anchor.util.logger import get_logger

logger = get_logger("triggers")


class EventTriggers:
    """Subscribes the pipeline's handlers to an event bus."""

    def __init__(
        self,
        bus: EventBus,
        contents: ContentStore,
        threads: ThreadStore,
        gate: ModerationGate,
        dispatcher: NotificationDispatcher,
        generator: DailyContentGenerator,
    ) -> None:
        self._bus = bus
        self._contents = contents
        self._threads = threads
        self._gate = gate
        self._dispatcher = dispatcher
        self._generator = generator

    def register(self) -> None:
        self._bus.subscribe(ContentCreated, self.on_content_created)
        self._bus.subscribe(StatusChanged, self.on_status_changed)
        self._bus.subscribe(MessageCreated, self.on_message_created)
        self._bus.subscribe(ScheduledTick, self.on_scheduled_tick)
        logger.info("[TRIGGERS] Registered pipeline handlers")

    async def on_content_created(self, event: ContentCreated) -> None:
        if event.initial_status is ContentStatus.APPROVED:
            item = await self._contents.get(event.content_type, event.content_id)
            if item is None:
                logger.warning("[TRIGGERS] %s %s vanished before handling", event.content_type, event.content_id)
                return
            await self._on_approved(item)
            return

        if event.initial_status is not ContentStatus.PENDING:
            return

        outcome = await self._gate.moderate(event.content_type, event.content_id)
        if outcome is not None and outcome.applied:
            await self._bus.publish(
                StatusChanged(
                    content_type=event.content_type,
                    content_id=event.content_id,
                    before=outcome.previous_status,
                    after=outcome.status,
                )
            )

    async def on_status_changed(self, event: StatusChanged) -> None:
        if not event.became_approved:
            return
        item = await self._contents.get(event.content_type, event.content_id)
        if item is None:
            logger.warning("[TRIGGERS] %s %s not found after approval", event.content_type, event.content_id)
            return
        await self._on_approved(item)

    async def on_message_created(self, event: MessageCreated) -> None:
        message = await self._threads.get_message(event.message_id)
        if message is None:
            logger.warning("[TRIGGERS] Message %s in thread %s not found", event.message_id, event.thread_id)
            return
        await self._dispatcher.notify_new_message(event.thread_id, message)

    async def on_scheduled_tick(self, event: ScheduledTick) -> None:
        logger.info("[TRIGGERS] Daily tick for %s", event.target_date)
        await self._generator.generate(event.target_date)

    async def _on_approved(self, item: ContentItem) -> None:
        if item.content_type is ContentType.PLEA:
            await self._dispatcher.notify_new_plea(item)
        elif item.content_type is ContentType.ENCOURAGEMENT:
            await self._dispatcher.notify_new_encouragement(item)
