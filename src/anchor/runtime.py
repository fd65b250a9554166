"""
Runtime assembly.

Builds every pipeline component from the application config and an
initialized database, and owns their start/shutdown order.
"""

from __future__ import annotations

import asyncio

from openai import AsyncOpenAI

from anchor.ai.openai_client import build_openai_client
from anchor.configuration.app_configuration import AppConfig
from anchor.database.database import Database
from anchor.devotional.daily_content_generator import DailyContentGenerator
from anchor.devotional.devotional_prompt import DevotionalPromptStore
from anchor.devotional.scripture_client import ScriptureClient
from anchor.events.event_bus import EventBus
from anchor.events.triggers import EventTriggers
from anchor.moderation.content_filter import ContentFilter
from anchor.moderation.filtering_prompts import FilteringPromptStore
from anchor.moderation.moderation_classifier import ModerationClassifier
from anchor.moderation.moderation_gate import ModerationGate
from anchor.notifications.dispatcher import NotificationDispatcher
from anchor.notifications.push_client import PushClient
from anchor.scheduler.daily_content_scheduler import DailyContentScheduler
from anchor.services.content_service import ContentService
from anchor.util.logger import get_logger

logger = get_logger("runtime")

DRAIN_TIMEOUT_SECONDS = 30.0


class AnchorRuntime:
    """Holds the wired pipeline for one process."""

    def __init__(
        self,
        config: AppConfig,
        database: Database,
        openai_client: AsyncOpenAI | None = None,
        scripture: ScriptureClient | None = None,
        push: PushClient | None = None,
    ) -> None:
        ai = config.ai_settings
        events = config.event_settings
        daily = config.daily_content_settings

        self.config = config
        self.database = database
        self.openai_client = openai_client or build_openai_client(ai)
        self.scripture = scripture or ScriptureClient(config.scripture_settings)
        self.push = push or PushClient(config.push_settings)

        self.bus = EventBus(
            worker_count=events.worker_count,
            max_delivery_attempts=events.max_delivery_attempts,
            retry_backoff_seconds=events.retry_backoff_seconds,
            dead_letter_limit=events.dead_letter_limit,
        )

        self.filtering_prompts = FilteringPromptStore(database.config)
        self.devotional_prompts = DevotionalPromptStore(database.config)

        self.dispatcher = NotificationDispatcher(database.contents, database.users, database.threads, self.push)
        self.gate = ModerationGate(
            database.contents,
            ModerationClassifier(self.openai_client, ai.moderation_model, ai.request_timeout),
            ContentFilter(self.openai_client, ai.filter_model, ai.filter_max_tokens, ai.request_timeout),
            self.filtering_prompts,
            self.dispatcher,
        )
        self.generator = DailyContentGenerator(
            database.daily_content,
            self.devotional_prompts,
            self.openai_client,
            self.scripture,
            model=ai.generation_model,
            temperature=ai.generation_temperature,
            timeout=ai.request_timeout,
            history_size=daily.history_size,
            bible_version=config.scripture_settings.bible_version,
        )
        self.triggers = EventTriggers(
            self.bus,
            database.contents,
            database.threads,
            self.gate,
            self.dispatcher,
            self.generator,
        )
        self.scheduler = DailyContentScheduler(self.bus, daily)
        self.content_service = ContentService(self.bus, database.contents, database.threads, database.users)

        self.triggers.register()

    def start(self, with_scheduler: bool = True) -> None:
        self.bus.start()
        if with_scheduler:
            self.scheduler.start()
        logger.info("[RUNTIME] Pipeline started")

    async def shutdown(self) -> None:
        """Stop the scheduler, let queued events finish, then close clients."""
        await self.scheduler.shutdown()

        if self.bus.running:
            try:
                await asyncio.wait_for(self.bus.drain(), timeout=DRAIN_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                logger.warning("[RUNTIME] Event queue did not drain within %.0fs", DRAIN_TIMEOUT_SECONDS)
        await self.bus.shutdown()

        for name, closer in (
            ("scripture client", self.scripture.close),
            ("push client", self.push.close),
            ("OpenAI client", self.openai_client.close),
        ):
            try:
                await closer()
            except Exception as exc:
                logger.error("[RUNTIME] Error closing %s: %s", name, exc)

        logger.info("[RUNTIME] Pipeline shut down")
