"""Daily scheduler that publishes the devotional generation tick.

Sleeps until the configured UTC run time (02:00 by default), then publishes a
``ScheduledTick`` whose target date is today (UTC) plus ``days_ahead``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, time, timedelta, timezone
from typing import Callable

from anchor.configuration.service_settings import DailyContentSettings
from anchor.datatypes.event_datatypes import ScheduledTick
from anchor.events.event_bus import EventBus
from anchor.util.logger import get_logger

logger = get_logger("daily_content_scheduler")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def target_date_for(now: datetime, days_ahead: int = 2) -> str:
    """``YYYY-MM-DD`` of the UTC day ``days_ahead`` after ``now``."""
    return (now.astimezone(timezone.utc).date() + timedelta(days=days_ahead)).isoformat()


def next_run_after(now: datetime, run_at: time) -> datetime:
    """First moment strictly after ``now`` whose UTC wall time is ``run_at``."""
    now = now.astimezone(timezone.utc)
    candidate = datetime.combine(now.date(), run_at, tzinfo=timezone.utc)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class DailyContentScheduler:
    """Background task publishing one ``ScheduledTick`` per day."""

    def __init__(
        self,
        bus: EventBus,
        settings: DailyContentSettings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._bus = bus
        self._settings = settings
        self._clock = clock
        self._task: asyncio.Task | None = None

    async def fire(self, now: datetime | None = None) -> ScheduledTick:
        """Publish the tick for ``now`` (default: the clock) and return it."""
        now = now or self._clock()
        tick = ScheduledTick(target_date=target_date_for(now, self._settings.days_ahead), fired_at=now)
        await self._bus.publish(tick)
        logger.info("[SCHEDULER] Published daily tick for %s", tick.target_date)
        return tick

    async def _run_loop(self) -> None:
        run_at = self._settings.run_at_utc
        logger.info("[SCHEDULER] Daily content runs at %s UTC", run_at.strftime("%H:%M"))
        try:
            while True:
                now = self._clock()
                delay = (next_run_after(now, run_at) - now).total_seconds()
                await asyncio.sleep(max(0.0, delay))
                try:
                    await self.fire()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.error("[SCHEDULER] Failed to publish daily tick: %s", exc)
        except asyncio.CancelledError:
            logger.info("[SCHEDULER] Daily scheduler cancelled")
            raise

    def start(self) -> None:
        if self._task and not self._task.done():
            logger.warning("[SCHEDULER] Daily scheduler already running")
            return
        self._task = asyncio.create_task(self._run_loop(), name="daily-content-scheduler")

    async def shutdown(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("[SCHEDULER] Scheduler shutdown complete")
