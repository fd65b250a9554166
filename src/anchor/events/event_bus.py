"""
In-process event bus.

One asyncio.Queue feeds a fixed pool of worker tasks. Publishing an event
enqueues one delivery per subscribed handler, so handlers for different
documents run concurrently. Delivery is at-least-once: a handler that raises
is requeued after ``retry_backoff_seconds * attempt`` seconds, up to
``max_delivery_attempts``; after that the delivery is dropped with an error
log and recorded in ``dead_letters``, which keeps only the most recent
``dead_letter_limit`` entries.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Dict, List, Tuple, Type

from anchor.util.logger import get_logger

logger = get_logger("event_bus")

Handler = Callable[[Any], Awaitable[Any]]


def handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


@dataclass(slots=True)
class _Delivery:
    event: Any
    handler: Handler
    attempt: int = 1


class EventBus:
    """Typed publish/subscribe over an asyncio worker pool."""

    def __init__(
        self,
        worker_count: int = 4,
        max_delivery_attempts: int = 3,
        retry_backoff_seconds: float = 2.0,
        dead_letter_limit: int = 1000,
    ) -> None:
        self._worker_count = max(1, worker_count)
        self._max_attempts = max(1, max_delivery_attempts)
        self._backoff = max(0.0, retry_backoff_seconds)
        self._queue: asyncio.Queue[_Delivery] = asyncio.Queue()
        self._handlers: Dict[Type[Any], List[Handler]] = {}
        self._workers: List[asyncio.Task] = []
        self.dead_letters: Deque[Tuple[Any, str, str]] = deque(maxlen=max(1, dead_letter_limit))

    # ------------------------------------------------------
    # Public API
    # ------------------------------------------------------

    def subscribe(self, event_type: Type[Any], handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug("[EVENT BUS] %s subscribed to %s", handler_name(handler), event_type.__name__)

    async def publish(self, event: Any) -> int:
        """Queue ``event`` for every handler subscribed to its type.

        Returns:
            Number of deliveries queued.
        """
        handlers = self._handlers.get(type(event), [])
        if not handlers:
            logger.debug("[EVENT BUS] No handlers for %s", type(event).__name__)
            return 0
        for handler in handlers:
            await self._queue.put(_Delivery(event=event, handler=handler))
        return len(handlers)

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._workers)

    def start(self) -> None:
        """Start the worker pool if it is not already running."""
        if self.running:
            logger.warning("[EVENT BUS] Workers already running")
            return
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"event-bus-worker-{index}")
            for index in range(self._worker_count)
        ]
        logger.info("[EVENT BUS] Started %d worker(s)", self._worker_count)

    async def drain(self) -> None:
        """Wait until every queued delivery, retries included, has finished."""
        await self._queue.join()

    async def shutdown(self) -> None:
        """Cancel all worker tasks."""
        for task in self._workers:
            if not task.done():
                task.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()
        logger.info("[EVENT BUS] All workers shut down.")

    # -------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------

    async def _worker(self, index: int) -> None:
        while True:
            try:
                delivery = await self._queue.get()
            except asyncio.CancelledError:
                logger.debug("[EVENT BUS] Worker %d cancelled", index)
                return

            try:
                await self._deliver(delivery)
            except asyncio.CancelledError:
                self._queue.task_done()
                return
            except Exception:
                logger.exception("[EVENT BUS] Worker %d failed handling delivery", index)
            self._queue.task_done()

    async def _deliver(self, delivery: _Delivery) -> None:
        name = handler_name(delivery.handler)
        try:
            await delivery.handler(delivery.event)
            return
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if delivery.attempt >= self._max_attempts:
                logger.error(
                    "[EVENT BUS] %s failed for %s after %d attempt(s); dropping: %s",
                    name,
                    delivery.event,
                    delivery.attempt,
                    exc,
                )
                self.dead_letters.append((delivery.event, name, str(exc)))
                return
            logger.warning(
                "[EVENT BUS] %s failed for %s (attempt %d/%d): %s; retrying",
                name,
                delivery.event,
                delivery.attempt,
                self._max_attempts,
                exc,
            )

        await asyncio.sleep(self._backoff * delivery.attempt)
        self._queue.put_nowait(_Delivery(event=delivery.event, handler=delivery.handler, attempt=delivery.attempt + 1))
