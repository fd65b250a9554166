"""Tests for the in-process EventBus."""

import asyncio
from dataclasses import dataclass

import pytest
import pytest_asyncio

from anchor.events.event_bus import EventBus, handler_name


@dataclass(frozen=True)
class Ping:
    value: int


@dataclass(frozen=True)
class Pong:
    value: int


@pytest_asyncio.fixture
async def bus():
    event_bus = EventBus(worker_count=2, max_delivery_attempts=3, retry_backoff_seconds=0)
    yield event_bus
    await event_bus.shutdown()


class TestPublish:
    """Tests for subscribe/publish routing."""

    @pytest.mark.asyncio
    async def test_no_handlers(self, bus):
        assert await bus.publish(Ping(1)) == 0

    @pytest.mark.asyncio
    async def test_delivers_to_each_handler_of_type(self, bus):
        """Test that every handler of the event's type runs and others do not."""
        seen = []

        async def first(event):
            seen.append(("first", event.value))

        async def second(event):
            seen.append(("second", event.value))

        async def other(event):
            seen.append(("other", event.value))

        bus.subscribe(Ping, first)
        bus.subscribe(Ping, second)
        bus.subscribe(Pong, other)
        bus.start()

        assert await bus.publish(Ping(7)) == 2
        await bus.drain()

        assert sorted(seen) == [("first", 7), ("second", 7)]

    @pytest.mark.asyncio
    async def test_handlers_run_concurrently(self, bus):
        """Test that two slow deliveries overlap on a two-worker pool."""
        started = asyncio.Event()
        release = asyncio.Event()
        running = []

        async def slow(event):
            running.append(event.value)
            if len(running) == 2:
                started.set()
            await release.wait()

        bus.subscribe(Ping, slow)
        bus.start()
        await bus.publish(Ping(1))
        await bus.publish(Ping(2))

        await asyncio.wait_for(started.wait(), timeout=1)
        release.set()
        await bus.drain()
        assert sorted(running) == [1, 2]

    @pytest.mark.asyncio
    async def test_handler_may_publish(self, bus):
        """Test that drain waits for events published by handlers."""
        seen = []

        async def on_ping(event):
            await bus.publish(Pong(event.value + 1))

        async def on_pong(event):
            seen.append(event.value)

        bus.subscribe(Ping, on_ping)
        bus.subscribe(Pong, on_pong)
        bus.start()

        await bus.publish(Ping(1))
        await bus.drain()
        assert seen == [2]


class TestRedelivery:
    """Tests for retry and dead-lettering."""

    @pytest.mark.asyncio
    async def test_failed_handler_is_retried(self, bus):
        attempts = []

        async def flaky(event):
            attempts.append(event.value)
            if len(attempts) < 2:
                raise RuntimeError("transient")

        bus.subscribe(Ping, flaky)
        bus.start()
        await bus.publish(Ping(3))
        await bus.drain()

        assert attempts == [3, 3]
        assert not bus.dead_letters

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, bus):
        """Test that a handler failing every time is dead-lettered."""
        attempts = []

        async def broken(event):
            attempts.append(event.value)
            raise ValueError("always")

        bus.subscribe(Ping, broken)
        bus.start()
        await bus.publish(Ping(4))
        await bus.drain()

        assert len(attempts) == 3
        assert len(bus.dead_letters) == 1
        event, name, error = bus.dead_letters[0]
        assert event == Ping(4)
        assert name == handler_name(broken)
        assert error == "always"

    @pytest.mark.asyncio
    async def test_dead_letters_keep_most_recent(self):
        """Test that the dead-letter record is bounded and drops the oldest first."""
        bus = EventBus(worker_count=1, max_delivery_attempts=1, retry_backoff_seconds=0, dead_letter_limit=2)

        async def broken(event):
            raise ValueError(f"bad {event.value}")

        bus.subscribe(Ping, broken)
        bus.start()
        try:
            for value in range(5):
                await bus.publish(Ping(value))
            await bus.drain()
        finally:
            await bus.shutdown()

        assert [event.value for event, _, _ in bus.dead_letters] == [3, 4]

    @pytest.mark.asyncio
    async def test_failure_does_not_block_other_handlers(self, bus):
        seen = []

        async def broken(event):
            raise RuntimeError("nope")

        async def fine(event):
            seen.append(event.value)

        bus.subscribe(Ping, broken)
        bus.subscribe(Ping, fine)
        bus.start()
        await bus.publish(Ping(5))
        await bus.drain()

        assert seen == [5]


class TestLifecycle:
    """Tests for start/shutdown."""

    @pytest.mark.asyncio
    async def test_start_and_shutdown(self, bus):
        assert not bus.running
        bus.start()
        assert bus.running
        bus.start()
        await bus.shutdown()
        assert not bus.running

    @pytest.mark.asyncio
    async def test_events_queue_before_start(self, bus):
        """Test that events published before start are delivered once workers run."""
        seen = []

        async def handler(event):
            seen.append(event.value)

        bus.subscribe(Ping, handler)
        await bus.publish(Ping(9))
        assert seen == []

        bus.start()
        await bus.drain()
        assert seen == [9]
