"""Tests for EventBus — in-process event publish/subscribe."""

from __future__ import annotations

from unittest.mock import AsyncMock

from converter.application.event_bus import EventBus
from converter.domain.models import ConverterEvent


def _make_event(name: str = "conversion.started") -> ConverterEvent:
    return ConverterEvent(timestamp="2026-10-18T14:00:00Z", event_name=name)


class TestEventBusPublish:
    async def test_publish_calls_all_listeners(self) -> None:
        bus = EventBus()
        listener1 = AsyncMock()
        listener2 = AsyncMock()
        bus.subscribe(listener1)
        bus.subscribe(listener2)

        event = _make_event()
        await bus.publish(event)

        listener1.assert_called_once_with(event)
        listener2.assert_called_once_with(event)

    async def test_publish_with_no_listeners(self) -> None:
        bus = EventBus()
        await bus.publish(_make_event())  # Should not raise

    async def test_failing_listener_does_not_block_others(self) -> None:
        bus = EventBus()
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        passing = AsyncMock()
        bus.subscribe(failing)
        bus.subscribe(passing)

        await bus.publish(_make_event())

        failing.assert_called_once()
        passing.assert_called_once()

    async def test_listeners_called_in_subscription_order(self) -> None:
        bus = EventBus()
        order: list[str] = []

        async def first(event: ConverterEvent) -> None:
            order.append("first")

        async def second(event: ConverterEvent) -> None:
            order.append("second")

        bus.subscribe(first)
        bus.subscribe(second)
        await bus.publish(_make_event())
        assert order == ["first", "second"]


class TestEventBusEmit:
    async def test_emit_builds_timestamped_event(self) -> None:
        bus = EventBus()
        listener = AsyncMock()
        bus.subscribe(listener)

        await bus.emit("conversion.completed", output="out.mp4")

        event = listener.call_args.args[0]
        assert isinstance(event, ConverterEvent)
        assert event.event_name == "conversion.completed"
        assert event.data["output"] == "out.mp4"
        assert event.timestamp.endswith("Z")


class TestEventBusSubscribe:
    def test_subscribe_increments_count(self) -> None:
        bus = EventBus()
        assert bus.listener_count == 0
        bus.subscribe(AsyncMock())
        assert bus.listener_count == 1
        bus.subscribe(AsyncMock())
        assert bus.listener_count == 2


class TestEventBusUnsubscribe:
    async def test_returned_handle_removes_listener(self) -> None:
        bus = EventBus()
        listener = AsyncMock()
        remove = bus.subscribe(listener)

        remove()
        await bus.publish(_make_event())

        listener.assert_not_called()
        assert bus.listener_count == 0

    def test_unknown_listener(self) -> None:
        assert EventBus().unsubscribe(AsyncMock()) is False

    async def test_listener_may_unsubscribe_during_delivery(self) -> None:
        bus = EventBus()
        later = AsyncMock()

        async def once(event: ConverterEvent) -> None:
            bus.unsubscribe(once)

        bus.subscribe(once)
        bus.subscribe(later)
        await bus.publish(_make_event())
        await bus.publish(_make_event())

        assert later.call_count == 2
        assert bus.listener_count == 1
