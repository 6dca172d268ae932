"""EventBus — fan converter events out to async listeners (observer pattern)."""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from typing import Any

from converter.domain.models import ConverterEvent

logger = logging.getLogger(__name__)

EventListener = Callable[[ConverterEvent], Coroutine[Any, Any, None]]

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class EventBus:
    """In-process publish/subscribe hub for probe and conversion events.

    Delivery is sequential, in subscription order. A listener that raises is
    logged and skipped; publishers never see its failure.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register ``listener``. Returns a callable that removes this registration."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: EventListener) -> bool:
        """Remove one registration of ``listener``; False if it was not subscribed."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    async def publish(self, event: ConverterEvent) -> None:
        # Snapshot so a listener may unsubscribe itself mid-delivery
        for listener in tuple(self._listeners):
            try:
                await listener(event)
            except Exception:
                logger.exception(
                    "Event listener %s raised on %s",
                    getattr(listener, "__name__", type(listener).__name__),
                    event.event_name,
                )

    async def emit(self, event_name: str, **data: Any) -> None:
        """Stamp the current UTC time on a new event and publish it."""
        timestamp = datetime.now(UTC).strftime(TIMESTAMP_FORMAT)
        await self.publish(ConverterEvent(timestamp=timestamp, event_name=event_name, data=data))
