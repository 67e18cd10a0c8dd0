"""In-process log of healing events for trace and review tooling."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

    from healwright.models.domain import HealingEvent

logger = structlog.get_logger(__name__)


class HealingEventLog:
    """Collects ``HealingEvent`` records and forwards them to subscribers."""

    def __init__(self) -> None:
        self._events: list[HealingEvent] = []
        self._subscribers: list[Callable[[HealingEvent], None]] = []

    def subscribe(self, callback: Callable[[HealingEvent], None]) -> None:
        self._subscribers.append(callback)

    def record(self, event: HealingEvent) -> None:
        self._events.append(event)
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.warning("healing_event_subscriber_failed", error=str(e))

    @property
    def events(self) -> list[HealingEvent]:
        return list(self._events)

    def to_trace(self) -> list[dict[str, Any]]:
        """Events in the camelCase shape written to traces."""
        return [e.model_dump(mode="json", by_alias=True) for e in self._events]

    def clear(self) -> None:
        self._events.clear()
