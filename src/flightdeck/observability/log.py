"""Event log — bounded, thread-safe store of build events.

Keeps the most recent events in a ring buffer for inspection from the
``/__flightdeck/stats`` endpoint and from tests.  Queries filter by event
type, time, step identity and path.

Thread Safety:
    All methods take one ``threading.Lock``; producers on worker threads
    append concurrently.

"""

import threading
from collections import deque
from collections.abc import Iterable
from typing import Any

from flightdeck.observability.events import FlightDeckEvent


def _event_path(event: object) -> str:
    return getattr(event, "path", None) or getattr(event, "trigger", None) or ""


class EventLog:
    """Ring buffer of events (a ``deque`` with ``maxlen``).

    Args:
        max_events: Retained events; the oldest are dropped first.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[FlightDeckEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: FlightDeckEvent) -> None:
        with self._lock:
            self._events.append(event)

    def extend(self, events: Iterable[FlightDeckEvent]) -> None:
        with self._lock:
            self._events.extend(events)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        step: str | None = None,
        path: str | None = None,
        limit: int = 100,
    ) -> list[FlightDeckEvent]:
        """Return matching events, newest first.

        Args:
            event_type: Only events of this type.
            since_ns: Only events at or after this monotonic timestamp.
            step: Only events of this step identity.
            path: Substring that the event's path (or pass trigger) must contain.
            limit: Maximum number of events returned.

        """
        with self._lock:
            snapshot = list(self._events)

        results: list[FlightDeckEvent] = []
        for event in reversed(snapshot):
            if len(results) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if since_ns and event.timestamp_ns < since_ns:
                continue
            if step is not None and getattr(event, "step", None) != step:
                continue
            if path is not None and path not in _event_path(event):
                continue
            results.append(event)
        return results

    def recent(self, n: int = 20) -> list[FlightDeckEvent]:
        """The *n* most recent events, oldest first."""
        with self._lock:
            items = list(self._events)
        return items[-n:] if n > 0 else []

    def clear(self) -> int:
        """Drop all events; returns how many were dropped."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            events = list(self._events)

        by_type: dict[str, int] = {}
        for event in events:
            name = type(event).__name__
            by_type[name] = by_type.get(name, 0) + 1

        return {"total": len(events), "max_events": self._max_events, "by_type": by_type}
