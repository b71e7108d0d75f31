"""Reload channel — one sender, many receivers, no replay.

The watch loop calls ``signal()`` after every successful rebuild.  Each
subscriber that is connected at that moment receives exactly one token;
subscribers that connect later never see it.  The serving layer turns each
token into one ``reload`` event on the subscriber's connection.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

RELOAD_TOKEN = "reload"

_ids = itertools.count(1)


@dataclass(frozen=True, slots=True)
class Subscription:
    """A connected receiver.

    Attributes:
        client_id: Unique, process-local identifier.
        queue: Tokens delivered to this receiver.

    """

    client_id: int = field(default_factory=lambda: next(_ids))
    queue: asyncio.Queue[str] = field(default_factory=asyncio.Queue, compare=False, hash=False)


class ReloadChannel:
    """Broadcast "now" notifications to currently-subscribed receivers.

    Thread-safe: the subscriber set is protected by a lock.  ``signal`` must
    be called on the event loop that owns the subscriber queues.
    """

    def __init__(self) -> None:
        self._subscribers: set[Subscription] = set()
        self._lock = threading.Lock()
        self._signals = 0

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    @property
    def signals_sent(self) -> int:
        """Number of ``signal()`` calls so far."""
        with self._lock:
            return self._signals

    def subscribe(self) -> Subscription:
        sub = Subscription()
        with self._lock:
            self._subscribers.add(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._subscribers.discard(sub)

    def signal(self) -> int:
        """Wake every current subscriber exactly once.

        Returns:
            Number of subscribers notified.

        """
        with self._lock:
            self._signals += 1
            targets = tuple(self._subscribers)
        for sub in targets:
            sub.queue.put_nowait(RELOAD_TOKEN)
        return len(targets)

    async def listen(self, sub: Subscription) -> AsyncIterator[str]:
        """Yield tokens for *sub* until the consumer goes away.

        Unsubscribes on exit, including client disconnect (cancellation).
        """
        try:
            while True:
                yield await sub.queue.get()
        except (asyncio.CancelledError, GeneratorExit):
            return
        finally:
            self.unsubscribe(sub)
