"""Watch loop — debounce filesystem events into selective rebuilds.

State machine::

    Idle ──event──▶ Collecting ──quiet for debounce──▶ Rebuilding ──ok──▶ Idle (+ reload signal)
                     ▲      │                                       └─fail─▶ Error
                     └event─┘                                Error ──event──▶ Collecting

All events arrive through one ``asyncio.Queue``.  The debounce timer is the
``wait_for`` timeout on that queue, so an event and the timer expiry can
never both fire.  A rebuild runs in a worker thread and is not preempted:
events that arrive meanwhile stay queued for the next cycle.
"""

from __future__ import annotations

import asyncio
import enum
import sys
import time
from typing import TYPE_CHECKING

from flightdeck._errors import FlightDeckError
from flightdeck.pipeline.files import fingerprint, relative_posix

if TYPE_CHECKING:
    from pathlib import Path

    from flightdeck._types import Fingerprint
    from flightdeck.observability.collector import StackCollector
    from flightdeck.pipeline.dispatcher import BuildResult
    from flightdeck.pipeline.generation import Generation
    from flightdeck.reactive.channel import ReloadChannel
    from flightdeck.reactive.watcher import ChangeEvent

_UNSEEN = object()


class WatchState(enum.Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    REBUILDING = "rebuilding"
    ERROR = "error"


class WatchLoop:
    """Coalesces change events and drives ``Generation.rebuild``.

    Args:
        generation: Build passes for the project (already built once).
        channel: Signalled after every successful rebuild.
        debounce: Quiet period in seconds (defaults to the config's).
        collector: Receives reload events (defaults to the generation's).

    """

    def __init__(
        self,
        generation: Generation,
        channel: ReloadChannel,
        *,
        debounce: float | None = None,
        collector: StackCollector | None = None,
    ) -> None:
        self._generation = generation
        self._channel = channel
        self._debounce = (
            debounce if debounce is not None else generation.config.debounce_seconds
        )
        self._collector = collector if collector is not None else generation.collector
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._state = WatchState.IDLE
        self._processed: dict[Path, Fingerprint | None] = {}
        self._retry: set[Path] = set()
        self._rebuilds = 0
        self._last_result: BuildResult | None = None
        self._last_error: Exception | None = None

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def rebuild_count(self) -> int:
        """Rebuild passes attempted (successful or not)."""
        return self._rebuilds

    @property
    def last_result(self) -> BuildResult | None:
        return self._last_result

    @property
    def last_error(self) -> Exception | None:
        """Error of the most recent failed rebuild, cleared on success."""
        return self._last_error

    def submit(self, event: ChangeEvent) -> None:
        """Enqueue an event (must run on the loop's thread)."""
        self._queue.put_nowait(event)

    async def run(self) -> None:
        """Run cycles until cancelled."""
        while True:
            await self.run_once()

    async def run_once(self) -> bool:
        """Wait for events, debounce, rebuild.

        Returns:
            True if a rebuild pass ran.

        """
        pending = await self._collect()
        paths = sorted(set(self._unprocessed(pending)) | self._retry)
        if not paths:
            if self._state is WatchState.COLLECTING:
                self._state = WatchState.IDLE
            return False
        await self._rebuild(paths)
        return True

    async def _collect(self) -> dict[Path, ChangeEvent]:
        first = await self._queue.get()
        self._state = WatchState.COLLECTING
        pending = {first.path: first}
        while True:
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=self._debounce)
            except TimeoutError:
                return pending
            pending[event.path] = event

    def _unprocessed(self, pending: dict[Path, ChangeEvent]) -> list[Path]:
        """Drop paths whose current state was already rebuilt."""
        paths: list[Path] = []
        for path in sorted(pending):
            if self._processed.get(path, _UNSEEN) == fingerprint(path):
                continue
            paths.append(path)
        return paths

    async def _rebuild(self, paths: list[Path]) -> None:
        self._state = WatchState.REBUILDING
        self._rebuilds += 1
        root = self._generation.config.root
        names = ", ".join(relative_posix(p, root) or str(p) for p in paths)
        print(f"\n  [{time.strftime('%H:%M:%S')}] Changes detected: {names}", file=sys.stderr)
        # Fingerprints the rebuild reads; edits made while it runs stay unprocessed.
        seen = {path: fingerprint(path) for path in paths}

        try:
            result = await asyncio.to_thread(self._generation.rebuild, paths)
        except FlightDeckError as exc:
            self._fail(exc, f"  Build failed: {exc}", paths)
            return
        except Exception as exc:
            self._fail(exc, f"  Build crashed: {type(exc).__name__}: {exc}", paths)
            return

        self._processed.update(seen)
        self._retry.clear()
        self._last_result = result
        self._last_error = None
        notified = self._channel.signal()
        self._collector.record_reload(notified)
        self._state = WatchState.IDLE

    def _fail(self, exc: Exception, message: str, paths: list[Path]) -> None:
        # Browsers are not told to reload into broken output.
        self._retry.update(paths)
        self._last_error = exc
        self._state = WatchState.ERROR
        print(message, file=sys.stderr)
        print("  Waiting for changes...", file=sys.stderr)
