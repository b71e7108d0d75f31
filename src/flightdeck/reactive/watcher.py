"""Project watcher — filesystem events for the watch loop.

Runs ``watchfiles.watch`` on a background thread and hands each relevant
change to the event loop with ``loop.call_soon_threadsafe``, so the watch
loop consumes a single asyncio queue.

Changes inside reserved directories (output, step cache, version control,
dependency managers) are dropped here; writing output must never re-trigger
a rebuild.
"""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from watchfiles import Change

from flightdeck.pipeline.files import is_reserved, relative_posix

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable

    from flightdeck.config import FlightDeckConfig

type ChangeKind = Literal["created", "modified", "deleted"]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A file change detected by the watcher.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.

    """

    path: Path
    kind: ChangeKind


# Mapping from watchfiles Change enum to our kind literals.
_CHANGE_KIND_MAP: dict[Change, ChangeKind] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


def is_ignored(path: Path, config: FlightDeckConfig) -> bool:
    """True for paths outside the root or inside a reserved directory."""
    rel = relative_posix(path, config.root)
    if rel is None or rel in ("", "."):
        return True
    if is_reserved(rel, config):
        return True
    # Editor swap and backup files
    name = path.name
    return name.endswith(("~", ".swp", ".swx")) or name.startswith(".#")


def to_events(raw_changes: set[tuple[Change, str]], config: FlightDeckConfig) -> list[ChangeEvent]:
    """Translate a watchfiles batch into sorted, filtered ChangeEvents."""
    events: list[ChangeEvent] = []
    for change_type, path_str in raw_changes:
        path = Path(path_str)
        if is_ignored(path, config):
            continue
        events.append(ChangeEvent(path=path, kind=_CHANGE_KIND_MAP.get(change_type, "modified")))
    events.sort(key=lambda e: (str(e.path), e.kind))
    return events


class ProjectWatcher:
    """Watches the project root and delivers events onto an event loop.

    Args:
        config: Engine configuration.
        loop: Event loop that owns the consumer.
        deliver: Called on *loop* with each ChangeEvent (typically
            ``WatchLoop.submit``).

    """

    def __init__(
        self,
        config: FlightDeckConfig,
        loop: asyncio.AbstractEventLoop,
        deliver: Callable[[ChangeEvent], None],
    ) -> None:
        self._config = config
        self._loop = loop
        self._deliver = deliver
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start watching for file changes in a background thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._watch_loop,
            name="flightdeck-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the watcher to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    def _watch_loop(self) -> None:
        """Background thread: run watchfiles and hand events to the loop."""
        from watchfiles import watch

        for raw_changes in watch(
            self._config.root,
            stop_event=self._stop_event,
            debounce=50,
            step=50,
            raise_interrupt=False,
        ):
            for event in to_events(raw_changes, self._config):
                try:
                    self._loop.call_soon_threadsafe(self._deliver, event)
                except RuntimeError:
                    # Event loop closed during shutdown.
                    print("  Watcher stopped: event loop closed", file=sys.stderr)
                    return
