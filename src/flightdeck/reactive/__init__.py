"""Watch mode: filesystem watcher, debounced rebuild loop and reload channel."""

from flightdeck.reactive.channel import ReloadChannel, Subscription
from flightdeck.reactive.loop import WatchLoop, WatchState
from flightdeck.reactive.watcher import ChangeEvent, ProjectWatcher, is_ignored

__all__ = [
    "ChangeEvent",
    "ProjectWatcher",
    "ReloadChannel",
    "Subscription",
    "WatchLoop",
    "WatchState",
    "is_ignored",
]
