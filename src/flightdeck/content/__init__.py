"""Content layer — the typed store shared by loader and producer steps."""

from flightdeck.content.store import BuildInfo, ContentStore

__all__ = [
    "BuildInfo",
    "ContentStore",
]
