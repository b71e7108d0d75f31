"""Serving layer for watch mode (requires the ``serve`` extra)."""

from flightdeck.server.app import create_server_app
from flightdeck.server.livereload import (
    RELOAD_ENDPOINT,
    RELOAD_EVENT,
    RELOAD_SCRIPT,
    STATS_ENDPOINT,
    inject_reload_script,
)

__all__ = [
    "RELOAD_ENDPOINT",
    "RELOAD_EVENT",
    "RELOAD_SCRIPT",
    "STATS_ENDPOINT",
    "create_server_app",
    "inject_reload_script",
]
