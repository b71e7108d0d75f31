"""Serving layer — the output directory over HTTP, plus the reload endpoint.

Files are served as the last pass wrote them.  Built on
chirp, which is an optional dependency (``pip install flightdeck[serve]``)
imported only when watch mode starts.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from flightdeck._errors import WatchError
from flightdeck.server.livereload import (
    RELOAD_ENDPOINT,
    RELOAD_EVENT,
    STATS_ENDPOINT,
    livereload_middleware,
)

if TYPE_CHECKING:
    from chirp import App
    from chirp.http.request import Request
    from chirp.middleware.protocol import Next

    from flightdeck.config import FlightDeckConfig
    from flightdeck.observability.collector import StackCollector
    from flightdeck.reactive.channel import ReloadChannel

INDEX_FILE = "index.html"


def _require_chirp() -> None:
    try:
        import chirp  # noqa: F401
    except ImportError as exc:
        msg = (
            "watch mode requires the chirp web framework. "
            "Install with: pip install flightdeck[serve]"
        )
        raise WatchError(msg) from exc


def register_reload_endpoint(app: App, channel: ReloadChannel) -> None:
    """Register ``/__flightdeck/reload``: one SSE ``reload`` event per signal."""
    from chirp import EventStream, SSEEvent

    async def reload_handler(request: Request) -> Any:
        sub = channel.subscribe()

        async def generate():  # type: ignore[return]
            async for _token in channel.listen(sub):
                yield SSEEvent(data="reload", event=RELOAD_EVENT)

        return EventStream(generate())

    reload_handler.__name__ = "flightdeck_reload"
    app.route(RELOAD_ENDPOINT, name="flightdeck:reload")(reload_handler)


def register_stats_endpoint(app: App, collector: StackCollector) -> None:
    """Register ``/__flightdeck/stats``: pass timing and event-log summary."""

    async def stats_handler(request: Request) -> Any:
        from chirp.http.response import Response

        from flightdeck.observability.profiler import compute_aggregate_stats

        payload = json.dumps(
            {
                "passes": compute_aggregate_stats(collector.log),
                "event_log": collector.log.stats(),
            },
            indent=2,
        )
        return Response(body=payload, status=200, content_type="application/json")

    stats_handler.__name__ = "flightdeck_stats"
    app.route(STATS_ENDPOINT, name="flightdeck:stats")(stats_handler)


def make_index_middleware(config: FlightDeckConfig) -> Any:
    """Middleware answering directory URLs (``/``, ``/posts/``) with their index.html."""
    out_root = config.output_path.resolve()

    async def index_middleware(request: Request, next: Next) -> Any:
        path = request.path
        if path.endswith("/"):
            candidate = (out_root / path.lstrip("/") / INDEX_FILE).resolve()
            if candidate.is_relative_to(out_root) and candidate.is_file():
                from chirp.http.response import Response

                return Response(
                    body=candidate.read_bytes(),
                    status=200,
                    content_type="text/html",
                )
        return await next(request)

    return index_middleware


def create_server_app(
    config: FlightDeckConfig,
    channel: ReloadChannel,
    collector: StackCollector,
) -> App:
    """Create the chirp App that serves ``config.output_path``.

    Raises:
        WatchError: If chirp is not installed.

    """
    _require_chirp()
    from chirp import App, AppConfig
    from chirp.middleware import StaticFiles

    out = config.output_path
    out.mkdir(parents=True, exist_ok=True)

    app = App(
        config=AppConfig(
            template_dir=out,
            debug=True,
            host=config.host,
            port=config.port,
        )
    )
    register_reload_endpoint(app, channel)
    register_stats_endpoint(app, collector)

    app.add_middleware(livereload_middleware)
    app.add_middleware(make_index_middleware(config))
    app.add_middleware(StaticFiles(directory=out, prefix="/"))
    return app
