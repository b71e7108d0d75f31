"""FlightDeck application — the build, watch and clean entry points.

``build`` runs one full pass.  ``watch`` runs one full pass, then serves the
output directory and rebuilds selectively on every change.  ``clean``
removes the output and cache directories without running the pipeline.
"""

from __future__ import annotations

import shutil
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

from flightdeck._errors import ConfigError, LoaderError, StepError
from flightdeck.config_loader import load_config

if TYPE_CHECKING:
    from flightdeck.config import FlightDeckConfig
    from flightdeck.pipeline.dispatcher import BuildResult
    from flightdeck.pipeline.generation import Generation


def _load_project(
    config: FlightDeckConfig,
    mode: str,
    *,
    watch: bool = False,
) -> Generation:
    """Load the RouteConfig, resolve every step, and print the banner.

    Raises:
        ConfigError: If the RouteConfig or a step reference is invalid.
        LoaderError: If a loader module fails to import.

    """
    from flightdeck.banner import print_banner
    from flightdeck.pipeline.generation import Generation
    from flightdeck.routes.loader import load_route_config

    t0 = time.perf_counter()
    routes = load_route_config(config)
    generation = Generation(config, routes, watch=watch)
    generation.prepare()
    load_ms = (time.perf_counter() - t0) * 1000

    print_banner(
        config,
        mode,
        routes=routes,
        loader_count=len(generation.runtime.loader_paths()),
        load_ms=load_ms,
    )
    return generation


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def build(root: str | Path = ".", **kwargs: object) -> BuildResult:
    """Run one full build pass.

    Per-file step failures are reported in the result; they do not raise.

    Args:
        root: Path to the project root directory.
        **kwargs: Override FlightDeckConfig fields.

    Raises:
        FlightDeckError: On a configuration error, a loader failure, a
            ``Once`` step failure, or an unusable output directory.

    """
    config = load_config(Path(root), **kwargs)
    generation = _load_project(config, "build")
    return generation.build()


def watch(root: str | Path = ".", **kwargs: object) -> None:
    """Build once, then serve the output and rebuild on every change.

    Blocks until interrupted.  A failing initial build is reported and the
    process keeps watching so the next edit can fix it.

    Args:
        root: Path to the project root directory.
        **kwargs: Override FlightDeckConfig fields (``port``, ``host``, ...).

    Raises:
        ConfigError: If the project configuration is invalid.
        WatchError: If the serving layer is not installed.

    """
    import asyncio

    from flightdeck.reactive.channel import ReloadChannel
    from flightdeck.reactive.loop import WatchLoop
    from flightdeck.reactive.watcher import ProjectWatcher
    from flightdeck.server.app import create_server_app

    config = load_config(Path(root), **kwargs)
    generation = _load_project(config, "watch", watch=True)

    channel = ReloadChannel()
    app = create_server_app(config, channel, generation.collector)

    try:
        generation.build()
    except (LoaderError, StepError) as exc:
        print(f"  Build failed: {exc}", file=sys.stderr)
        print("  Waiting for changes...", file=sys.stderr)

    watcher: ProjectWatcher | None = None
    task: asyncio.Task[None] | None = None

    @app.on_startup
    async def _start_watching() -> None:
        nonlocal watcher, task
        loop = WatchLoop(generation, channel)
        watcher = ProjectWatcher(config, asyncio.get_running_loop(), loop.submit)
        watcher.start()
        task = asyncio.create_task(loop.run())

    @app.on_shutdown
    async def _stop_watching() -> None:
        if watcher is not None:
            watcher.stop()
        if task is not None and not task.done():
            task.cancel()

    app.run(host=config.host, port=config.port)


def clean(root: str | Path = ".", **kwargs: object) -> list[Path]:
    """Delete the output directory and the cache sidecar directory.

    Args:
        root: Path to the project root directory.
        **kwargs: Override FlightDeckConfig fields.

    Returns:
        The directories that were removed.

    Raises:
        ConfigError: If the output directory is the project root or contains it.

    """
    config = load_config(Path(root), **kwargs)
    removed: list[Path] = []
    for target in (config.output_path, config.cache_path):
        resolved = target.resolve()
        if resolved == config.root or config.root.is_relative_to(resolved):
            msg = f"Refusing to delete {resolved}: it contains the project root"
            raise ConfigError(msg)
        if resolved.is_dir():
            shutil.rmtree(resolved)
            removed.append(resolved)
            print(f"  Removed {resolved}", file=sys.stderr)
    if not removed:
        print("  Nothing to clean", file=sys.stderr)
    return removed
