"""Build pass — loaders, then the dispatcher, against a fresh content store.

``Generation`` owns everything that outlives a single pass in watch mode:
the step runtime (imported step modules) and the step cache.  The content
store does not outlive its pass: every pass builds a new one.

Full build::

    gen = Generation(config, routes)
    gen.prepare()
    result = gen.build()

Selective rebuild (watch mode)::

    result = gen.rebuild([root / "posts" / "a.md"])

A rebuild invalidates the cache for each changed path, then dispatches the
changed files plus every ``Once`` step.  Outputs recorded by the dropped
entries become stale candidates; after a successful pass, candidates that no
remaining cache entry records are removed from the output tree.  Candidates
whose source failed in that pass are kept for the next one.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from flightdeck.config_loader import CONFIG_FILE_NAMES
from flightdeck.content.store import ContentStore
from flightdeck.observability.collector import StackCollector
from flightdeck.observability.profiler import PassProfiler
from flightdeck.pipeline.cache import StepCache
from flightdeck.pipeline.dispatcher import Dispatcher
from flightdeck.pipeline.files import is_reserved, relative_posix
from flightdeck.runtime.steps import StepRuntime

if TYPE_CHECKING:
    from collections.abc import Iterable

    from flightdeck.config import FlightDeckConfig
    from flightdeck.pipeline.dispatcher import BuildResult
    from flightdeck.routes.config import RouteConfig


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


class Generation:
    """Runs build passes for one project.

    Args:
        config: Engine configuration.
        routes: The project's RouteConfig.
        cache: Step cache (a new one if omitted).
        collector: Event collector (a new one if omitted).
        watch: Passed to steps through the ``BuildInfo`` record.
        verbose: Print pass summaries to stderr.

    """

    def __init__(
        self,
        config: FlightDeckConfig,
        routes: RouteConfig,
        *,
        cache: StepCache | None = None,
        collector: StackCollector | None = None,
        watch: bool = False,
        verbose: bool = True,
    ) -> None:
        self._config = config
        self._watch = watch
        self._verbose = verbose
        self._cache = cache if cache is not None else StepCache()
        self._collector = collector if collector is not None else StackCollector()
        self._runtime = StepRuntime(config, routes)
        self._dispatcher = Dispatcher(config, self._runtime, self._cache, collector=self._collector)
        self._store: ContentStore | None = None
        # output path -> input paths (None for Once) that last recorded it
        self._stale: dict[str, set[str | None]] = {}

    @property
    def config(self) -> FlightDeckConfig:
        return self._config

    @property
    def cache(self) -> StepCache:
        return self._cache

    @property
    def collector(self) -> StackCollector:
        return self._collector

    @property
    def runtime(self) -> StepRuntime:
        return self._runtime

    @property
    def store(self) -> ContentStore | None:
        """Content store of the most recent pass."""
        return self._store

    def prepare(self) -> None:
        """Resolve every step reference up front.

        Raises:
            ConfigError: On an unresolvable step reference.
            LoaderError: If a loader module fails to import.

        """
        self._runtime.prepare()

    def build(self) -> BuildResult:
        """Run one full pass over every project file.

        Raises:
            LoaderError: If a loader fails (nothing is written).
            StepError: If a ``Once`` step fails (nothing is written).
            OutputError: If the output root is unusable.

        """
        return self._run("full")

    def rebuild(self, changed: Iterable[Path]) -> BuildResult:
        """Run a selective pass for a set of changed absolute paths.

        A path that no longer exists is treated as deleted: its cache entries
        are dropped and the outputs recorded for it are removed, unless another
        input still produces them.  Those inputs are dispatched again so the
        shared output holds their content.  A changed generator script re-runs
        its steps over every file.  A changed loader re-runs everything, since
        any step may read what loaders produce.

        Raises:
            LoaderError, StepError, OutputError: As for ``build``.

        """
        config = self._config
        rels: list[str] = []
        full_steps: set[str] = set()
        loaders_changed = False
        self._mark_stale(self._cache.global_outputs(), None)

        for path in sorted(set(changed)):
            rel = relative_posix(path, config.root)
            if rel is None or is_reserved(rel, config):
                continue
            if path == config.config_path or rel in CONFIG_FILE_NAMES:
                print(f"  {rel} changed; restart flightdeck to apply it", file=sys.stderr)
                continue
            if path.suffix == ".py" and path.parent == config.loaders_path:
                loaders_changed = True
            for route in self._runtime.scripts_for(path):
                self._cache.invalidate_step(route.step_id)
                full_steps.add(route.step_id)

            removed = self._cache.invalidate(rel)
            self._mark_stale((out for entry in removed for out in entry.paths), rel)
            if path.exists():
                rels.append(rel)

        if loaders_changed:
            self._cache.invalidate_all()
            return self._run("loaders")

        trigger = ", ".join(rels) if rels else "changes"
        owners = self._cache.sources_for(self._stale) - set(rels)
        files = rels + sorted(owners)
        return self._run(trigger, files=files, full_steps=full_steps)

    def _run(
        self,
        trigger: str,
        *,
        files: list[str] | None = None,
        full_steps: Iterable[str] = (),
    ) -> BuildResult:
        # Global steps read the store, which is rebuilt for every pass.
        self._mark_stale(self._cache.global_outputs(), None)
        self._cache.invalidate_globals()

        profiler = PassProfiler(self._collector.log)
        profiler.begin(trigger)

        store = ContentStore()
        profiler.start("loaders")
        self._runtime.run_loaders(store, watch=self._watch)
        profiler.stop("loaders")
        self._store = store

        result = self._dispatcher.dispatch(
            store, files=files, full_steps=full_steps, profiler=profiler
        )
        self._prune_stale(result)
        profiler.finish(files_written=len(result.written))
        self._collector.record_pass(
            trigger,
            files_written=len(result.written),
            failures=len(result.failures),
            collisions=len(result.collisions),
            invoked=result.invoked,
            cached=result.cached,
            duration_ms=result.duration_ms,
        )
        if self._verbose:
            print_summary(result)
        return result

    def _mark_stale(self, outputs: Iterable[str], source: str | None) -> None:
        for out in outputs:
            self._stale.setdefault(out, set()).add(source)

    def _prune_stale(self, result: BuildResult) -> None:
        """Remove stale candidates that no remaining cache entry records."""
        failed = {f.path for f in result.failures}
        owned = self._cache.owned_outputs()
        keep: dict[str, set[str | None]] = {}
        doomed: list[str] = []
        for out, sources in self._stale.items():
            if out in owned:
                continue
            if sources & failed:
                keep[out] = sources
            else:
                doomed.append(out)
        self._stale = keep
        self._prune_outputs(sorted(doomed))

    def _prune_outputs(self, outputs: Iterable[str]) -> None:
        out_root = self._config.output_path
        for rel_out in outputs:
            target = out_root / rel_out
            if not target.is_file():
                continue
            target.unlink()
            if self._verbose:
                print(f"  Removed {rel_out}", file=sys.stderr)
            parent = target.parent
            while parent != out_root and parent.is_dir() and not any(parent.iterdir()):
                parent.rmdir()
                parent = parent.parent


def print_summary(result: BuildResult) -> None:
    """Print a pass summary (and any per-file errors) to stderr."""
    unchanged = len(result.files) - len(result.written)
    line = f"  Wrote {_plural(len(result.written), 'file')}"
    if unchanged:
        line += f" ({unchanged} unchanged)"
    line += (
        f" in {result.duration_ms:.0f}ms"
        f"  [{result.invoked} invoked, {result.cached} cached]"
    )
    lines = [line]
    if result.collisions:
        lines.append(f"  {_plural(len(result.collisions), 'output collision')} (last writer wins)")
    if result.failures:
        lines.append(f"  {_plural(len(result.failures), 'error')}:")
        lines.extend(f"    {failure}" for failure in result.failures)
    print("\n".join(lines), file=sys.stderr)
