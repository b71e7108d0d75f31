"""Dispatcher — run producer steps against matching files and write outputs.

One dispatch is three phases:

1. **Plan** — enumerate project files once, then walk descriptors in
   declaration order: a ``Once`` descriptor contributes one task, any other
   descriptor one task per matching file (sorted).
2. **Invoke** — run each task (consulting the step cache), optionally on a
   thread pool.  Producers only read the content store.
3. **Write** — in plan order, so last-writer-wins collisions are stable.
   Nothing is written if a ``Once`` step failed.

Per-file failures are collected into the ``BuildResult``; only ``Once``
failures and an unusable output root abort the pass.
"""

from __future__ import annotations

import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from flightdeck._errors import OutputError, StepError
from flightdeck.pipeline.files import fingerprint, iter_project_files
from flightdeck.runtime.steps import normalize_result

if TYPE_CHECKING:
    from collections.abc import Iterable

    from flightdeck.config import FlightDeckConfig
    from flightdeck.content.store import ContentStore
    from flightdeck.observability.collector import StackCollector
    from flightdeck.observability.profiler import PassProfiler
    from flightdeck.pipeline.cache import StepCache
    from flightdeck.routes.config import Route
    from flightdeck.runtime.steps import StepRuntime


@dataclass(frozen=True, slots=True)
class StepFailure:
    """A recovered per-file producer failure.

    Attributes:
        step: Step identity.
        path: Relative input path, or None for a ``Once`` step.
        message: Error description.

    """

    step: str
    path: str | None
    message: str

    def __str__(self) -> str:
        where = self.path if self.path is not None else "<once>"
        return f"{self.step} [{where}]: {self.message}"


@dataclass(frozen=True, slots=True)
class OutputCollision:
    """Two tasks wrote the same output path; the later one won."""

    path: str
    previous_step: str
    step: str


@dataclass(frozen=True, slots=True)
class WrittenFile:
    """Record of one output artifact.

    Attributes:
        path: Output path relative to the output directory.
        step: Step identity that produced it.
        source: Relative input path, or None for a ``Once`` step.
        size_bytes: Content size.
        changed: False if the file already held identical bytes.

    """

    path: str
    step: str
    source: str | None
    size_bytes: int
    changed: bool


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Aggregate result of one dispatch.

    Attributes:
        files: Every output artifact, in write order.
        failures: Recovered per-file failures.
        collisions: Output collision warnings.
        invoked: Producer invocations actually executed.
        cached: Producer invocations served from the step cache.
        duration_ms: Wall-clock time of the dispatch.
        output_dir: Absolute output directory.

    """

    files: tuple[WrittenFile, ...]
    failures: tuple[StepFailure, ...]
    collisions: tuple[OutputCollision, ...]
    invoked: int
    cached: int
    duration_ms: float
    output_dir: Path

    @property
    def written(self) -> tuple[WrittenFile, ...]:
        """Artifacts whose bytes actually changed."""
        return tuple(f for f in self.files if f.changed)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass(frozen=True, slots=True)
class Task:
    """One planned producer invocation."""

    route: Route
    path: str | None


@dataclass(slots=True)
class _Outcome:
    task: Task
    outputs: tuple[tuple[str, bytes], ...] = ()
    error: str | None = None
    cached: bool = False
    duration_ms: float = 0.0
    skipped: bool = False


class Dispatcher:
    """Plans, invokes and writes producer steps for one content store.

    Args:
        config: Engine configuration.
        runtime: Step runtime that resolves and calls producers.
        cache: Step cache shared across passes.
        collector: Optional event collector.

    """

    def __init__(
        self,
        config: FlightDeckConfig,
        runtime: StepRuntime,
        cache: StepCache,
        *,
        collector: StackCollector | None = None,
    ) -> None:
        self._config = config
        self._runtime = runtime
        self._cache = cache
        self._collector = collector

    # -- plan --------------------------------------------------------------

    def plan(
        self,
        files: Iterable[str] | None = None,
        *,
        full_steps: Iterable[str] = (),
    ) -> tuple[list[Task], list[StepFailure]]:
        """Build the ordered task list.

        Args:
            files: Restrict file-triggered descriptors to these relative
                paths (watch mode).  None means every project file.
            full_steps: Step identities that run over every project file
                even when *files* is given.

        Returns:
            The tasks, plus failures raised by trigger predicates.

        """
        root = self._config.root
        all_files = list(iter_project_files(self._config))
        if files is None:
            targets = all_files
        else:
            existing = set(all_files)
            targets = sorted({f for f in files if f in existing})
        promoted = set(full_steps)

        tasks: list[Task] = []
        failures: list[StepFailure] = []
        for route in self._runtime.routes.routes:
            if route.is_global:
                tasks.append(Task(route=route, path=None))
                continue
            candidates = all_files if route.step_id in promoted else targets
            for rel in candidates:
                try:
                    matched = route.generator.matches(root, rel)
                except Exception as exc:
                    failures.append(StepFailure(route.step_id, rel, f"trigger failed: {exc}"))
                    continue
                if matched:
                    tasks.append(Task(route=route, path=rel))
        return tasks, failures

    # -- dispatch ----------------------------------------------------------

    def dispatch(
        self,
        store: ContentStore,
        *,
        files: Iterable[str] | None = None,
        full_steps: Iterable[str] = (),
        profiler: PassProfiler | None = None,
    ) -> BuildResult:
        """Run one dispatch over *store*.

        Raises:
            StepError: If any ``Once`` step failed (nothing is written).
            OutputError: If the output root cannot be created or written.

        """
        start = time.perf_counter()
        if profiler is not None:
            profiler.start("dispatch")
        tasks, failures = self.plan(files, full_steps=full_steps)
        outcomes = self._invoke_all(tasks, store)
        if profiler is not None:
            profiler.stop("dispatch")

        for outcome in outcomes:
            if outcome.error is not None:
                failures.append(
                    StepFailure(outcome.task.route.step_id, outcome.task.path, outcome.error)
                )
        for failure in failures:
            if self._collector is not None:
                self._collector.record_failure(failure.step, failure.path, failure.message)

        once_failures = [f for f in failures if f.path is None]
        if once_failures:
            first = once_failures[0]
            msg = "; ".join(f"step '{f.step}' failed: {f.message}" for f in once_failures)
            raise StepError(msg, step=first.step)

        if profiler is not None:
            profiler.start("write")
        written, collisions, write_failures = self._write_all(outcomes)
        if profiler is not None:
            profiler.stop("write")
        failures.extend(write_failures)

        return BuildResult(
            files=tuple(written),
            failures=tuple(failures),
            collisions=tuple(collisions),
            invoked=sum(1 for o in outcomes if not o.cached and not o.skipped),
            cached=sum(1 for o in outcomes if o.cached),
            duration_ms=(time.perf_counter() - start) * 1000,
            output_dir=self._config.output_path,
        )

    def _invoke_all(self, tasks: list[Task], store: ContentStore) -> list[_Outcome]:
        workers = self._config.max_workers
        if workers > 1 and len(tasks) > 1:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="flightdeck-step") as pool:
                # map() preserves plan order
                return list(pool.map(lambda t: self._invoke(t, store), tasks))
        return [self._invoke(task, store) for task in tasks]

    def _invoke(self, task: Task, store: ContentStore) -> _Outcome:
        route, rel = task.route, task.path
        fp = None
        if rel is not None:
            fp = fingerprint(self._config.root / rel)
            if fp is None:
                return _Outcome(task, error="input file is not readable", skipped=True)

        entry = self._cache.get(route.step_id, rel, fp)
        if entry is not None:
            if self._collector is not None:
                self._collector.record_step(route.step_id, rel, cached=True)
            return _Outcome(task, outputs=entry.outputs, cached=True)

        t0 = time.perf_counter()
        try:
            result = self._runtime.invoke(route, store, rel)
            outputs = self._resolve_outputs(route, rel, result)
        except Exception as exc:
            return _Outcome(
                task,
                error=f"{type(exc).__name__}: {exc}",
                duration_ms=(time.perf_counter() - t0) * 1000,
            )
        duration_ms = (time.perf_counter() - t0) * 1000

        self._cache.put(route.step_id, rel, fp, outputs)
        if self._collector is not None:
            self._collector.record_step(route.step_id, rel, duration_ms=duration_ms)
        return _Outcome(task, outputs=outputs, duration_ms=duration_ms)

    @staticmethod
    def _resolve_outputs(
        route: Route,
        rel: str | None,
        result: object,
    ) -> tuple[tuple[str, bytes], ...]:
        policy = route.generator.output
        resolved: list[tuple[str, bytes]] = []
        for path, data in normalize_result(route, result):
            resolved.append((path if path is not None else policy.resolve(rel), data))  # type: ignore[arg-type]
        return tuple(resolved)

    # -- write -------------------------------------------------------------

    def _ensure_output_root(self) -> Path:
        out = self._config.output_path
        if out.exists() and not out.is_dir():
            msg = f"Output path {out} exists and is not a directory"
            raise OutputError(msg)
        try:
            out.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Cannot create output directory {out}: {exc}"
            raise OutputError(msg) from exc
        return out

    def _write_all(
        self,
        outcomes: list[_Outcome],
    ) -> tuple[list[WrittenFile], list[OutputCollision], list[StepFailure]]:
        out_root = self._ensure_output_root()
        owners: dict[str, str] = {}
        written: list[WrittenFile] = []
        collisions: list[OutputCollision] = []
        failures: list[StepFailure] = []

        for outcome in outcomes:
            if outcome.error is not None:
                continue
            step_id, source = outcome.task.route.step_id, outcome.task.path
            for rel_out, data in outcome.outputs:
                previous = owners.get(rel_out)
                if previous is not None:
                    collision = OutputCollision(path=rel_out, previous_step=previous, step=step_id)
                    collisions.append(collision)
                    print(
                        f"  Warning: {rel_out} written by '{previous}' and '{step_id}' "
                        "(last writer wins)",
                        file=sys.stderr,
                    )
                owners[rel_out] = step_id
                try:
                    changed = write_if_changed(out_root / rel_out, data)
                except OSError as exc:
                    failures.append(StepFailure(step_id, source, f"cannot write {rel_out}: {exc}"))
                    continue
                written.append(
                    WrittenFile(
                        path=rel_out,
                        step=step_id,
                        source=source,
                        size_bytes=len(data),
                        changed=changed,
                    )
                )
                if self._collector is not None:
                    self._collector.record_write(
                        rel_out, step_id, size_bytes=len(data), unchanged=not changed
                    )
        return written, collisions, failures


def write_if_changed(target: Path, data: bytes) -> bool:
    """Write *data* to *target* unless it already holds identical bytes.

    Creates parent directories as needed.

    Returns:
        True if the file was written.

    """
    try:
        if target.is_file() and target.read_bytes() == data:
            return False
    except OSError:
        pass  # unreadable existing file: overwrite below
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    return True

