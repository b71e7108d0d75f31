"""Pass profiler — per-stage timing of build passes.

Times the three stages of a pass (``loaders``, ``dispatch``, ``write``) and
emits a ``PassProfile`` event to the ``EventLog`` when the pass finishes.

Thread Safety:
    One profiler per pass; passes never overlap.  Aggregate queries go
    through the ``EventLog`` lock.

"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from flightdeck.observability.events import PassProfile, now_ns

if TYPE_CHECKING:
    from flightdeck.observability.log import EventLog

STAGES: tuple[str, ...] = ("loaders", "dispatch", "write")


@dataclass(slots=True)
class _Timer:
    """Accumulates timing for a named stage."""

    name: str
    _start: float = 0.0
    elapsed_ms: float = 0.0

    def start(self) -> None:
        self._start = time.perf_counter()

    def stop(self) -> None:
        if self._start > 0:
            self.elapsed_ms += (time.perf_counter() - self._start) * 1000
            self._start = 0.0


class PassProfiler:
    """Records stage timing for a single build pass.

    Usage::

        profiler = PassProfiler(event_log)
        profiler.begin("full")
        profiler.start("loaders")
        ...
        profiler.stop("loaders")
        profiler.finish(files_written=3)

    Stopping a stage twice accumulates, so ``write`` can be timed around
    each individual output.
    """

    __slots__ = ("_log", "_t0", "_timers", "_trigger", "_verbose")

    def __init__(self, log: EventLog, *, verbose: bool = False) -> None:
        self._log = log
        self._verbose = verbose
        self._trigger = ""
        self._t0 = 0.0
        self._timers = {name: _Timer(name=name) for name in STAGES}

    def begin(self, trigger: str) -> None:
        """Start profiling a new pass."""
        self._trigger = trigger
        self._t0 = time.perf_counter()
        for timer in self._timers.values():
            timer.elapsed_ms = 0.0

    def start(self, stage: str) -> None:
        timer = self._timers.get(stage)
        if timer is not None:
            timer.start()

    def stop(self, stage: str) -> None:
        timer = self._timers.get(stage)
        if timer is not None:
            timer.stop()

    def finish(self, *, files_written: int = 0) -> PassProfile:
        """Emit the ``PassProfile`` event and return it."""
        total_ms = (time.perf_counter() - self._t0) * 1000 if self._t0 > 0 else 0.0
        profile = PassProfile(
            trigger=self._trigger,
            files_written=files_written,
            loaders_ms=self._timers["loaders"].elapsed_ms,
            dispatch_ms=self._timers["dispatch"].elapsed_ms,
            write_ms=self._timers["write"].elapsed_ms,
            total_ms=total_ms,
            timestamp_ns=now_ns(),
        )
        self._log.append(profile)
        if self._verbose:
            print(
                f"  [{profile.total_ms:.0f}ms] loaders: {profile.loaders_ms:.0f}ms, "
                f"dispatch: {profile.dispatch_ms:.0f}ms, write: {profile.write_ms:.0f}ms",
                file=sys.stderr,
            )
        return profile


def _percentile(data: list[float], pct: float) -> float:
    idx = int(len(data) * pct / 100)
    return data[min(idx, len(data) - 1)]


def compute_aggregate_stats(log: EventLog, *, limit: int = 100) -> dict:
    """Latency statistics over recent ``PassProfile`` events.

    Returns a dict with p50, p95, p99, min and max of the total pass time
    plus per-stage averages, or ``{"count": 0}`` when nothing was profiled.
    """
    profiles = log.query(event_type=PassProfile, limit=limit)
    if not profiles:
        return {"count": 0}

    totals = sorted(p.total_ms for p in profiles)
    count = len(totals)

    return {
        "count": count,
        "total_ms": {
            "p50": round(_percentile(totals, 50), 1),
            "p95": round(_percentile(totals, 95), 1),
            "p99": round(_percentile(totals, 99), 1),
            "min": round(totals[0], 1),
            "max": round(totals[-1], 1),
        },
        "avg_by_stage_ms": {
            stage: round(sum(getattr(p, f"{stage}_ms") for p in profiles) / count, 1)
            for stage in STAGES
        },
    }
