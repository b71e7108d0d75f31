"""Observability — structured events for build passes and live reload.

Events are frozen dataclasses with monotonic nanosecond timestamps, safe to
produce from the worker threads that invoke producer steps.

Quick Start:
    >>> from flightdeck.observability import EventLog, StackCollector
    >>> collector = StackCollector(EventLog())
    >>> collector.record_step("post.py", "a.md", duration_ms=1.5)
    >>> collector.log.stats()["total"]
    1

"""

from flightdeck.observability.collector import StackCollector
from flightdeck.observability.events import (
    FlightDeckEvent,
    OutputWritten,
    PassCompleted,
    PassProfile,
    ReloadSignaled,
    StepFailed,
    StepInvoked,
    now_ns,
)
from flightdeck.observability.log import EventLog
from flightdeck.observability.profiler import PassProfiler, compute_aggregate_stats

__all__ = [
    "EventLog",
    "FlightDeckEvent",
    "OutputWritten",
    "PassCompleted",
    "PassProfile",
    "PassProfiler",
    "ReloadSignaled",
    "StackCollector",
    "StepFailed",
    "StepInvoked",
    "compute_aggregate_stats",
    "now_ns",
]
