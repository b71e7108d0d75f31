"""Structured event model for build passes and live reload.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across the worker
    threads that invoke producer steps.

"""

import time
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Dispatch events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StepInvoked:
    """A producer step ran for one input (or was served from the cache).

    Attributes:
        step: Step identity.
        path: Relative input path, or None for a ``Once`` step.
        cached: True if the result came from the step cache.
        duration_ms: Invocation time in milliseconds (0 for cache hits).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    step: str
    path: str | None
    cached: bool
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class OutputWritten:
    """An output artifact was written (or found byte-identical).

    Attributes:
        path: Output path relative to the output directory.
        step: Step identity that produced it.
        size_bytes: Content size.
        unchanged: True if the existing file already had these bytes.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    step: str
    size_bytes: int
    unchanged: bool
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class StepFailed:
    """A producer step failed for one input.

    Attributes:
        step: Step identity.
        path: Relative input path, or None for a ``Once`` step.
        message: Error description.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    step: str
    path: str | None
    message: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Pass events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PassCompleted:
    """A build pass finished.

    Attributes:
        trigger: ``"full"`` or a short description of the changed paths.
        files_written: Output files whose bytes changed.
        failures: Per-file step failures.
        collisions: Output collision warnings.
        invoked: Producer invocations actually executed.
        cached: Producer invocations served from the cache.
        duration_ms: Wall-clock time of the pass.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    trigger: str
    files_written: int
    failures: int
    collisions: int
    invoked: int
    cached: int
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class PassProfile:
    """Per-stage timing of one build pass.

    Attributes:
        trigger: ``"full"`` or a short description of the changed paths.
        files_written: Output files whose bytes changed.
        loaders_ms: Time populating the content store.
        dispatch_ms: Time invoking producer steps.
        write_ms: Time writing outputs.
        total_ms: End-to-end pass time.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    trigger: str
    files_written: int
    loaders_ms: float
    dispatch_ms: float
    write_ms: float
    total_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ReloadSignaled:
    """Connected browsers were told to reload.

    Attributes:
        clients_notified: Subscribers that received the signal.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    clients_notified: int
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type FlightDeckEvent = (
    StepInvoked
    | OutputWritten
    | StepFailed
    | PassCompleted
    | PassProfile
    | ReloadSignaled
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
