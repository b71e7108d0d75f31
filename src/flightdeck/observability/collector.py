"""Stack collector — records dispatch, pass and reload events.

The dispatcher, build pass and watch loop report through one collector so
the event log is the single place to inspect what a pass did.

Thread Safety:
    Delegates to ``EventLog``, which is internally locked.

"""

from __future__ import annotations

from flightdeck.observability.events import (
    OutputWritten,
    PassCompleted,
    ReloadSignaled,
    StepFailed,
    StepInvoked,
    now_ns,
)
from flightdeck.observability.log import EventLog


class StackCollector:
    """Typed front end over an ``EventLog``.

    Args:
        log: The EventLog to store events in (a new one if omitted).

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    def record_step(
        self,
        step: str,
        path: str | None,
        *,
        cached: bool = False,
        duration_ms: float = 0.0,
    ) -> None:
        self._log.append(
            StepInvoked(
                step=step,
                path=path,
                cached=cached,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_failure(self, step: str, path: str | None, message: str) -> None:
        self._log.append(StepFailed(step=step, path=path, message=message, timestamp_ns=now_ns()))

    def record_write(
        self,
        path: str,
        step: str,
        *,
        size_bytes: int = 0,
        unchanged: bool = False,
    ) -> None:
        self._log.append(
            OutputWritten(
                path=path,
                step=step,
                size_bytes=size_bytes,
                unchanged=unchanged,
                timestamp_ns=now_ns(),
            )
        )

    def record_pass(
        self,
        trigger: str,
        *,
        files_written: int = 0,
        failures: int = 0,
        collisions: int = 0,
        invoked: int = 0,
        cached: int = 0,
        duration_ms: float = 0.0,
    ) -> None:
        """Record the outcome of one build pass."""
        self._log.append(
            PassCompleted(
                trigger=trigger,
                files_written=files_written,
                failures=failures,
                collisions=collisions,
                invoked=invoked,
                cached=cached,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_reload(self, clients_notified: int) -> None:
        self._log.append(ReloadSignaled(clients_notified=clients_notified, timestamp_ns=now_ns()))
