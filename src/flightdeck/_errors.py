"""FlightDeck error hierarchy.

All flightdeck-specific errors inherit from FlightDeckError for easy catching.
Fatal errors abort the current pass; per-file producer failures are collected
as ``StepFailure`` records instead of being raised.
"""


class FlightDeckError(Exception):
    """Base error for all flightdeck operations."""


class ConfigError(FlightDeckError):
    """Invalid or missing configuration, or an unresolvable step reference."""


class LoaderError(FlightDeckError):
    """A loader step failed while populating the content store."""


class StepError(FlightDeckError):
    """A producer step failed.

    Raised only for ``Once`` steps, whose failure is fatal for the pass.
    Failures of per-file steps are recorded and the pass continues.

    Attributes:
        step: Identity of the failing step.
        path: Relative input path, or None for a ``Once`` step.

    """

    def __init__(self, message: str, *, step: str, path: str | None = None) -> None:
        super().__init__(message)
        self.step = step
        self.path = path


class OutputError(FlightDeckError):
    """The output root cannot be created or written."""


class WatchError(FlightDeckError):
    """The watch loop could not be started."""
