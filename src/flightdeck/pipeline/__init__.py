"""Build pipeline: enumeration, step cache, dispatcher and build passes."""

from flightdeck.pipeline.cache import CacheEntry, StepCache
from flightdeck.pipeline.dispatcher import (
    BuildResult,
    Dispatcher,
    OutputCollision,
    StepFailure,
    WrittenFile,
)
from flightdeck.pipeline.files import fingerprint, is_reserved, iter_project_files
from flightdeck.pipeline.generation import Generation, print_summary

__all__ = [
    "BuildResult",
    "CacheEntry",
    "Dispatcher",
    "Generation",
    "OutputCollision",
    "StepCache",
    "StepFailure",
    "WrittenFile",
    "fingerprint",
    "is_reserved",
    "iter_project_files",
    "print_summary",
]
