"""Shared type definitions for flightdeck."""

from collections.abc import Callable, Sequence
from typing import Any, Literal

# Mode of operation
type FlightDeckMode = Literal["build", "watch", "clean"]

# Project-relative POSIX path of an input or output file (e.g. "posts/a.md")
type RelativePath = str

# Identity of a producer step within a RouteConfig
type StepId = str

# Content written for a single output artifact
type Payload = str | bytes

# One named artifact of a MultipleFiles step
type NamedPayload = tuple[RelativePath, Payload]

# What a producer step may return
type StepResult = Payload | Sequence[NamedPayload] | Any

# A producer step: generate(store, project_root, page) -> StepResult
type StepFunc = Callable[..., StepResult]

# A loader step: loader(project_root, store) -> None
type LoaderFunc = Callable[..., Any]

# File fingerprint used for cache validation (mtime_ns, size)
type Fingerprint = tuple[int, int]
