"""Route configuration — ordered producer-step descriptors.

A project's ``config.py`` binds ``config`` to a RouteConfig::

    from flightdeck import (
        ChangeExtension, GeneratorConfig, NewFileName, Once, OnFileExt, RouteConfig,
    )

    config = RouteConfig(generators=[
        GeneratorConfig("post.py", OnFileExt(".md"), ChangeExtension("html")),
        GeneratorConfig("about.py", Once(), NewFileName("about.html")),
    ])

Descriptors are evaluated in declaration order and every matching descriptor
runs; there is no first-match-wins short-circuit.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from flightdeck._errors import ConfigError
from flightdeck.routes.outputs import GLOBAL_POLICY_TYPES, OUTPUT_POLICY_TYPES, OutputPolicy
from flightdeck.routes.triggers import TRIGGER_TYPES, Once, Trigger


def step_name(step: str | Callable[..., Any]) -> str:
    """Human-readable name of a step reference (script name or callable)."""
    if isinstance(step, str):
        return step
    module = getattr(step, "__module__", None) or ""
    qualname = getattr(step, "__qualname__", None) or type(step).__name__
    return f"{module}.{qualname}" if module else qualname


@dataclass(frozen=True, slots=True)
class GeneratorConfig:
    """A producer-step descriptor: one trigger, one output policy.

    Attributes:
        step: Script name under the generators directory (``"post.py"``) or a
            callable ``generate(store, project_root, page)``.
        trigger: Which input files activate this step.
        output: How output path(s) are computed.

    """

    step: str | Callable[..., Any]
    trigger: Trigger
    output: OutputPolicy

    @property
    def name(self) -> str:
        return step_name(self.step)

    @property
    def is_global(self) -> bool:
        """True for ``Once`` descriptors."""
        return isinstance(self.trigger, Once)

    def matches(self, root: Path, rel: str) -> bool:
        """Whether this descriptor's trigger selects the file *rel*."""
        return self.trigger.matches(root, rel)


@dataclass(frozen=True, slots=True)
class Route:
    """A validated descriptor with its unique step identity."""

    step_id: str
    generator: GeneratorConfig

    @property
    def is_global(self) -> bool:
        return self.generator.is_global


class RouteConfig:
    """Immutable, ordered list of producer-step descriptors.

    Validated on construction.  Step identities are unique: a step name
    declared more than once gets a ``#<n>`` suffix (``post.py#2``) so cache
    keys never alias.

    Raises:
        ConfigError: On malformed descriptors.

    """

    __slots__ = ("_generators", "_routes")

    def __init__(self, generators: Iterable[GeneratorConfig] = ()) -> None:
        gens = tuple(generators)
        for index, gen in enumerate(gens):
            _validate(index, gen)
        self._generators = gens
        self._routes = _assign_ids(gens)

    @property
    def generators(self) -> tuple[GeneratorConfig, ...]:
        return self._generators

    @property
    def routes(self) -> tuple[Route, ...]:
        return self._routes

    def __len__(self) -> int:
        return len(self._routes)

    def __repr__(self) -> str:
        return f"RouteConfig({', '.join(r.step_id for r in self._routes)})"

    @property
    def global_routes(self) -> tuple[Route, ...]:
        """``Once`` routes in declaration order."""
        return tuple(r for r in self.routes if r.is_global)

    @property
    def file_routes(self) -> tuple[Route, ...]:
        """File-triggered routes in declaration order."""
        return tuple(r for r in self.routes if not r.is_global)

    def matching(self, root: Path, rel: str) -> tuple[Route, ...]:
        """File-triggered routes whose trigger matches *rel*, in declaration order."""
        return tuple(r for r in self.file_routes if r.generator.matches(root, rel))

    def get(self, step_id: str) -> Route | None:
        for route in self.routes:
            if route.step_id == step_id:
                return route
        return None


def _validate(index: int, gen: object) -> None:
    where = f"generators[{index}]"
    if not isinstance(gen, GeneratorConfig):
        msg = f"{where}: expected GeneratorConfig, got {type(gen).__name__}"
        raise ConfigError(msg)
    if isinstance(gen.step, str):
        if not gen.step.strip():
            msg = f"{where}: step name must not be empty"
            raise ConfigError(msg)
    elif not callable(gen.step):
        msg = f"{where}: step must be a script name or a callable, got {gen.step!r}"
        raise ConfigError(msg)
    if not isinstance(gen.trigger, TRIGGER_TYPES):
        msg = f"{where} ({gen.name}): unknown trigger {gen.trigger!r}"
        raise ConfigError(msg)
    if not isinstance(gen.output, OUTPUT_POLICY_TYPES):
        msg = f"{where} ({gen.name}): unknown output policy {gen.output!r}"
        raise ConfigError(msg)
    if gen.is_global and not isinstance(gen.output, GLOBAL_POLICY_TYPES):
        msg = (
            f"{where} ({gen.name}): a Once trigger has no input path; "
            f"use NewFileName or MultipleFiles instead of {type(gen.output).__name__}"
        )
        raise ConfigError(msg)


def _assign_ids(gens: tuple[GeneratorConfig, ...]) -> tuple[Route, ...]:
    seen: dict[str, int] = {}
    routes: list[Route] = []
    for gen in gens:
        name = gen.name
        seen[name] = seen.get(name, 0) + 1
        step_id = name if seen[name] == 1 else f"{name}#{seen[name]}"
        routes.append(Route(step_id=step_id, generator=gen))
    return tuple(routes)
