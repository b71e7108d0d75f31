"""Content store — type-keyed records shared across build steps.

Loader steps ``add`` records; producer steps query them by type.  Each type
keeps its own insertion-ordered list, so the order in which a loader adds
records is the default listing order seen by producers.

The store has no deletion operation.  It is created fresh for every build
pass and discarded afterwards.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, overload


@dataclass(frozen=True, slots=True)
class BuildInfo:
    """Engine-provided record added to every store before the loaders run.

    Attributes:
        project_root: Absolute project root.
        output_dir: Absolute output directory.
        watch: True when the pass runs inside the watch loop.

    """

    project_root: Path
    output_dir: Path
    watch: bool


class ContentStore:
    """Heterogeneous multi-map from a record's runtime type to its records.

    Lookups are exact on ``type(record)``: records of a subclass are stored
    under the subclass, not under its bases.

    ``add`` takes a lock so loaders that fan out to threads stay consistent;
    producers only read.

    """

    __slots__ = ("_lock", "_records")

    def __init__(self) -> None:
        self._records: dict[type, list[Any]] = {}
        self._lock = threading.Lock()

    def add[T](self, record: T) -> T:
        """Append *record* to the sequence for its runtime type.

        Returns the record so loaders can chain or keep a reference.
        """
        with self._lock:
            self._records.setdefault(type(record), []).append(record)
        return record

    def add_many(self, records: Iterable[Any]) -> None:
        """Add each record in order."""
        for record in records:
            self.add(record)

    def try_get_values[T](self, kind: type[T]) -> tuple[T, ...] | None:
        """Return every record of *kind* in insertion order.

        Returns None only if no record of *kind* was ever added.
        """
        with self._lock:
            values = self._records.get(kind)
            return tuple(values) if values is not None else None

    @overload
    def try_get_value[T](self, kind: type[T]) -> T | None: ...

    @overload
    def try_get_value[T](self, kind: type[T], default: T) -> T: ...

    def try_get_value(self, kind: type, default: Any = None) -> Any:
        """Return the first record of *kind*, or *default* when absent."""
        with self._lock:
            values = self._records.get(kind)
            return values[0] if values else default

    def values[T](self, kind: type[T]) -> tuple[T, ...]:
        """Like ``try_get_values`` but returns an empty tuple when absent."""
        return self.try_get_values(kind) or ()

    @property
    def types(self) -> tuple[type, ...]:
        """Record types present, in first-insertion order."""
        with self._lock:
            return tuple(self._records)

    def __contains__(self, kind: object) -> bool:
        with self._lock:
            return kind in self._records

    def __len__(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._records.values())

    def __repr__(self) -> str:
        with self._lock:
            counts = ", ".join(f"{t.__name__}={len(v)}" for t, v in self._records.items())
        return f"ContentStore({counts})"
