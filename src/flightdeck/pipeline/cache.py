"""Step cache — memoised producer results for the lifetime of a watch session.

Entries are keyed by ``(step_id, input_path)``; ``Once`` steps use a None
input path.  An entry is a hit only while the stored fingerprint equals the
input's current fingerprint.

Invalidation is deliberately conservative: ``invalidate(path)`` drops every
entry for that path and every ``Once`` entry, since global steps may read
store records derived from any file.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from flightdeck._types import Fingerprint

type CacheKey = tuple[str, str | None]


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A previously computed step result.

    Attributes:
        fingerprint: Input fingerprint at computation time (None for ``Once``).
        outputs: Resolved ``(output_path, content)`` pairs, in write order.

    """

    fingerprint: Fingerprint | None
    outputs: tuple[tuple[str, bytes], ...]

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(path for path, _ in self.outputs)


class StepCache:
    """Key-addressed store of ``CacheEntry`` records.

    Each operation is atomic under one lock; entries never depend on each
    other, so concurrent producers never need more than that.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(
        self,
        step_id: str,
        path: str | None,
        fingerprint: Fingerprint | None,
    ) -> CacheEntry | None:
        """Return the entry if present and its fingerprint still matches."""
        with self._lock:
            entry = self._entries.get((step_id, path))
            if entry is None or entry.fingerprint != fingerprint:
                self._misses += 1
                return None
            self._hits += 1
            return entry

    def put(
        self,
        step_id: str,
        path: str | None,
        fingerprint: Fingerprint | None,
        outputs: tuple[tuple[str, bytes], ...],
    ) -> CacheEntry:
        entry = CacheEntry(fingerprint=fingerprint, outputs=outputs)
        with self._lock:
            self._entries[(step_id, path)] = entry
        return entry

    def invalidate(self, path: str) -> list[CacheEntry]:
        """Drop every entry for *path* plus every ``Once`` entry.

        Returns:
            The entries removed for *path* itself (not the ``Once`` ones), so
            callers can prune outputs of deleted inputs.

        """
        removed: list[CacheEntry] = []
        with self._lock:
            for key in list(self._entries):
                step_path = key[1]
                if step_path == path:
                    removed.append(self._entries.pop(key))
                elif step_path is None:
                    del self._entries[key]
        return removed

    def invalidate_globals(self) -> int:
        """Drop every ``Once`` entry. Returns the number removed."""
        with self._lock:
            keys = [k for k in self._entries if k[1] is None]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def invalidate_step(self, step_id: str) -> int:
        """Drop every entry of one step. Returns the number removed."""
        with self._lock:
            keys = [k for k in self._entries if k[0] == step_id]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def outputs_for(self, path: str) -> tuple[str, ...]:
        """Output paths recorded for *path* across all steps."""
        with self._lock:
            return tuple(
                out for (_, p), entry in self._entries.items() if p == path for out in entry.paths
            )

    def global_outputs(self) -> tuple[str, ...]:
        """Output paths recorded by ``Once`` steps."""
        with self._lock:
            return tuple(
                out for (_, p), entry in self._entries.items() if p is None for out in entry.paths
            )

    def owned_outputs(self) -> set[str]:
        """Every output path recorded by a remaining entry."""
        with self._lock:
            return {out for entry in self._entries.values() for out in entry.paths}

    def sources_for(self, outputs: Iterable[str]) -> set[str]:
        """Input paths whose entries record any of *outputs*."""
        wanted = set(outputs)
        with self._lock:
            return {
                p
                for (_, p), entry in self._entries.items()
                if p is not None and wanted.intersection(entry.paths)
            }

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"entries": len(self._entries), "hits": self._hits, "misses": self._misses}

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
