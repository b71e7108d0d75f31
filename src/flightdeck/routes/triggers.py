"""Triggers — which project files activate a producer step.

Four variants, evaluated against a project-relative POSIX path:

    Once()                       -> one synthetic global input per pass
    OnFile("about.md")           -> exact relative path equality
    OnFileExt(".md")             -> case-sensitive extension equality
    OnFilePredicate(fn)          -> fn(project_root, relative_path) -> bool

Predicates may read the file to decide (front-matter markers, for example)
but must not touch the content store.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from flightdeck._errors import ConfigError


def normalize_extension(ext: str) -> str:
    """Return *ext* with exactly one leading dot (``"md"`` -> ``".md"``)."""
    ext = ext.strip()
    if not ext or ext == ".":
        msg = "File extension must not be empty"
        raise ConfigError(msg)
    return ext if ext.startswith(".") else f".{ext}"


@dataclass(frozen=True, slots=True)
class Once:
    """Run exactly one time per build, with no input file."""

    def matches(self, root: Path, rel: str) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class OnFile:
    """Run for exactly one file, by relative path."""

    path: str

    def __post_init__(self) -> None:
        # Accept "./about.md" and Windows-style separators from configs.
        object.__setattr__(self, "path", PurePosixPath(self.path.replace("\\", "/")).as_posix())

    def matches(self, root: Path, rel: str) -> bool:
        return rel == self.path


@dataclass(frozen=True, slots=True)
class OnFileExt:
    """Run for every file with the given extension (case-sensitive)."""

    extension: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "extension", normalize_extension(self.extension))

    def matches(self, root: Path, rel: str) -> bool:
        return PurePosixPath(rel).suffix == self.extension


@dataclass(frozen=True, slots=True)
class OnFilePredicate:
    """Run for every file for which ``predicate(root, rel)`` is true."""

    predicate: Callable[[Path, str], bool]

    def matches(self, root: Path, rel: str) -> bool:
        return bool(self.predicate(root, rel))


type Trigger = Once | OnFile | OnFileExt | OnFilePredicate

TRIGGER_TYPES: tuple[type, ...] = (Once, OnFile, OnFileExt, OnFilePredicate)
