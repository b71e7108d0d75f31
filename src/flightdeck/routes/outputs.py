"""Output policies — where a producer step's result is written.

Resolution maps an input relative path (and, for ``MultipleFiles``, the step
result) to one or more output paths relative to the output directory:

    SameFileName()              a/b.md -> a/b.md
    ChangeExtension("html")     a/b.md -> a/b.html
    NewFileName("x.html")       *      -> x.html
    Custom(fn)                  a/b.md -> fn("a/b.md")
    MultipleFiles(fn)           result -> [(path, content), ...] = fn(result)

``MultipleFiles`` is the only policy under which one invocation may yield
more than one artifact.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any

from flightdeck._types import NamedPayload, Payload
from flightdeck.routes.triggers import normalize_extension


class OutputPathError(ValueError):
    """A resolved output path is empty or escapes the output directory."""


def clean_output_path(path: str) -> str:
    """Normalise *path* to a safe POSIX path relative to the output root.

    Raises:
        OutputPathError: For empty, absolute, or ``..``-escaping paths.

    """
    raw = str(path).replace("\\", "/")
    pure = PurePosixPath(raw)
    if not raw or pure.is_absolute() or ".." in pure.parts:
        msg = f"Output path {path!r} must be relative and stay inside the output directory"
        raise OutputPathError(msg)
    cleaned = pure.as_posix()
    if cleaned in ("", "."):
        msg = f"Output path {path!r} is empty"
        raise OutputPathError(msg)
    return cleaned


def _identity(result: Any) -> Any:
    return result


@dataclass(frozen=True, slots=True)
class SameFileName:
    """Output path equals the input path."""

    def resolve(self, rel: str) -> str:
        return clean_output_path(rel)


@dataclass(frozen=True, slots=True)
class ChangeExtension:
    """Same path, extension replaced (``ChangeExtension("html")``)."""

    extension: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "extension", normalize_extension(self.extension))

    def resolve(self, rel: str) -> str:
        return clean_output_path(PurePosixPath(rel).with_suffix(self.extension).as_posix())


@dataclass(frozen=True, slots=True)
class NewFileName:
    """A fixed output path regardless of input (typically with ``Once``)."""

    name: str

    def resolve(self, rel: str | None) -> str:
        return clean_output_path(self.name)


@dataclass(frozen=True, slots=True)
class Custom:
    """Output path computed by ``fn(input_path)``."""

    fn: Callable[[str], str]

    def resolve(self, rel: str) -> str:
        return clean_output_path(self.fn(rel))


@dataclass(frozen=True, slots=True)
class MultipleFiles:
    """The step result is mapped by ``fn`` to already-named (path, content) pairs."""

    fn: Callable[[Any], Sequence[NamedPayload]] = field(default=_identity)

    def split(self, result: Any) -> tuple[tuple[str, Payload], ...]:
        """Apply ``fn`` and validate the pairs.

        Raises:
            TypeError: If the mapped result is not a sequence of pairs.
            OutputPathError: If a pair names an unsafe path.

        """
        pairs = self.fn(result)
        if isinstance(pairs, (str, bytes, dict)) or not _is_iterable(pairs):
            msg = (
                "MultipleFiles expects a sequence of (path, content) pairs, "
                f"got {type(pairs).__name__}"
            )
            raise TypeError(msg)
        out: list[tuple[str, Payload]] = []
        for pair in pairs:
            if not isinstance(pair, tuple | list) or len(pair) != 2:
                msg = f"MultipleFiles entry must be a (path, content) pair, got {pair!r}"
                raise TypeError(msg)
            path, content = pair
            if not isinstance(content, str | bytes):
                msg = f"Content for {path!r} must be str or bytes, got {type(content).__name__}"
                raise TypeError(msg)
            out.append((clean_output_path(path), content))
        return tuple(out)


def _is_iterable(value: object) -> bool:
    if isinstance(value, (str, bytes)):
        return False
    try:
        iter(value)  # type: ignore[call-overload]
    except TypeError:
        return False
    return True


type OutputPolicy = SameFileName | ChangeExtension | NewFileName | Custom | MultipleFiles

OUTPUT_POLICY_TYPES: tuple[type, ...] = (
    SameFileName,
    ChangeExtension,
    NewFileName,
    Custom,
    MultipleFiles,
)

# Policies that can be used without an input path (with a ``Once`` trigger).
GLOBAL_POLICY_TYPES: tuple[type, ...] = (NewFileName, MultipleFiles)
