"""Project enumeration — which files the dispatcher sees.

Every regular file under the project root is a candidate input, except files
inside reserved directories (output, step cache, version control, dependency
managers).  A reserved name excludes the directory at any depth.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from flightdeck._types import Fingerprint
    from flightdeck.config import FlightDeckConfig


def relative_posix(path: Path, root: Path) -> str | None:
    """POSIX path of *path* relative to *root*, or None when outside it."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return None


def is_reserved(rel: str, config: FlightDeckConfig) -> bool:
    """Whether relative path *rel* lies inside a reserved directory.

    The output directory is also matched by full relative path, so nested
    outputs such as ``build/site`` are excluded even when ``build`` is not.
    """
    parts = rel.split("/")
    reserved = config.reserved_dirs
    if any(part in reserved for part in parts[:-1]):
        return True
    output_rel = relative_posix(config.output_path, config.root)
    return bool(output_rel) and (rel == output_rel or rel.startswith(f"{output_rel}/"))


def iter_project_files(config: FlightDeckConfig) -> Iterator[str]:
    """Yield every non-reserved regular file, sorted by relative POSIX path."""
    return iter(sorted(_walk(config)))


def _walk(config: FlightDeckConfig) -> list[str]:
    root = config.root
    reserved = config.reserved_dirs
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        # Prune in place so os.walk never descends into reserved trees.
        dirnames[:] = [d for d in dirnames if d not in reserved]
        base = Path(dirpath)
        for name in filenames:
            rel = relative_posix(base / name, root)
            if rel is None or is_reserved(rel, config):
                continue
            if (base / name).is_file():
                found.append(rel)
    return found


def fingerprint(path: Path) -> Fingerprint | None:
    """Cheap staleness signal ``(mtime_ns, size)``, or None if unreadable."""
    try:
        st = path.stat()
    except OSError:
        return None
    return (st.st_mtime_ns, st.st_size)
