"""Project module loading — import step scripts without touching ``sys.path``.

Step scripts live in the project (``loaders/``, ``generators/``, ``config.py``)
and are imported under stable synthetic package names so they can import
each other::

    loaders/pages.py      -> flightdeck_loaders.pages
    generators/post.py    -> flightdeck_generators.post
    config.py             -> flightdeck_project.config

A generator can therefore share record types with a loader::

    from flightdeck_loaders.pages import Page

"""

from __future__ import annotations

import importlib.util
import sys
import types
from pathlib import Path

from flightdeck._errors import ConfigError

LOADERS_PACKAGE = "flightdeck_loaders"
GENERATORS_PACKAGE = "flightdeck_generators"
PROJECT_PACKAGE = "flightdeck_project"


def module_name_for(package: str, py_file: Path, base_dir: Path) -> str:
    """Build a dotted module name: ``generators/blog/post.py`` -> ``pkg.blog.post``."""
    relative = py_file.relative_to(base_dir)
    parts = list(relative.with_suffix("").parts)
    return package + "." + ".".join(parts)


def _ensure_package(name: str) -> None:
    """Register empty namespace parents so ``from pkg.mod import X`` resolves."""
    parts = name.split(".")
    for i in range(1, len(parts)):
        parent = ".".join(parts[:i])
        if parent not in sys.modules:
            pkg = types.ModuleType(parent)
            pkg.__path__ = []  # mark as package
            sys.modules[parent] = pkg


def load_module(
    py_file: Path,
    module_name: str,
    *,
    error: type[Exception] = ConfigError,
) -> types.ModuleType:
    """Import a Python file as a module without touching ``sys.path``.

    Uses ``importlib.util.spec_from_file_location`` for isolated loading.  The
    module is registered in ``sys.modules`` before execution so dataclasses
    and cross-module imports inside step scripts work.  Re-loading a name
    replaces the previous module.

    Raises:
        error: If the file cannot be imported (ConfigError by default).

    """
    spec = importlib.util.spec_from_file_location(module_name, py_file)
    if spec is None or spec.loader is None:
        msg = f"Cannot import {py_file}: not a Python module"
        raise error(msg)

    _ensure_package(module_name)
    module = importlib.util.module_from_spec(spec)
    previous = sys.modules.get(module_name)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        if previous is not None:
            sys.modules[module_name] = previous
        else:
            sys.modules.pop(module_name, None)
        msg = f"Failed to load {py_file}: {exc}"
        raise error(msg) from exc

    parent, _, child = module_name.rpartition(".")
    if parent:
        setattr(sys.modules[parent], child, module)
    return module
