"""FlightDeck — an incremental content-generation build engine.

Turns a project directory of source files into a rendered output tree,
re-running only the steps whose inputs changed, and optionally serving the
output with automatic browser reload.

A project declares its producer steps in ``config.py``::

    from flightdeck import (
        ChangeExtension, GeneratorConfig, NewFileName, Once, OnFileExt, RouteConfig,
    )

    config = RouteConfig(generators=[
        GeneratorConfig("post.py", OnFileExt(".md"), ChangeExtension(".html")),
        GeneratorConfig("index.py", Once(), NewFileName("index.html")),
    ])

Three modes::

    flightdeck.build("my-site/")      # One full pass
    flightdeck.watch("my-site/")      # Build, serve, rebuild on change
    flightdeck.clean("my-site/")      # Delete output and cache directories

"""

import importlib

__version__ = "0.1.0"
__all__ = [
    "BuildInfo",
    "ChangeExtension",
    "ContentStore",
    "Custom",
    "FlightDeckConfig",
    "GeneratorConfig",
    "MultipleFiles",
    "NewFileName",
    "OnFile",
    "OnFileExt",
    "OnFilePredicate",
    "Once",
    "RouteConfig",
    "SameFileName",
    "__version__",
    "build",
    "clean",
    "watch",
]

# Public name -> defining module, imported on first access.
_LAZY: dict[str, str] = {
    "BuildInfo": "flightdeck.content.store",
    "ContentStore": "flightdeck.content.store",
    "FlightDeckConfig": "flightdeck.config",
    "GeneratorConfig": "flightdeck.routes.config",
    "RouteConfig": "flightdeck.routes.config",
    "ChangeExtension": "flightdeck.routes.outputs",
    "Custom": "flightdeck.routes.outputs",
    "MultipleFiles": "flightdeck.routes.outputs",
    "NewFileName": "flightdeck.routes.outputs",
    "SameFileName": "flightdeck.routes.outputs",
    "OnFile": "flightdeck.routes.triggers",
    "OnFileExt": "flightdeck.routes.triggers",
    "OnFilePredicate": "flightdeck.routes.triggers",
    "Once": "flightdeck.routes.triggers",
    "build": "flightdeck.app",
    "clean": "flightdeck.app",
    "watch": "flightdeck.app",
}


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import flightdeck`` fast while providing a clean top-level API.
    """
    module_name = _LAZY.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)
    return getattr(importlib.import_module(module_name), name)


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
