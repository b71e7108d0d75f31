"""Route configuration: triggers, output policies and producer-step descriptors.

Public API::

    from flightdeck.routes import GeneratorConfig, OnFileExt, ChangeExtension, RouteConfig

    config = RouteConfig(generators=[
        GeneratorConfig("post.py", OnFileExt(".md"), ChangeExtension(".html")),
    ])
"""

from flightdeck.routes.config import GeneratorConfig, Route, RouteConfig
from flightdeck.routes.loader import load_route_config
from flightdeck.routes.outputs import (
    ChangeExtension,
    Custom,
    MultipleFiles,
    NewFileName,
    OutputPathError,
    SameFileName,
)
from flightdeck.routes.triggers import Once, OnFile, OnFileExt, OnFilePredicate

__all__ = [
    "ChangeExtension",
    "Custom",
    "GeneratorConfig",
    "MultipleFiles",
    "NewFileName",
    "Once",
    "OnFile",
    "OnFileExt",
    "OnFilePredicate",
    "OutputPathError",
    "Route",
    "RouteConfig",
    "SameFileName",
    "load_route_config",
]
