"""Route loader — import the project's RouteConfig from ``config.py``.

The entry point is an ordinary Python file at the project root that binds a
module attribute named ``config``::

    # my-site/config.py
    from flightdeck import ChangeExtension, GeneratorConfig, OnFileExt, RouteConfig

    config = RouteConfig(generators=[
        GeneratorConfig("post.py", OnFileExt("md"), ChangeExtension("html")),
    ])

The RouteConfig is immutable for the lifetime of the process; editing
``config.py`` while watching requires a restart.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flightdeck._errors import ConfigError
from flightdeck.routes.config import RouteConfig
from flightdeck.runtime.modules import PROJECT_PACKAGE, load_module

if TYPE_CHECKING:
    from flightdeck.config import FlightDeckConfig

# Module attribute holding the RouteConfig
CONFIG_ATTRIBUTE = "config"


def load_route_config(config: FlightDeckConfig) -> RouteConfig:
    """Import ``config.config_path`` and return its RouteConfig.

    Raises:
        ConfigError: If the file is missing, fails to import, or does not
            bind ``config`` to a RouteConfig.

    """
    path = config.config_path
    if not path.is_file():
        msg = (
            f"No route configuration found at {path}. "
            f"Create it and bind '{CONFIG_ATTRIBUTE}' to a RouteConfig."
        )
        raise ConfigError(msg)

    module = load_module(path, f"{PROJECT_PACKAGE}.{path.stem}")

    value = getattr(module, CONFIG_ATTRIBUTE, None)
    if value is None:
        msg = f"{path} does not define '{CONFIG_ATTRIBUTE}'"
        raise ConfigError(msg)
    if not isinstance(value, RouteConfig):
        msg = (
            f"{path}: '{CONFIG_ATTRIBUTE}' must be a RouteConfig, "
            f"got {type(value).__name__}"
        )
        raise ConfigError(msg)
    return value
