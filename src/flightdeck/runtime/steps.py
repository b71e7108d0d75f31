"""Step runtime — resolve, import and invoke loader and producer steps.

Producer steps (generators) follow one calling contract::

    def generate(store: ContentStore, project_root: Path, page: str | None) -> str | bytes | ...

``page`` is the project-relative POSIX path of the input file, or None for a
``Once`` step.  Loader steps populate the store before any producer runs::

    def loader(project_root: Path, store: ContentStore) -> None

Script-backed steps are re-imported when their source file changes, so edits
to a generator take effect in watch mode without a restart.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from flightdeck._errors import ConfigError, LoaderError
from flightdeck.content.store import BuildInfo
from flightdeck.routes.outputs import MultipleFiles
from flightdeck.runtime.modules import (
    GENERATORS_PACKAGE,
    LOADERS_PACKAGE,
    load_module,
    module_name_for,
)

if TYPE_CHECKING:
    from types import ModuleType

    from flightdeck._types import Payload, StepFunc
    from flightdeck.config import FlightDeckConfig
    from flightdeck.content.store import ContentStore
    from flightdeck.routes.config import Route, RouteConfig

# Entry-point names step modules must expose
GENERATE_FUNCTION = "generate"
LOADER_FUNCTION = "loader"


@dataclass(frozen=True, slots=True)
class _LoadedModule:
    mtime_ns: int
    module: ModuleType


def encode_payload(value: Payload) -> bytes:
    """Normalise a single payload to bytes (``str`` is encoded as UTF-8).

    Raises:
        TypeError: If *value* is neither ``str`` nor ``bytes``.

    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, bytearray | memoryview):
        return bytes(value)
    msg = f"Step result must be str or bytes, got {type(value).__name__}"
    raise TypeError(msg)


def normalize_result(route: Route, result: Any) -> tuple[tuple[str | None, bytes], ...]:
    """Turn a raw StepResult into ``(output_path | None, bytes)`` pairs.

    For every policy except ``MultipleFiles`` the single pair has a None path;
    the dispatcher resolves it from the output policy.

    Raises:
        TypeError: If the result does not have the shape its policy requires.
        OutputPathError: If a ``MultipleFiles`` entry names an unsafe path.

    """
    policy = route.generator.output
    if isinstance(policy, MultipleFiles):
        return tuple((path, encode_payload(content)) for path, content in policy.split(result))
    return ((None, encode_payload(result)),)


class StepRuntime:
    """Resolves step references against the project and invokes them.

    Thread-safe: producer invocations may run on a worker pool, so module
    (re)loading is serialised by a lock.
    """

    def __init__(self, config: FlightDeckConfig, routes: RouteConfig) -> None:
        self._config = config
        self._routes = routes
        self._lock = threading.RLock()
        self._generators: dict[Path, _LoadedModule] = {}
        self._loaders: dict[Path, _LoadedModule] = {}

    @property
    def routes(self) -> RouteConfig:
        return self._routes

    # -- resolution --------------------------------------------------------

    def prepare(self) -> None:
        """Import loader modules, then resolve every producer step reference.

        Loaders are imported first so generators can import their record types.

        Raises:
            ConfigError: On any unresolvable step reference.
            LoaderError: If a loader module fails to import.

        """
        self.refresh_loaders()
        for route in self._routes.routes:
            self.resolve(route)

    def script_path(self, route: Route) -> Path | None:
        """Source file backing *route*, or None for callable steps."""
        step = route.generator.step
        if not isinstance(step, str):
            return None
        name = step if step.endswith(".py") else f"{step}.py"
        return self._config.generators_path / name

    def scripts_for(self, path: Path) -> tuple[Route, ...]:
        """Routes whose generator script is *path*."""
        target = path.resolve()
        return tuple(
            route
            for route in self._routes.routes
            if (script := self.script_path(route)) is not None and script.resolve() == target
        )

    def resolve(self, route: Route) -> StepFunc:
        """Return the callable for *route*, re-importing its script if it changed.

        Raises:
            ConfigError: If the script is missing, fails to import, or lacks a
                callable ``generate``.

        """
        step = route.generator.step
        script = self.script_path(route)
        if script is None:
            return step  # type: ignore[return-value]

        if not script.is_file():
            msg = f"Step '{route.step_id}': generator script not found at {script}"
            raise ConfigError(msg)

        with self._lock:
            module = self._import(
                script,
                self._generators,
                module_name_for(GENERATORS_PACKAGE, script, self._config.generators_path),
                ConfigError,
            )

        fn = getattr(module, GENERATE_FUNCTION, None)
        if not callable(fn):
            msg = f"Step '{route.step_id}': {script} must define a callable '{GENERATE_FUNCTION}'"
            raise ConfigError(msg)
        return fn

    def invoke(self, route: Route, store: ContentStore, page: str | None) -> Any:
        """Call the producer step for *route* with the engine calling contract."""
        fn = self.resolve(route)
        return fn(store, self._config.root, page)

    # -- loaders -----------------------------------------------------------

    def loader_paths(self) -> list[Path]:
        """Loader scripts in sorted order, skipping ``_``-prefixed names."""
        directory = self._config.loaders_path
        if not directory.is_dir():
            return []
        return sorted(
            p for p in directory.glob("*.py") if p.is_file() and not p.name.startswith("_")
        )

    def refresh_loaders(self) -> bool:
        """Import new or changed loader modules; forget deleted ones.

        A re-imported loader also drops every cached generator module, so the
        record types generators import stay identical to the ones the store
        is keyed by.

        Returns:
            True if any loader module was (re)imported.

        """
        changed = False
        with self._lock:
            current = self.loader_paths()
            for stale in set(self._loaders) - set(current):
                del self._loaders[stale]
                changed = True
            for path in current:
                before = self._loaders.get(path)
                self._import(
                    path,
                    self._loaders,
                    module_name_for(LOADERS_PACKAGE, path, self._config.loaders_path),
                    LoaderError,
                )
                if self._loaders[path] is not before:
                    changed = True
            if changed and self._generators:
                self._generators.clear()
        return changed

    def run_loaders(self, store: ContentStore, *, watch: bool = False) -> int:
        """Populate *store*: a BuildInfo record first, then every loader in order.

        Returns:
            Number of loaders run.

        Raises:
            LoaderError: If a loader fails to import, lacks ``loader``, or raises.

        """
        store.add(
            BuildInfo(
                project_root=self._config.root,
                output_dir=self._config.output_path,
                watch=watch,
            )
        )
        self.refresh_loaders()
        with self._lock:
            loaded = [(path, self._loaders[path].module) for path in sorted(self._loaders)]

        for path, module in loaded:
            fn = getattr(module, LOADER_FUNCTION, None)
            if not callable(fn):
                msg = f"Loader {path.name} must define a callable '{LOADER_FUNCTION}'"
                raise LoaderError(msg)
            try:
                fn(self._config.root, store)
            except Exception as exc:
                msg = f"Loader {path.name} failed: {exc}"
                raise LoaderError(msg) from exc
        return len(loaded)

    # -- internals ---------------------------------------------------------

    @staticmethod
    def _import(
        path: Path,
        cache: dict[Path, _LoadedModule],
        module_name: str,
        error: type[Exception],
    ) -> ModuleType:
        try:
            mtime_ns = path.stat().st_mtime_ns
        except OSError as exc:
            msg = f"Cannot read {path}: {exc}"
            raise error(msg) from exc
        entry = cache.get(path)
        if entry is not None and entry.mtime_ns == mtime_ns:
            return entry.module
        module = load_module(path, module_name, error=error)
        cache[path] = _LoadedModule(mtime_ns=mtime_ns, module=module)
        return module
