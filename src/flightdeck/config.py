"""FlightDeck configuration.

FlightDeckConfig is the central engine configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path

# Directories never enumerated by the dispatcher and never watched.
DEFAULT_IGNORE_DIRS: tuple[str, ...] = (
    "node_modules",
    ".git",
    ".sass-cache",
    ".ionide",
    "__pycache__",
)


@dataclass(frozen=True, slots=True)
class FlightDeckConfig:
    """Configuration for a FlightDeck project.

    Attributes:
        root: Path to the project root directory.
              Always resolved to an absolute path on construction.
        host: Bind address for watch mode.
        port: Bind port for watch mode.
        output: Output directory, relative to root unless absolute.
        cache_dir: Step-cache sidecar directory, relative to root.
        loaders_dir: Directory containing loader modules.
        generators_dir: Directory containing generator modules.
        config_file: Project entry point that defines the RouteConfig.
        ignore_dirs: Directory names excluded from enumeration and watching,
            in addition to the output and cache directories.
        debounce_ms: Quiet period that closes a burst of change events.
        workers: Threads used for producer invocations (0 = one per CPU).

    """

    root: Path = field(default_factory=Path.cwd)
    host: str = "127.0.0.1"
    port: int = 8080
    output: Path = field(default_factory=lambda: Path("_public"))
    cache_dir: str = ".flightdeck"
    loaders_dir: str = "loaders"
    generators_dir: str = "generators"
    config_file: str = "config.py"
    ignore_dirs: tuple[str, ...] = DEFAULT_IGNORE_DIRS
    debounce_ms: int = 1000
    workers: int = 1

    def __post_init__(self) -> None:
        # Resolve root to absolute so that watchfiles (which returns
        # absolute paths) can be compared via Path.relative_to().
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        if not isinstance(self.output, Path):
            object.__setattr__(self, "output", Path(str(self.output)))
        if not isinstance(self.ignore_dirs, tuple):
            object.__setattr__(self, "ignore_dirs", tuple(self.ignore_dirs))

    @property
    def output_path(self) -> Path:
        """Absolute path to output directory."""
        if self.output.is_absolute():
            return self.output
        return self.root / self.output

    @property
    def cache_path(self) -> Path:
        """Absolute path to the step-cache sidecar directory."""
        return self.root / self.cache_dir

    @property
    def loaders_path(self) -> Path:
        """Absolute path to loader modules."""
        return self.root / self.loaders_dir

    @property
    def generators_path(self) -> Path:
        """Absolute path to generator modules."""
        return self.root / self.generators_dir

    @property
    def config_path(self) -> Path:
        """Absolute path to the project RouteConfig entry point."""
        return self.root / self.config_file

    @property
    def reserved_dirs(self) -> frozenset[str]:
        """Top-level or nested directory names excluded from the pipeline.

        The output directory only counts when it lives inside the root.
        """
        names = set(self.ignore_dirs)
        names.add(Path(self.cache_dir).parts[0])
        try:
            rel = self.output_path.relative_to(self.root)
        except ValueError:
            rel = None
        if rel is not None and rel.parts:
            names.add(rel.parts[0])
        return frozenset(names)

    @property
    def debounce_seconds(self) -> float:
        """Debounce window in seconds."""
        return self.debounce_ms / 1000

    @property
    def max_workers(self) -> int:
        """Effective number of producer threads."""
        if self.workers > 0:
            return self.workers
        import os

        return os.cpu_count() or 1
