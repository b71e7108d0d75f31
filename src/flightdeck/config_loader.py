"""Load FlightDeckConfig from flightdeck.yaml if present.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

import tomllib
from dataclasses import fields
from pathlib import Path

import yaml

from flightdeck._errors import ConfigError
from flightdeck.config import FlightDeckConfig

CONFIG_FILE_NAMES: tuple[str, ...] = ("flightdeck.yaml", "flightdeck.yml", "flightdeck.toml")

_KNOWN_KEYS: frozenset[str] = frozenset(
    f.name for f in fields(FlightDeckConfig) if f.name != "root"
)


def load_config(root: Path, **overrides: object) -> FlightDeckConfig:
    """Load FlightDeckConfig from root, optionally merging flightdeck.yaml.

    Looks for flightdeck.yaml, flightdeck.yml, or flightdeck.toml in root. If
    found, loads and merges with overrides. Overrides take precedence; None
    overrides are ignored so unset CLI flags fall through to the file.

    Raises:
        ConfigError: If the file cannot be parsed or names unknown keys.

    """
    file_config = _read_config_file(root)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    unknown = sorted(set(merged) - _KNOWN_KEYS)
    if unknown:
        msg = f"Unknown configuration key(s): {', '.join(unknown)}"
        raise ConfigError(msg)
    # Normalize output to Path
    if "output" in merged and not isinstance(merged["output"], Path):
        merged["output"] = Path(str(merged["output"]))
    if "ignore_dirs" in merged:
        merged["ignore_dirs"] = tuple(str(d) for d in merged["ignore_dirs"])  # type: ignore[union-attr]
    return FlightDeckConfig(root=root, **merged)  # type: ignore[arg-type]


def _read_config_file(root: Path) -> dict[str, object]:
    """Read config from yaml/toml if present. Returns empty dict otherwise."""
    for name in CONFIG_FILE_NAMES:
        path = root / name
        if not path.is_file():
            continue
        if path.suffix == ".toml":
            return _parse_toml(path)
        return _parse_yaml(path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Failed to read {path.name}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path.name} must contain a mapping at the top level"
        raise ConfigError(msg)
    return _flatten_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config."""
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"Failed to read {path.name}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_section(data)


def _flatten_section(data: dict[str, object]) -> dict[str, object]:
    """Extract flightdeck.* keys into top-level config."""
    result: dict[str, object] = {}
    section = data.get("flightdeck")
    if isinstance(section, dict):
        for k, v in section.items():
            result[str(k)] = v
    for k, v in data.items():
        if k != "flightdeck" and k in _KNOWN_KEYS:
            result[k] = v
    return result
