"""Startup banner — mode-aware status output.

Prints the version, mode, step counts and (in watch mode) the local URL.
Detects ``NO_COLOR`` / ``TERM`` for safe fallback.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flightdeck.config import FlightDeckConfig
    from flightdeck.routes.config import RouteConfig


# ---------------------------------------------------------------------------
# ANSI helpers; respect NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_CYAN = "\033[36m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_YELLOW = "\033[33m" if _COLOR else ""
_MAGENTA = "\033[35m" if _COLOR else ""


_MODE_STYLES: dict[str, tuple[str, str]] = {
    "build": (_YELLOW, "build"),
    "watch": (_GREEN, "watch"),
    "clean": (_MAGENTA, "clean"),
}


def _mode_badge(mode: str) -> str:
    color, label = _MODE_STYLES.get(mode, (_DIM, mode))
    return f"{color}[{label}]{_RESET}"


def _clickable_url(url: str) -> str:
    """Wrap *url* in an OSC 8 hyperlink escape if the terminal supports it."""
    if not _COLOR:
        return url
    return f"\033]8;;{url}\033\\{_BOLD}{_CYAN}{url}{_RESET}\033]8;;\033\\"


def _count(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


def print_banner(
    config: FlightDeckConfig,
    mode: str,
    *,
    routes: RouteConfig | None = None,
    loader_count: int = 0,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the startup banner to stderr.

    Args:
        config: Resolved FlightDeckConfig.
        mode: One of ``"build"``, ``"watch"``, ``"clean"``.
        routes: The project's RouteConfig, when loaded.
        loader_count: Number of loader scripts discovered.
        load_ms: Time spent loading the project in milliseconds.
        warnings: Optional list of warning messages to display.

    """
    from flightdeck import __version__

    header = f"  {_BOLD}FlightDeck{_RESET} {_DIM}v{__version__}{_RESET}  {_mode_badge(mode)}"
    lines: list[str] = ["", header, f"  {_DIM}{'─' * 43}{_RESET}"]

    lines.append(f"  {_DIM}├─{_RESET} project: {_DIM}{config.root}{_RESET}")
    if routes is not None:
        timing = f" {_DIM}in {load_ms:.0f}ms{_RESET}" if load_ms > 0 else ""
        globals_ = len(routes.global_routes)
        lines.append(
            f"  {_DIM}├─{_RESET} {_count(len(routes), 'step')} "
            f"({globals_} once), {_count(loader_count, 'loader')}{timing}"
        )
        if config.max_workers > 1:
            lines.append(f"  {_DIM}├─{_RESET} workers: {config.max_workers}")
    lines.append(f"  {_DIM}└─{_RESET} output: {_DIM}{config.output_path}{_RESET}")

    if mode == "watch":
        url = f"http://{config.host}:{config.port}"
        lines.append("")
        lines.append(f"  {_clickable_url(url)}")
        lines.append("")
        lines.append(f"  {_DIM}Watching for changes...{_RESET}")

    if warnings:
        lines.append("")
        lines.extend(f"  {_YELLOW}!{_RESET} {w}" for w in warnings)

    lines.append("")
    print("\n".join(lines), file=sys.stderr)
