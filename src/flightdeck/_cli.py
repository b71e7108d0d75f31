"""FlightDeck CLI — flightdeck build / watch / clean / version.

Entry point for the ``flightdeck`` command-line interface.  Exits 0 on
success (including builds with per-file errors) and 1 on any fatal error.
"""

from __future__ import annotations

import argparse
import sys


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the flightdeck CLI."""
    parser = argparse.ArgumentParser(
        prog="flightdeck",
        description="Incremental content-generation build engine with live reload.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # flightdeck build
    build_parser = subparsers.add_parser("build", help="Run one full build pass")
    build_parser.add_argument("root", nargs="?", default=".", help="Project root directory")
    build_parser.add_argument("--output", default=None, help="Output directory")
    build_parser.add_argument(
        "--workers", type=int, default=None, help="Producer threads (0=one per CPU)",
    )

    # flightdeck watch
    watch_parser = subparsers.add_parser(
        "watch",
        help="Build, serve the output, and rebuild on changes",
    )
    watch_parser.add_argument("root", nargs="?", default=".", help="Project root directory")
    watch_parser.add_argument("--host", default=None, help="Bind address")
    watch_parser.add_argument("--port", type=int, default=None, help="Bind port (default 8080)")
    watch_parser.add_argument("--output", default=None, help="Output directory")

    # flightdeck clean
    clean_parser = subparsers.add_parser(
        "clean",
        help="Delete the output and cache directories",
    )
    clean_parser.add_argument("root", nargs="?", default=".", help="Project root directory")

    # flightdeck version
    subparsers.add_parser("version", help="Print the version")

    return parser


def _get_version() -> str:
    """Get the package version."""
    from flightdeck import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "version":
        print(f"flightdeck {_get_version()}")
        sys.exit(0)

    from flightdeck._errors import FlightDeckError
    from flightdeck.app import build, clean, watch

    try:
        if args.command == "build":
            build(root=args.root, output=args.output, workers=args.workers)
        elif args.command == "watch":
            watch(root=args.root, host=args.host, port=args.port, output=args.output)
        elif args.command == "clean":
            clean(root=args.root)
    except FlightDeckError as exc:
        print(f"  Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
