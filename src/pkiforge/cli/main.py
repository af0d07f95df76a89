"""pkiforge command-line entry point.

Usage::

    pkiforge                               # generate ./PKI with defaults
    pkiforge generate -o /tmp/PKI
    pkiforge -c pkiforge.yaml generate
    pkiforge -c pkiforge.yaml plan
    python -m pkiforge
"""

from __future__ import annotations

import argparse
import logging
import sys

log = logging.getLogger(__name__)


def _get_version() -> str:
    from pkiforge import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkiforge",
        description="pkiforge: PKI test-fixture generator",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        metavar="PATH",
        help="Path to the configuration file (YAML). Defaults apply without one.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # generate
    generate_parser = subparsers.add_parser("generate", help="Generate the fixture tree")
    generate_parser.add_argument(
        "-o",
        "--output",
        default=None,
        metavar="DIR",
        help="Output directory (overrides output_dir from the config; default ./PKI).",
    )

    # plan
    subparsers.add_parser("plan", help="List every artifact and its destinations")

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"error: {message}", file=sys.stderr)  # noqa: T201


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs the command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    from pkiforge.config import ConfigValidationError, load_config
    from pkiforge.errors import PKIForgeError

    # -- load & validate config ---
    try:
        settings = load_config(args.config)
    except ConfigValidationError as exc:
        if args.debug:
            raise
        _print_error(str(exc))
        sys.exit(1)

    # -- replace bootstrap logging with structured logging ---
    from pkiforge.logging import configure_logging

    configure_logging(settings.logging)
    if args.debug:
        logging.getLogger("pkiforge").setLevel(logging.DEBUG)

    # -- dispatch subcommand ---
    try:
        if args.command == "plan":
            from pkiforge.cli.commands.plan import run_plan

            run_plan(settings, args)
        else:
            # Default: generate
            from pkiforge.cli.commands.generate import run_generate

            run_generate(settings, args)
    except PKIForgeError as exc:
        if args.debug:
            raise
        _print_error(str(exc))
        sys.exit(1)
    except OSError as exc:
        if args.debug:
            raise
        _print_error(f"cannot write fixture tree: {exc}")
        sys.exit(1)
