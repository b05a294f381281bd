"""Command-line entry point for the vibetap tool."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from . import apply, hook, hush, init, revert, run

_VERSION = "0.1.0"
_DESCRIPTION = "AI-powered test generation from code changes"

logger = logging.getLogger("vibetap")


def _non_negative(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: '{text}'") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"invalid number: '{text}'")
    return value


def _verbose_parent() -> argparse.ArgumentParser:
    # Lets -v/--verbose appear after the subcommand without resetting it.
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable verbose output",
    )
    return parent


def build_parser() -> argparse.ArgumentParser:
    """The argument parser with every subcommand and its options."""
    common = _verbose_parent()
    parser = argparse.ArgumentParser(prog="vibetap", description=_DESCRIPTION)
    parser.add_argument("--version", action="version", version=f"vibetap {_VERSION}")
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=False, help="Enable verbose output"
    )
    commands = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    init_parser = commands.add_parser(
        "init", parents=[common], help="Initialize VibeTap in the current repository"
    )
    init_parser.add_argument(
        "-f", "--force", action="store_true",
        help="Force re-initialization even if already configured",
    )
    init_parser.set_defaults(handler=init.execute)

    apply_parser = commands.add_parser(
        "apply", parents=[common], help="Apply a suggestion or the latest suggestion set"
    )
    apply_parser.add_argument(
        "selections", nargs="*",
        help='Suggestion(s) to apply: numbers (1 2 3), ranges (1-3), or "all"',
    )
    apply_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")
    apply_parser.add_argument(
        "-f", "--force", action="store_true",
        help="Force apply even if source files have changed",
    )
    apply_parser.set_defaults(handler=apply.execute)

    revert_parser = commands.add_parser(
        "revert", parents=[common], help="Revert the last applied patch"
    )
    revert_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")
    revert_parser.add_argument(
        "--all", action="store_true",
        help="Revert all applied changes (not just the last batch)",
    )
    revert_parser.add_argument(
        "-c", "--count", type=_non_negative, default=None,
        help="Number of applied files to revert (default: last batch)",
    )
    revert_parser.set_defaults(handler=revert.execute)

    hush_parser = commands.add_parser(
        "hush", parents=[common], help="Silence suggestions for a period"
    )
    hush_parser.add_argument(
        "duration", nargs="?", default="30m",
        help='Duration to silence (e.g., "30m", "1h", "2h", "forever")',
    )
    hush_parser.add_argument("--status", action="store_true", help="Show current hush status")
    hush_parser.add_argument(
        "--clear", action="store_true", help="Clear hush state (resume suggestions)"
    )
    hush_parser.set_defaults(handler=hush.execute)

    run_parser = commands.add_parser("run", parents=[common], help="Run the generated tests")
    run_parser.add_argument(
        "--all", action="store_true", help="Run all tests, not just generated ones"
    )
    run_parser.add_argument(
        "--runner", default=None,
        help="Test runner to use (auto-detected if not specified)",
    )
    run_parser.add_argument(
        "args", nargs="*", help="Additional arguments for the test runner, after --"
    )
    run_parser.set_defaults(handler=run.execute)

    hook_parser = commands.add_parser(
        "hook", parents=[common], help="Manage git pre-commit hooks"
    )
    actions = hook_parser.add_subparsers(dest="action", metavar="ACTION", required=True)
    install_parser = actions.add_parser(
        "install", parents=[common], help="Install the VibeTap pre-commit hook"
    )
    install_parser.add_argument(
        "--block", action="store_true",
        help="Block commits when test suggestions are available",
    )
    install_parser.add_argument(
        "--security-only", action="store_true",
        help="Only show warnings for security-related suggestions",
    )
    actions.add_parser(
        "uninstall", parents=[common], help="Remove the VibeTap pre-commit hook"
    )
    actions.add_parser(
        "status", parents=[common], help="Check if VibeTap pre-commit hook is installed"
    )
    hook_parser.set_defaults(handler=hook.execute)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse the command line, run the chosen command and return its exit status."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)

    if args.verbose:
        logger.info("Verbose mode enabled")

    try:
        return args.handler(args)
    except KeyboardInterrupt:
        return 130
    except Exception as exc:  # every command failure ends the program with status 1
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())