"""Helpers shared by the CLI subcommands."""

import argparse
import logging

from procshell.config import load_config
from procshell.shell import Shell, parse_env


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(name)s %(levelname)s: %(message)s",
    )


def add_session_arguments(parser: argparse.ArgumentParser) -> None:
    """Add options that shape the launched session."""
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--shell", help="Shell interpreter to run commands with")
    parser.add_argument("--cwd", help="Working directory for the command")
    parser.add_argument(
        "-e",
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Environment override (repeatable)",
    )
    color_group = parser.add_mutually_exclusive_group()
    color_group.add_argument("--color", dest="color", action="store_true", default=None)
    color_group.add_argument("--no-color", dest="color", action="store_false")


def build_shell(args: argparse.Namespace) -> Shell:
    """Create a Shell from stored config plus command-line overrides."""
    config = load_config()
    shell = Shell(config.to_session_config())
    if args.shell:
        shell.shell_path = args.shell
    if args.cwd:
        shell.cwd = args.cwd
    if args.color is not None:
        shell.color = args.color
    for assignment in args.env:
        for key, value in parse_env(assignment).items():
            shell.set_env(key, value)
    return shell
