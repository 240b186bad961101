"""Top-level CLI router."""

import sys

from . import execute as execute_cmd
from . import interactive as interactive_cmd
from . import update as update_cmd

COMMANDS = {
    "exec": execute_cmd.run_exec,
    "stream": execute_cmd.run_stream,
    "interactive": interactive_cmd.run,
    "check-update": update_cmd.run,
}


def main(argv: list[str] | None = None) -> int:
    """Route to a subcommand; anything else is treated as `exec`."""
    args = list(sys.argv[1:] if argv is None else argv)
    if args and args[0] in COMMANDS:
        return COMMANDS[args[0]](args[1:])
    return execute_cmd.run_exec(args)


def entrypoint() -> None:
    """Console script entrypoint."""
    raise SystemExit(main())
