"""`procshell exec` and `procshell stream` implementations."""

import argparse
import sys

from procshell import __version__
from procshell.cli.shared import add_session_arguments, build_shell, configure_logging
from procshell.errors import ProcshellError

# Exit status used by timeout(1) when the command ran out of time.
TIMEOUT_EXIT_CODE = 124


def build_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    add_session_arguments(parser)
    parser.add_argument(
        "words",
        nargs="+",
        metavar="command",
        help="Command line handed to the shell",
    )
    return parser


def run_exec(argv: list[str]) -> int:
    """Run a command synchronously and replay its captured output."""
    parser = build_parser("procshell exec", "Run a command and print its captured output")
    parser.add_argument("--timeout", type=float, help="Terminate the command after this many seconds")
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    try:
        shell = build_shell(args)
        result = shell.exec(" ".join(args.words), timeout=args.timeout)
    except (ProcshellError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    sys.stdout.write(result.stdout)
    sys.stdout.flush()
    sys.stderr.write(result.stderr)
    sys.stderr.flush()
    if result.timed_out:
        print(f"Error: command timed out after {args.timeout}s", file=sys.stderr)
        return TIMEOUT_EXIT_CODE
    return result.exit_code


def run_stream(argv: list[str]) -> int:
    """Run a command and forward its output as it arrives."""
    parser = build_parser("procshell stream", "Run a command and stream its output")
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    try:
        shell = build_shell(args)
        chunks = shell.stream(" ".join(args.words))
    except (ProcshellError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        for chunk, is_error in chunks:
            target = sys.stderr if is_error else sys.stdout
            target.buffer.write(chunk)
            target.flush()
    except KeyboardInterrupt:
        chunks.close()
        return shell.exit_code if shell.exit_code is not None else 130
    return shell.exit_code if shell.exit_code is not None else 1
