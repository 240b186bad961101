"""`procshell interactive`: bridge this terminal into an interactive shell session."""

import argparse
import os
import selectors
import sys

from procshell.cli.shared import add_session_arguments, build_shell, configure_logging
from procshell.constants import SELECT_TIMEOUT_SECONDS
from procshell.errors import ProcshellError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procshell interactive",
        description="Run an interactive shell over pipes (Ctrl-C is forwarded as SIGINT)",
    )
    add_session_arguments(parser)
    return parser


def _forward_output(chunk: bytes, is_error: bool) -> None:
    target = sys.stderr if is_error else sys.stdout
    target.buffer.write(chunk)
    target.flush()


def _report_error(message: str) -> None:
    print(f"procshell: {message}", file=sys.stderr)


def run(argv: list[str]) -> int:
    """Shuttle stdin into the session until it exits or stdin reaches EOF."""
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)

    try:
        shell = build_shell(args)
        shell.start_interactive(_forward_output, on_error=_report_error)
    except (ProcshellError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    stdin_fd = sys.stdin.fileno()
    selector = selectors.DefaultSelector()
    selector.register(stdin_fd, selectors.EVENT_READ)
    try:
        while shell.running:
            try:
                if not selector.select(timeout=SELECT_TIMEOUT_SECONDS):
                    continue
                data = os.read(stdin_fd, 1024)
            except KeyboardInterrupt:
                shell.send_ctrl_c()
                continue
            if not data:
                shell.send_ctrl_d()
                break
            shell.write_input(data.decode(errors="replace"), newline=False)
        code = shell.wait()
    finally:
        selector.close()
        shell.terminate()
    return code if code is not None else 1
