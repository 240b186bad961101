"""`procshell check-update` command implementation."""

import argparse

from procshell import __version__
from procshell.cli.shared import configure_logging
from procshell.update_check import check_for_update


def run(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(
        prog="procshell check-update",
        description="Check GitHub for a newer procshell release",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Check even if disabled or checked recently",
    )
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    info = check_for_update(__version__, force=args.force)
    if info is None:
        print(f"procshell {__version__} is up to date")
        return 0
    print(f"procshell update available: {info.current_version} -> {info.latest_version}")
    if info.url:
        print(f"  {info.url}")
    return 0
