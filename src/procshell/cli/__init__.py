"""Command-line interface for procshell."""

from procshell.cli.app import entrypoint, main

__all__ = ["entrypoint", "main"]
