"""Callback signatures bound to a session."""

from collections.abc import Callable
from dataclasses import dataclass

OutputCallback = Callable[[bytes, bool], None]
ExitCallback = Callable[[int], None]
ErrorCallback = Callable[[str], None]


@dataclass(frozen=True)
class SessionCallbacks:
    """Hooks invoked on the session's worker thread.

    Callbacks of one session never run concurrently with each other. They
    must not call start(), terminate() or wait() on their own session.
    """

    on_output: OutputCallback | None = None
    on_exit: ExitCallback | None = None
    on_error: ErrorCallback | None = None
