"""Process engine: pipes, launcher, output pump and session controller."""

from procshell.engine.controller import SessionController
from procshell.engine.launcher import ChildHandle, decode_wait_status, launch
from procshell.engine.pipes import CLOSED, PipeSet
from procshell.engine.pump import OutputPump

__all__ = [
    "CLOSED",
    "ChildHandle",
    "OutputPump",
    "PipeSet",
    "SessionController",
    "decode_wait_status",
    "launch",
]
