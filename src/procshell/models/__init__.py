"""Model package for procshell."""

from procshell.models.callbacks import ErrorCallback, ExitCallback, OutputCallback, SessionCallbacks
from procshell.models.execution_result import ExecutionResult
from procshell.models.session_config import SessionConfig
from procshell.models.session_state import SessionState

__all__ = [
    "ErrorCallback",
    "ExecutionResult",
    "ExitCallback",
    "OutputCallback",
    "SessionCallbacks",
    "SessionConfig",
    "SessionState",
]
