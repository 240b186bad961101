"""procshell - run shell commands synchronously, asynchronously or interactively."""

__version__ = "0.1.0"

from procshell.errors import (  # noqa: E402
    AlreadyRunningError,
    CallbackReentryError,
    LaunchError,
    PipeIOError,
    ProcshellError,
    ReapError,
    ResourceError,
    SignalDeliveryError,
)
from procshell.models import ExecutionResult, SessionCallbacks, SessionConfig, SessionState  # noqa: E402
from procshell.shell import Shell  # noqa: E402

__all__ = [
    "AlreadyRunningError",
    "CallbackReentryError",
    "ExecutionResult",
    "LaunchError",
    "PipeIOError",
    "ProcshellError",
    "ReapError",
    "ResourceError",
    "SessionCallbacks",
    "SessionConfig",
    "SessionState",
    "Shell",
    "SignalDeliveryError",
    "__version__",
]
