"""Exceptions raised by the procshell engine."""


class ProcshellError(Exception):
    """Base class for all procshell errors."""


class ResourceError(ProcshellError):
    """The OS refused a descriptor or process-table allocation."""


class LaunchError(ProcshellError):
    """fork() failed or the child could not exec the shell interpreter."""


class AlreadyRunningError(ProcshellError):
    """start() was called while a previous session is still active."""


class PipeIOError(ProcshellError):
    """A read or write on a live pipe failed.

    The engine absorbs these internally (logged, stream treated as EOF);
    the class exists so callers can name the condition.
    """


class SignalDeliveryError(ProcshellError):
    """The target process no longer exists. Absorbed as a no-op by the engine."""


class ReapError(ProcshellError):
    """A child survived SIGKILL past the reap window.

    This should never happen on a POSIX system and indicates an engine
    invariant violation.
    """


class CallbackReentryError(ProcshellError):
    """A session callback tried to start, stop or wait on its own session."""
