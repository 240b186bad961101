"""Fork a shell interpreter wired to three pipes."""

import fcntl
import logging
import os
import signal
import threading
import time

from procshell.constants import EXEC_FAILED_EXIT_CODE, POLL_INTERVAL_SECONDS, SIGNAL_EXIT_OFFSET
from procshell.engine.pipes import PipeSet
from procshell.errors import LaunchError
from procshell.models import SessionConfig

log = logging.getLogger(__name__)

# Ignored dispositions survive exec. Python ignores SIGPIPE and SIGXFSZ, and a
# caller started in the background may ignore SIGINT; the child gets defaults.
_RESTORED_SIGNALS = ("SIGINT", "SIGPIPE", "SIGXFSZ")


def decode_wait_status(status: int) -> int:
    """Translate a raw waitpid() status into a shell-style exit code."""
    if os.WIFSIGNALED(status):
        return SIGNAL_EXIT_OFFSET + os.WTERMSIG(status)
    if os.WIFEXITED(status):
        return os.WEXITSTATUS(status)
    # Stopped/continued statuses are never requested, fall back to the raw value.
    return os.waitstatus_to_exitcode(status)


class ChildHandle:
    """A forked child pid together with its reap state.

    Reaping and signal delivery share one lock, so a signal is never sent
    to a pid that has already been reaped (and possibly reused).
    """

    def __init__(self, pid: int) -> None:
        self.pid = pid
        self._lock = threading.Lock()
        self._returncode: int | None = None

    @property
    def returncode(self) -> int | None:
        return self._returncode

    @property
    def alive(self) -> bool:
        return self._returncode is None

    def poll(self) -> int | None:
        """Reap the child if it has exited, without blocking."""
        with self._lock:
            if self._returncode is not None:
                return self._returncode
            try:
                pid, status = os.waitpid(self.pid, os.WNOHANG)
            except ChildProcessError:
                # Someone else reaped it (SIGCHLD set to SIG_IGN); the status is lost.
                log.warning("child pid=%d was reaped elsewhere", self.pid)
                self._returncode = 0
                return self._returncode
            if pid == 0:
                return None
            self._returncode = decode_wait_status(status)
            log.debug("reaped pid=%d code=%d", self.pid, self._returncode)
            return self._returncode

    def wait(
        self, timeout: float | None = None, interval: float = POLL_INTERVAL_SECONDS
    ) -> int | None:
        """Poll until the child is reaped. Returns None if timeout elapses first."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            code = self.poll()
            if code is not None:
                return code
            if deadline is not None and time.monotonic() >= deadline:
                return None
            time.sleep(interval)

    def send_signal(self, sig: int) -> bool:
        """Deliver sig to the child. Returns False if the child is already gone."""
        with self._lock:
            if self._returncode is not None:
                return False
            try:
                os.kill(self.pid, sig)
            except ProcessLookupError:
                log.debug("signal %d to pid=%d: no such process", sig, self.pid)
                return False
        log.debug("sent signal %d to pid=%d", sig, self.pid)
        return True

    def __repr__(self) -> str:
        return f"ChildHandle(pid={self.pid}, returncode={self._returncode})"


def launch(
    command: str | None,
    config: SessionConfig,
    stdin_pipe: PipeSet,
    stdout_pipe: PipeSet,
    stderr_pipe: PipeSet,
) -> ChildHandle:
    """Fork and exec the configured shell with its standard streams on the pipes.

    command=None starts an interactive shell. On LaunchError all three pipes
    are closed and no child is left behind.
    """
    argv = config.argv(command)
    env = config.child_env(dict(os.environ))
    pipes = (stdin_pipe, stdout_pipe, stderr_pipe)

    try:
        status_pipe = PipeSet.create()
    except Exception:
        _close_all(pipes)
        raise

    # Capture plain ints: the child must not touch PipeSet locks after fork.
    child_fds = (stdin_pipe.read_end, stdout_pipe.write_end, stderr_pipe.write_end)
    parent_fds = (stdin_pipe.write_end, stdout_pipe.read_end, stderr_pipe.read_end)
    status_fd = status_pipe.write_end

    try:
        pid = os.fork()
    except OSError as e:
        status_pipe.close()
        _close_all(pipes)
        raise LaunchError(f"fork failed: {e.strerror}") from e

    if pid == 0:
        _exec_child(argv, env, config.cwd, child_fds, parent_fds, status_fd)

    status_pipe.close_write()
    stdin_pipe.close_read()
    stdout_pipe.close_write()
    stderr_pipe.close_write()

    try:
        report = _read_to_eof(status_pipe.read_end)
    finally:
        status_pipe.close()

    if report:
        os.waitpid(pid, 0)
        _close_all(pipes)
        message = report.decode(errors="replace")
        log.debug("launch of %r failed: %s", argv[0], message)
        raise LaunchError(f"cannot execute {argv[0]!r}: {message}")

    stdout_pipe.set_read_nonblocking()
    stderr_pipe.set_read_nonblocking()
    log.debug("launched pid=%d argv=%r cwd=%s", pid, argv, config.cwd)
    return ChildHandle(pid)


def _exec_child(
    argv: list[str],
    env: dict[str, str],
    cwd: str | None,
    child_fds: tuple[int, int, int],
    parent_fds: tuple[int, int, int],
    status_fd: int,
) -> None:
    """Runs in the forked child. Never returns."""
    stage = "redirect"
    try:
        for fd in parent_fds:
            os.close(fd)
        # Move the child ends above 2 first so dup2 cannot clobber one of them.
        raised = [fcntl.fcntl(fd, fcntl.F_DUPFD, 3) for fd in child_fds]
        for fd in child_fds:
            os.close(fd)
        for target, fd in enumerate(raised):
            os.dup2(fd, target)
        for fd in raised:
            os.close(fd)
        os.setsid()
        for name in _RESTORED_SIGNALS:
            sig = getattr(signal, name, None)
            if sig is not None:
                signal.signal(sig, signal.SIG_DFL)
        if cwd:
            stage = "chdir"
            os.chdir(cwd)
        stage = "exec"
        os.execvpe(argv[0], argv, env)
    except (OSError, ValueError) as e:
        detail = getattr(e, "strerror", None) or str(e)
        try:
            os.write(status_fd, f"{stage}: {detail}".encode(errors="replace"))
        except OSError:
            pass
    finally:
        os._exit(EXEC_FAILED_EXIT_CODE)


def _read_to_eof(fd: int) -> bytes:
    chunks = []
    while True:
        data = os.read(fd, 1024)
        if not data:
            return b"".join(chunks)
        chunks.append(data)


def _close_all(pipes: tuple[PipeSet, ...]) -> None:
    for pipe in pipes:
        pipe.close()
