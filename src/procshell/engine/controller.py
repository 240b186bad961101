"""Lifecycle of one child process: start, input, signals, termination."""

import logging
import os
import signal
import threading

from procshell.constants import LAUNCH_FAILED
from procshell.engine.launcher import ChildHandle, launch
from procshell.engine.pipes import CLOSED, PipeSet
from procshell.engine.pump import OutputPump
from procshell.errors import (
    AlreadyRunningError,
    CallbackReentryError,
    LaunchError,
    ReapError,
    ResourceError,
)
from procshell.models import SessionCallbacks, SessionConfig, SessionState

log = logging.getLogger(__name__)


class SessionController:
    """Owns at most one child process at a time.

    The child's output is pumped on a dedicated worker thread (or on the
    calling thread for run()), and every callback runs there, serialized.
    Callbacks must not call start(), run(), wait() or terminate() on the
    controller that invoked them; doing so raises CallbackReentryError.

    Input to the child is delivered as-is: the command string and any text
    written to stdin are interpreted by the shell, and sanitizing them is
    the caller's responsibility.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stdin_lock = threading.Lock()
        self._callback_lock = threading.RLock()
        self._state = SessionState.IDLE
        self._config: SessionConfig | None = None
        self._callbacks = SessionCallbacks()
        self._child: ChildHandle | None = None
        self._exit_code: int | None = None
        self._pipes: tuple[PipeSet, PipeSet, PipeSet] | None = None
        self._worker: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._pump_thread_id: int | None = None
        # Set whenever no pump (worker or run() caller) is reading the pipes.
        self._pump_idle = threading.Event()
        self._pump_idle.set()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state.active

    @property
    def exit_code(self) -> int | None:
        return self._exit_code

    @property
    def pid(self) -> int | None:
        child = self._child
        return child.pid if child is not None else None

    @property
    def config(self) -> SessionConfig | None:
        return self._config

    def start(
        self,
        config: SessionConfig,
        command: str | None = None,
        callbacks: SessionCallbacks | None = None,
    ) -> None:
        """Launch a child and pump its output on a worker thread.

        command=None starts an interactive shell.
        """
        self._check_not_in_callback("start")
        self._begin(config, callbacks)
        child = self._launch(command)
        self._worker = threading.Thread(
            target=self._pump,
            args=(child,),
            name=f"procshell-pump-{child.pid}",
            daemon=True,
        )
        try:
            self._worker.start()
        except RuntimeError:
            self._worker = None
            self._pump_idle.set()
            self.terminate()
            raise

    def run(
        self,
        config: SessionConfig,
        command: str,
        callbacks: SessionCallbacks | None = None,
    ) -> int:
        """Launch a child and pump it to completion on the calling thread."""
        self._check_not_in_callback("run")
        self._begin(config, callbacks)
        child = self._launch(command)
        try:
            self._pump(child)
        except BaseException:
            # Interrupted (e.g. KeyboardInterrupt): leave no child behind.
            self._pump_thread_id = None
            self.terminate()
            raise
        return self._exit_code

    def wait(self, timeout: float | None = None) -> int | None:
        """Block until the pump finishes. Returns the exit code, or None on timeout."""
        self._check_not_in_callback("wait")
        worker = self._worker
        if worker is not None:
            worker.join(timeout)
            if worker.is_alive():
                return None
        elif not self._pump_idle.wait(timeout):
            return None
        return self._exit_code

    def write_input(self, text: str, newline: bool = True) -> bool:
        """Write text to the child's stdin.

        Failures (no running session, stdin closed, child gone) are reported
        through the error callback and return False rather than raising.
        """
        with self._lock:
            state, pipes = self._state, self._pipes
        if state not in (SessionState.RUNNING, SessionState.WAITING_INPUT) or pipes is None:
            self._report_error(f"cannot write input: session is {state.value}")
            return False
        if newline and not text.endswith("\n"):
            text += "\n"
        data = text.encode()

        with self._stdin_lock:
            fd = pipes[0].write_end
            if fd == CLOSED:
                self._report_error("cannot write input: stdin is closed")
                return False
            try:
                _write_all(fd, data)
            except OSError as e:
                log.debug("stdin write failed: %s", e)
                self._report_error(f"write to stdin failed: {e.strerror or e}")
                return False

        with self._lock:
            if self._state is SessionState.WAITING_INPUT:
                self._state = SessionState.RUNNING
        return True

    def send_signal(self, sig: int) -> bool:
        """Signal the child. A missing or already-reaped child is a silent no-op."""
        child = self._child
        if child is None:
            return False
        return child.send_signal(sig)

    def send_ctrl_c(self) -> bool:
        return self.send_signal(signal.SIGINT)

    def send_ctrl_z(self) -> bool:
        return self.send_signal(signal.SIGTSTP)

    def send_ctrl_d(self) -> bool:
        """Close the child's stdin so its next read sees EOF."""
        pipes = self._pipes
        if pipes is None or self._child is None:
            return False
        with self._stdin_lock:
            if pipes[0].write_end == CLOSED:
                return False
            pipes[0].close_write()
        return True

    def terminate(self) -> int | None:
        """Stop the child: SIGTERM, then SIGKILL after the grace window.

        Returns once the child is reaped, the pump has stopped (worker joined,
        or a run() on another thread returned from its read loop) and every
        pipe is closed. Safe to call repeatedly; later calls deliver no signals.
        """
        self._check_not_in_callback("terminate")
        with self._lock:
            child, config = self._child, self._config

        if child is not None and child.alive:
            self._escalate(child, config)

        self._stop_worker()
        self._close_pipes()
        with self._lock:
            if child is not None:
                self._exit_code = child.returncode
            if self._state is not SessionState.IDLE and self._state is not SessionState.ERROR:
                self._state = SessionState.EXITED
        return self._exit_code

    def _stop_child(self, child: ChildHandle, config: SessionConfig) -> bool:
        """SIGTERM, then SIGKILL after the grace window. Returns whether the child was reaped."""
        log.debug("terminating pid=%d", child.pid)
        child.send_signal(signal.SIGTERM)
        # A child stopped by send_ctrl_z() only acts on SIGTERM once continued.
        child.send_signal(signal.SIGCONT)
        if child.wait(config.term_grace_seconds, config.poll_interval_seconds) is not None:
            return True

        log.info(
            "pid=%d survived SIGTERM for %.2fs, sending SIGKILL", child.pid, config.term_grace_seconds
        )
        child.send_signal(signal.SIGKILL)
        return child.wait(config.kill_reap_seconds, config.poll_interval_seconds) is not None

    def _escalate(self, child: ChildHandle, config: SessionConfig) -> None:
        if self._stop_child(child, config):
            return

        log.critical("pid=%d was not reaped %.2fs after SIGKILL", child.pid, config.kill_reap_seconds)
        self._stop_worker()
        self._close_pipes()
        with self._lock:
            self._state = SessionState.ERROR
        raise ReapError(f"child pid={child.pid} survived SIGKILL")

    def _begin(self, config: SessionConfig, callbacks: SessionCallbacks | None) -> None:
        with self._lock:
            if self._state.active:
                raise AlreadyRunningError(
                    f"a session is already {self._state.value} (pid={self.pid}); terminate it first"
                )
            self._state = SessionState.STARTING
        # The previous worker has already published its exit; reclaim it.
        self._stop_worker()
        self._close_pipes()
        with self._lock:
            self._config = config
            self._callbacks = callbacks or SessionCallbacks()
            self._child = None
            self._exit_code = None
            self._stop_event = threading.Event()
            self._pump_idle.clear()

    def _launch(self, command: str | None) -> ChildHandle:
        pipes: list[PipeSet] = []
        try:
            for _ in range(3):
                pipes.append(PipeSet.create())
            child = launch(command, self._config, *pipes)
        except BaseException as e:
            for pipe in pipes:
                pipe.close()
            with self._lock:
                self._state = SessionState.ERROR
                self._exit_code = LAUNCH_FAILED
            self._pump_idle.set()
            if isinstance(e, (ResourceError, LaunchError)):
                self._report_error(str(e))
            raise

        with self._lock:
            self._child = child
            self._pipes = (pipes[0], pipes[1], pipes[2])
            self._state = SessionState.RUNNING
        return child

    def _pump(self, child: ChildHandle) -> None:
        self._pump_thread_id = threading.get_ident()
        try:
            _, stdout, stderr = self._pipes
            config = self._config
            pump = OutputPump(
                stdout.read_end,
                stderr.read_end,
                child,
                self._handle_output,
                select_timeout=config.select_timeout_seconds,
                chunk_size=config.read_chunk_size,
                poll_interval=config.poll_interval_seconds,
                stop_event=self._stop_event,
                on_stream_closed=self._close_stream,
            )
            try:
                code = pump.run()
            except Exception as e:
                log.exception("output pump for pid=%d failed", child.pid)
                self._report_error(f"output pump failed: {e}")
                code = self._reap_after_pump_failure(child)
            self._finish(code)
        finally:
            self._pump_thread_id = None
            self._pump_idle.set()

    def _reap_after_pump_failure(self, child: ChildHandle) -> int | None:
        # Nothing drains the pipes any more, so the child must not outlive the pump.
        if child.poll() is None and not self._stop_child(child, self._config):
            log.critical("pid=%d was not reaped after its output pump failed", child.pid)
            with self._lock:
                self._state = SessionState.ERROR
        return child.returncode

    def _finish(self, code: int | None) -> None:
        with self._lock:
            if code is not None:
                self._exit_code = code
            if self._state.active:
                self._state = SessionState.EXITED
        self._close_pipes()
        if code is not None:
            log.debug("session exited code=%d", code)
            self._invoke(self._callbacks.on_exit, code)

    def _handle_output(self, chunk: bytes, is_error: bool) -> None:
        if self._config.interactive:
            # A chunk without a trailing newline is most likely a prompt.
            with self._lock:
                if self._state in (SessionState.RUNNING, SessionState.WAITING_INPUT):
                    waiting = not chunk.endswith(b"\n")
                    self._state = SessionState.WAITING_INPUT if waiting else SessionState.RUNNING
        self._invoke(self._callbacks.on_output, chunk, is_error)

    def _close_stream(self, fd: int) -> None:
        pipes = self._pipes
        if pipes is None:
            return
        for pipe in pipes[1:]:
            if pipe.read_end == fd:
                pipe.close_read()

    def _close_pipes(self) -> None:
        pipes = self._pipes
        if pipes is None:
            return
        with self._stdin_lock:
            pipes[0].close()
        pipes[1].close()
        pipes[2].close()

    def _stop_worker(self) -> None:
        self._stop_event.set()
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join()
        self._worker = None
        if self._pump_thread_id != threading.get_ident():
            # run() pumps on its caller's thread; its descriptors stay in use until it returns.
            self._pump_idle.wait()

    def _report_error(self, message: str) -> None:
        log.debug("session error: %s", message)
        self._invoke(self._callbacks.on_error, message)

    def _invoke(self, callback, *args) -> None:
        if callback is None:
            return
        with self._callback_lock:
            try:
                callback(*args)
            except Exception:
                log.exception("session callback %r raised", callback)

    def _check_not_in_callback(self, operation: str) -> None:
        if self._pump_thread_id == threading.get_ident():
            raise CallbackReentryError(f"{operation}() cannot be called from a session callback")


def _write_all(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]
