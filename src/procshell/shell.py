"""Public entry point: run commands through a shell interpreter.

Three modes share one SessionController:

* exec() / exec_with_status(): synchronous, returns captured output;
* exec_async() / stream(): output delivered while the command runs;
* start_interactive(): a long-lived ``<shell> -i`` fed with write_input().

Command strings and input are handed to the shell verbatim. Nothing is
quoted or validated, so callers passing untrusted text are responsible for
guarding against command injection.
"""

import logging
import queue
import shlex
import time
from collections.abc import Iterator, Mapping

from procshell.constants import POLL_INTERVAL_SECONDS
from procshell.detection import detect_shell
from procshell.engine import SessionController
from procshell.models import (
    ErrorCallback,
    ExecutionResult,
    ExitCallback,
    OutputCallback,
    SessionCallbacks,
    SessionConfig,
    SessionState,
)

log = logging.getLogger(__name__)

EnvOverrides = Mapping[str, str] | str


def parse_env(env: EnvOverrides | None) -> dict[str, str]:
    """Normalize env overrides given as a mapping or a ``"K=V K2='v 2'"`` string."""
    if env is None:
        return {}
    if not isinstance(env, str):
        return {str(key): str(value) for key, value in env.items()}
    parsed: dict[str, str] = {}
    for token in shlex.split(env):
        key, sep, value = token.partition("=")
        if not sep or not key:
            raise ValueError(f"invalid environment assignment: {token!r}")
        parsed[key] = value
    return parsed


class Shell:
    """One logical shell session owned by the caller.

    Settings changed on a Shell apply to the next session started from it;
    a running session keeps the snapshot it was started with. Only one
    session may be active at a time: starting another raises
    AlreadyRunningError until terminate() (or the child's own exit).
    """

    def __init__(self, config: SessionConfig | None = None) -> None:
        self._settings = config or SessionConfig(shell_path=detect_shell())
        self._controller = SessionController()

    # -- settings ---------------------------------------------------------

    @property
    def shell_path(self) -> str:
        return self._settings.shell_path

    @shell_path.setter
    def shell_path(self, value: str) -> None:
        self._update(shell_path=value)

    @property
    def cwd(self) -> str | None:
        return self._settings.cwd

    @cwd.setter
    def cwd(self, value: str | None) -> None:
        self._update(cwd=value)

    @property
    def color(self) -> bool:
        return self._settings.color

    @color.setter
    def color(self, value: bool) -> None:
        self._update(color=bool(value))

    @property
    def env(self) -> dict[str, str]:
        return dict(self._settings.env)

    def set_env(self, key: str, value: str) -> None:
        env = self.env
        env[key] = value
        self._update(env=env)

    def unset_env(self, key: str) -> None:
        env = self.env
        env.pop(key, None)
        self._update(env=env)

    @property
    def terminal_size(self) -> tuple[int, int]:
        return self._settings.rows, self._settings.cols

    def set_terminal_size(self, rows: int, cols: int) -> None:
        if rows <= 0 or cols <= 0:
            raise ValueError(f"terminal size must be positive, got {rows}x{cols}")
        self._update(rows=rows, cols=cols)

    def snapshot(self, interactive: bool = False, env: EnvOverrides | None = None) -> SessionConfig:
        """Freeze the current settings for one session, with per-call env on top."""
        merged = {**self._settings.env, **parse_env(env)}
        return self._settings.model_copy(update={"interactive": interactive, "env": merged})

    def _update(self, **changes) -> None:
        self._settings = self._settings.model_copy(update=changes)

    # -- session state ----------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._controller.state

    @property
    def running(self) -> bool:
        return self._controller.running

    @property
    def exit_code(self) -> int | None:
        return self._controller.exit_code

    @property
    def pid(self) -> int | None:
        return self._controller.pid

    # -- execution modes --------------------------------------------------

    def exec(
        self,
        command: str,
        *,
        env: EnvOverrides | None = None,
        timeout: float | None = None,
    ) -> ExecutionResult:
        """Run command to completion and return its captured output.

        With a timeout the command is terminated once it expires and the
        result is flagged timed_out. LaunchError propagates.
        """
        stdout = bytearray()
        stderr = bytearray()

        def on_output(chunk: bytes, is_error: bool) -> None:
            (stderr if is_error else stdout).extend(chunk)

        config = self.snapshot(env=env)
        callbacks = SessionCallbacks(on_output=on_output)
        started = time.monotonic()
        timed_out = False
        if timeout is None:
            code = self._controller.run(config, command, callbacks)
        else:
            self._controller.start(config, command, callbacks)
            code = self._controller.wait(timeout)
            if code is None:
                log.debug("command timed out after %.2fs: %s", timeout, command)
                timed_out = True
                code = self._controller.terminate()

        return ExecutionResult(
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            exit_code=code,
            duration=time.monotonic() - started,
            timed_out=timed_out,
        )

    def exec_with_status(self, command: str) -> tuple[str, int]:
        """Run command and return (stdout, exit_code)."""
        result = self.exec(command)
        return result.stdout, result.exit_code

    def exec_async(
        self,
        command: str,
        on_output: OutputCallback,
        on_exit: ExitCallback | None = None,
        on_error: ErrorCallback | None = None,
        *,
        env: EnvOverrides | None = None,
    ) -> None:
        """Start command and return at once; callbacks run on the worker thread."""
        callbacks = SessionCallbacks(on_output=on_output, on_exit=on_exit, on_error=on_error)
        self._controller.start(self.snapshot(env=env), command, callbacks)

    def stream(self, command: str, *, env: EnvOverrides | None = None) -> Iterator[tuple[bytes, bool]]:
        """Start command and iterate over its (chunk, is_error) output.

        Closing the iterator early terminates the command. The exit code is
        available from exit_code once iteration ends.
        """
        chunks: queue.Queue = queue.Queue()
        finished = object()
        callbacks = SessionCallbacks(
            on_output=lambda chunk, is_error: chunks.put((chunk, is_error)),
            on_exit=lambda code: chunks.put(finished),
        )
        self._controller.start(self.snapshot(env=env), command, callbacks)
        return self._iter_chunks(chunks, finished)

    def _iter_chunks(self, chunks: queue.Queue, finished: object) -> Iterator[tuple[bytes, bool]]:
        try:
            while True:
                try:
                    item = chunks.get(timeout=POLL_INTERVAL_SECONDS)
                except queue.Empty:
                    if self._controller.running:
                        continue
                    # The pump stopped without an exit notification; all output is queued.
                    if chunks.empty():
                        return
                    continue
                if item is finished:
                    return
                yield item
        finally:
            self._controller.terminate()

    def start_interactive(
        self,
        on_output: OutputCallback,
        on_exit: ExitCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Start ``<shell> -i``; feed it with write_input() until terminate()."""
        callbacks = SessionCallbacks(on_output=on_output, on_exit=on_exit, on_error=on_error)
        self._controller.start(self.snapshot(interactive=True), None, callbacks)

    # -- session control --------------------------------------------------

    def write_input(self, text: str, newline: bool = True) -> bool:
        return self._controller.write_input(text, newline=newline)

    def send_signal(self, sig: int) -> bool:
        return self._controller.send_signal(sig)

    def send_ctrl_c(self) -> bool:
        return self._controller.send_ctrl_c()

    def send_ctrl_d(self) -> bool:
        return self._controller.send_ctrl_d()

    def send_ctrl_z(self) -> bool:
        return self._controller.send_ctrl_z()

    def wait(self, timeout: float | None = None) -> int | None:
        return self._controller.wait(timeout)

    def terminate(self) -> int | None:
        return self._controller.terminate()

    def __enter__(self) -> "Shell":
        return self

    def __exit__(self, *exc_info) -> None:
        self.terminate()

    def __repr__(self) -> str:
        return f"Shell(shell_path={self.shell_path!r}, state={self.state.value})"
