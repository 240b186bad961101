"""Multiplex a child's stdout and stderr into an output callback."""

import logging
import os
import selectors
import threading
from collections.abc import Callable

from procshell.constants import POLL_INTERVAL_SECONDS, READ_CHUNK_SIZE, SELECT_TIMEOUT_SECONDS
from procshell.engine.launcher import ChildHandle

log = logging.getLogger(__name__)

# Upper bound on bytes drained per stream once the child is gone. A grandchild
# holding the pipe open may write forever.
DRAIN_LIMIT_BYTES = 1 << 20


class OutputPump:
    """Read loop for one child, run on the session's worker thread.

    Output readiness and child exit are tracked separately: a child may close
    its streams before exiting, and may exit while output is still buffered
    in the pipes. The loop ends when both streams reach EOF and the child is
    reaped, or when the child is reaped and nothing is left to read (a
    grandchild may keep the pipes open indefinitely).

    The select timeout only bounds how often exit is polled; it has no
    effect on delivery of data.
    """

    def __init__(
        self,
        stdout_fd: int,
        stderr_fd: int,
        child: ChildHandle,
        on_output: Callable[[bytes, bool], None],
        *,
        select_timeout: float = SELECT_TIMEOUT_SECONDS,
        chunk_size: int = READ_CHUNK_SIZE,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        stop_event: threading.Event | None = None,
        on_stream_closed: Callable[[int], None] | None = None,
    ) -> None:
        self._streams = {stdout_fd: False, stderr_fd: True}
        self._child = child
        self._on_output = on_output
        self._select_timeout = select_timeout
        self._chunk_size = chunk_size
        self._poll_interval = poll_interval
        self._stop_event = stop_event or threading.Event()
        self._on_stream_closed = on_stream_closed
        self._selector: selectors.BaseSelector | None = None

    def run(self) -> int | None:
        """Pump until the child is done. Returns its exit code, or None if stopped early."""
        self._selector = selectors.DefaultSelector()
        try:
            for fd, is_error in self._streams.items():
                self._selector.register(fd, selectors.EVENT_READ, data=is_error)
            return self._run()
        finally:
            self._selector.close()

    def _run(self) -> int | None:
        while self._streams and not self._stop_event.is_set():
            try:
                events = self._selector.select(timeout=self._select_timeout)
            except OSError as e:
                log.warning("select on child pipes failed: %s", e)
                break
            for key, _ in events:
                self._read_once(key.fd)
            if not events and self._child.poll() is not None:
                self._drain()
                return self._child.returncode

        if self._stop_event.is_set():
            self._drain()
            return self._child.returncode

        # Both streams hit EOF; the child may still be running (or just exiting).
        while not self._stop_event.is_set():
            code = self._child.poll()
            if code is not None:
                return code
            self._stop_event.wait(self._poll_interval)
        return self._child.returncode

    def _read_once(self, fd: int) -> int:
        """Read one chunk. Returns the number of bytes delivered, 0 if none."""
        is_error = self._streams[fd]
        try:
            data = os.read(fd, self._chunk_size)
        except BlockingIOError:
            return 0
        except OSError as e:
            log.warning("read from %s failed, treating as EOF: %s", _stream_name(is_error), e)
            data = b""
        if not data:
            log.debug("%s reached EOF", _stream_name(is_error))
            del self._streams[fd]
            self._selector.unregister(fd)
            if self._on_stream_closed is not None:
                self._on_stream_closed(fd)
            return 0
        self._deliver(data, is_error)
        return len(data)

    def _drain(self) -> None:
        """Read whatever is already buffered on the remaining streams."""
        for fd in list(self._streams):
            drained = 0
            while fd in self._streams and drained < DRAIN_LIMIT_BYTES:
                count = self._read_once(fd)
                if not count:
                    break
                drained += count

    def _deliver(self, data: bytes, is_error: bool) -> None:
        try:
            self._on_output(data, is_error)
        except Exception:
            log.exception("output callback raised")


def _stream_name(is_error: bool) -> str:
    return "stderr" if is_error else "stdout"
