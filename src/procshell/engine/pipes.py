"""One-directional OS byte channels with exactly-once close semantics."""

import errno
import logging
import os
import threading

from procshell.errors import ResourceError

log = logging.getLogger(__name__)

CLOSED = -1

_EXHAUSTION_ERRNOS = {errno.EMFILE, errno.ENFILE, errno.ENOMEM}


class PipeSet:
    """Owns the read and write ends of one os.pipe().

    Each end is either an open descriptor or CLOSED. A closed end is never
    reopened, and closing it again is a no-op.
    """

    def __init__(self, read_end: int, write_end: int) -> None:
        self._read_end = read_end
        self._write_end = write_end
        self._lock = threading.Lock()

    @classmethod
    def create(cls) -> "PipeSet":
        try:
            read_end, write_end = os.pipe()
        except OSError as e:
            if e.errno in _EXHAUSTION_ERRNOS:
                raise ResourceError(f"cannot allocate pipe: {e.strerror}") from e
            raise
        log.debug("pipe created read=%d write=%d", read_end, write_end)
        return cls(read_end, write_end)

    @property
    def read_end(self) -> int:
        return self._read_end

    @property
    def write_end(self) -> int:
        return self._write_end

    @property
    def closed(self) -> bool:
        return self._read_end == CLOSED and self._write_end == CLOSED

    def close_read(self) -> None:
        with self._lock:
            fd, self._read_end = self._read_end, CLOSED
        _close_fd(fd)

    def close_write(self) -> None:
        with self._lock:
            fd, self._write_end = self._write_end, CLOSED
        _close_fd(fd)

    def close(self) -> None:
        self.close_read()
        self.close_write()

    def set_read_nonblocking(self) -> None:
        if self._read_end != CLOSED:
            os.set_blocking(self._read_end, False)

    def set_write_nonblocking(self) -> None:
        if self._write_end != CLOSED:
            os.set_blocking(self._write_end, False)

    def __enter__(self) -> "PipeSet":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __del__(self) -> None:
        # Guard against partially-constructed instances.
        if hasattr(self, "_lock"):
            self.close()

    def __repr__(self) -> str:
        return f"PipeSet(read_end={self._read_end}, write_end={self._write_end})"


def _close_fd(fd: int) -> None:
    if fd == CLOSED:
        return
    try:
        os.close(fd)
    except OSError as e:
        # EBADF means someone else closed it; anything else is worth a note.
        if e.errno != errno.EBADF:
            log.warning("closing fd %d failed: %s", fd, e)
