"""Unit tests for procshell.engine.pipes."""

import errno
import os
from unittest.mock import patch

import pytest

from procshell.engine.pipes import CLOSED, PipeSet
from procshell.errors import ResourceError


class TestPipeSetCreate:
    def test_create_opens_both_ends(self):
        with PipeSet.create() as pipe:
            assert pipe.read_end >= 0
            assert pipe.write_end >= 0
            assert not pipe.closed

    def test_bytes_flow_from_write_to_read_end(self):
        with PipeSet.create() as pipe:
            os.write(pipe.write_end, b"ping")
            assert os.read(pipe.read_end, 16) == b"ping"

    def test_descriptor_exhaustion_raises_resource_error(self):
        with patch("procshell.engine.pipes.os.pipe", side_effect=OSError(errno.EMFILE, "Too many open files")):
            with pytest.raises(ResourceError, match="Too many open files"):
                PipeSet.create()

    def test_other_os_errors_propagate(self):
        with patch("procshell.engine.pipes.os.pipe", side_effect=OSError(errno.EIO, "I/O error")):
            with pytest.raises(OSError) as exc_info:
                PipeSet.create()
        assert not isinstance(exc_info.value, ResourceError)


class TestPipeSetClose:
    def test_close_read_is_idempotent(self):
        pipe = PipeSet.create()
        fd = pipe.read_end
        pipe.close_read()
        pipe.close_read()
        assert pipe.read_end == CLOSED
        with pytest.raises(OSError):
            os.fstat(fd)
        pipe.close()

    def test_close_marks_both_ends_closed(self):
        pipe = PipeSet.create()
        pipe.close()
        assert pipe.closed
        assert pipe.read_end == CLOSED
        assert pipe.write_end == CLOSED

    def test_close_twice_is_a_noop(self):
        pipe = PipeSet.create()
        pipe.close()
        pipe.close()
        assert pipe.closed

    def test_closing_write_end_gives_reader_eof(self):
        with PipeSet.create() as pipe:
            pipe.close_write()
            assert os.read(pipe.read_end, 16) == b""
            assert not pipe.closed

    def test_context_manager_closes(self):
        with PipeSet.create() as pipe:
            pass
        assert pipe.closed


class TestPipeSetBlocking:
    def test_set_read_nonblocking(self):
        with PipeSet.create() as pipe:
            pipe.set_read_nonblocking()
            assert os.get_blocking(pipe.read_end) is False
            assert os.get_blocking(pipe.write_end) is True
            with pytest.raises(BlockingIOError):
                os.read(pipe.read_end, 16)

    def test_set_nonblocking_on_closed_end_is_ignored(self):
        pipe = PipeSet.create()
        pipe.close()
        pipe.set_read_nonblocking()
        pipe.set_write_nonblocking()
