"""Shared fixtures for procshell tests."""

import os
import time

import pytest

from procshell import SessionConfig, Shell

SH = "/bin/sh"


@pytest.fixture
def sh_config() -> SessionConfig:
    return SessionConfig(shell_path=SH, term_grace_seconds=0.5)


@pytest.fixture
def shell(sh_config):
    sh = Shell(sh_config)
    yield sh
    sh.terminate()


@pytest.fixture
def wait_for():
    """Return a poller: wait_for(predicate, timeout) -> bool."""

    def _wait_for(predicate, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.02)
        return predicate()

    return _wait_for


@pytest.fixture
def open_fd_count():
    if not os.path.isdir("/proc/self/fd"):
        pytest.skip("descriptor counting needs /proc/self/fd")
    return lambda: len(os.listdir("/proc/self/fd"))


@pytest.fixture
def high_fds():
    """Hold enough pipes open that the next descriptors land above 1024."""
    resource = pytest.importorskip("resource")
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    wanted = 2048
    if hard != resource.RLIM_INFINITY and hard < wanted:
        pytest.skip(f"RLIMIT_NOFILE hard limit {hard} is below {wanted}")
    if soft != resource.RLIM_INFINITY and soft < wanted:
        resource.setrlimit(resource.RLIMIT_NOFILE, (wanted, hard))

    held: list[int] = []
    try:
        while not held or max(held) < 1030:
            held.extend(os.pipe())
        yield max(held)
    finally:
        for fd in held:
            os.close(fd)
        resource.setrlimit(resource.RLIMIT_NOFILE, (soft, hard))
