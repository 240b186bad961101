"""Outcome of a synchronous execution."""

from dataclasses import dataclass

from procshell.constants import LAUNCH_FAILED, SIGNAL_EXIT_OFFSET


@dataclass(frozen=True)
class ExecutionResult:
    stdout: str
    stderr: str
    exit_code: int
    duration: float
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def signaled(self) -> bool:
        """Return whether the child was terminated by a signal."""
        return self.exit_code > SIGNAL_EXIT_OFFSET and not self.launch_failed

    @property
    def signal_number(self) -> int | None:
        if not self.signaled:
            return None
        return self.exit_code - SIGNAL_EXIT_OFFSET

    @property
    def launch_failed(self) -> bool:
        return self.exit_code == LAUNCH_FAILED
