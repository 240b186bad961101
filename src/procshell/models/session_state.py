"""Lifecycle states of a shell session."""

import enum


class SessionState(enum.Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    WAITING_INPUT = "waiting_input"  # Advisory: interactive child printed a prompt
    EXITED = "exited"
    ERROR = "error"

    @property
    def active(self) -> bool:
        """Return whether a child may still own pipes or a worker thread."""
        return self in (SessionState.STARTING, SessionState.RUNNING, SessionState.WAITING_INPUT)
