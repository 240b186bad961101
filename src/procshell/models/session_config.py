"""Immutable per-session launch configuration."""

from pydantic import BaseModel, ConfigDict, Field

from procshell.constants import (
    DEFAULT_COLS,
    DEFAULT_ROWS,
    FALLBACK_SHELL,
    KILL_REAP_SECONDS,
    POLL_INTERVAL_SECONDS,
    READ_CHUNK_SIZE,
    SELECT_TIMEOUT_SECONDS,
    TERM_GRACE_SECONDS,
)


class SessionConfig(BaseModel):
    """Snapshot of everything needed to launch one child.

    Taken when a session starts; later changes on the owning Shell only
    affect the next session.
    """

    model_config = ConfigDict(frozen=True)

    shell_path: str = FALLBACK_SHELL
    cwd: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    rows: int = Field(default=DEFAULT_ROWS, gt=0)
    cols: int = Field(default=DEFAULT_COLS, gt=0)
    interactive: bool = False
    color: bool = False

    term_grace_seconds: float = Field(default=TERM_GRACE_SECONDS, ge=0)
    kill_reap_seconds: float = Field(default=KILL_REAP_SECONDS, gt=0)
    poll_interval_seconds: float = Field(default=POLL_INTERVAL_SECONDS, gt=0)
    select_timeout_seconds: float = Field(default=SELECT_TIMEOUT_SECONDS, gt=0)
    read_chunk_size: int = Field(default=READ_CHUNK_SIZE, gt=0)

    def argv(self, command: str | None) -> list[str]:
        """Return the interpreter argv for a one-shot command or an interactive shell."""
        if command is None:
            return [self.shell_path, "-i"]
        return [self.shell_path, "-c", command]

    def child_env(self, base: dict[str, str]) -> dict[str, str]:
        """Build the child's environment from an inherited base plus overrides."""
        env = dict(base)
        env["LINES"] = str(self.rows)
        env["COLUMNS"] = str(self.cols)
        if self.color:
            env["TERM"] = "xterm-256color"
            env["CLICOLOR"] = "1"
            env.pop("NO_COLOR", None)
        else:
            env["TERM"] = "dumb"
            env["NO_COLOR"] = "1"
        env.update(self.env)
        return env
