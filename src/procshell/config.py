"""Persistent user configuration for procshell."""

import json
import logging
import os
import time
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from procshell.constants import DEFAULT_COLS, DEFAULT_ROWS, TERM_GRACE_SECONDS
from procshell.detection import SHELL_ENV_VAR, detect_shell
from procshell.models import SessionConfig

log = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".procshell"
CONFIG_FILE = CONFIG_DIR / "config.json"
GRACE_ENV_VAR = "PROCSHELL_GRACE"
DEFAULT_UPDATE_REPO = "procshell/procshell"


class ProcshellConfig(BaseModel):
    """User defaults applied to every new Shell."""

    shell_path: str | None = None
    cwd: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    rows: int = Field(default=DEFAULT_ROWS, gt=0)
    cols: int = Field(default=DEFAULT_COLS, gt=0)
    color: bool = False
    term_grace_seconds: float = Field(default=TERM_GRACE_SECONDS, ge=0)
    update_check_enabled: bool = True
    update_repo: str = DEFAULT_UPDATE_REPO

    def to_session_config(self, interactive: bool = False) -> SessionConfig:
        """Build a launch snapshot, detecting the shell when none is configured."""
        return SessionConfig(
            shell_path=self.shell_path or detect_shell(),
            cwd=self.cwd,
            env=dict(self.env),
            rows=self.rows,
            cols=self.cols,
            interactive=interactive,
            color=self.color,
            term_grace_seconds=self.term_grace_seconds,
        )


def _apply_env_overrides(config: ProcshellConfig) -> ProcshellConfig:
    updates: dict[str, object] = {}
    shell = os.environ.get(SHELL_ENV_VAR, "").strip()
    if shell:
        updates["shell_path"] = shell
    grace = os.environ.get(GRACE_ENV_VAR, "").strip()
    if grace:
        try:
            updates["term_grace_seconds"] = max(float(grace), 0.0)
        except ValueError:
            log.warning("ignoring invalid %s=%r", GRACE_ENV_VAR, grace)
    if not updates:
        return config
    return config.model_copy(update=updates)


def load_config() -> ProcshellConfig:
    """Load config from disk, falling back to defaults, then apply env overrides."""
    config = ProcshellConfig()
    try:
        with open(CONFIG_FILE, encoding="utf-8") as f:
            payload = json.load(f)
        config = ProcshellConfig.model_validate(payload)
        log.debug("loaded config from %s", CONFIG_FILE)
    except FileNotFoundError:
        log.debug("no config file at %s, using defaults", CONFIG_FILE)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        log.warning("ignoring unreadable config %s: %s", CONFIG_FILE, e)
    return _apply_env_overrides(config)


def write_json_atomic(path: Path, payload: dict) -> None:
    """Replace path with payload as JSON, readable by the owner only."""
    os.makedirs(path.parent, mode=0o700, exist_ok=True)
    temp_file = path.with_name(f".{path.name}.{os.getpid()}.{time.time_ns()}.tmp")
    fd = os.open(temp_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_file, path)
    except OSError:
        temp_file.unlink(missing_ok=True)
        raise


def save_config(config: ProcshellConfig) -> None:
    write_json_atomic(CONFIG_FILE, config.model_dump())
