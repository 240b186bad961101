"""Locate a shell interpreter to run commands with."""

import logging
import os
import shutil

from procshell.constants import FALLBACK_SHELL

log = logging.getLogger(__name__)

SHELL_ENV_VAR = "PROCSHELL_SHELL"
DEFAULT_CANDIDATES = ("bash", "zsh", "sh")


def _resolve_executable(candidate: str) -> str | None:
    """Resolve an executable name or path to a runnable command path."""
    has_sep = os.path.sep in candidate or (
        os.path.altsep is not None and os.path.altsep in candidate
    )
    if has_sep:
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate
        return None
    return shutil.which(candidate)


def _shell_candidates() -> list[str]:
    """Return shell candidates in preference order."""
    candidates: list[str] = []
    override = os.environ.get(SHELL_ENV_VAR, "").strip()
    if override:
        candidates.append(override)

    env_shell = os.environ.get("SHELL", "").strip()
    if env_shell:
        candidates.append(env_shell)

    candidates.extend(DEFAULT_CANDIDATES)

    deduped: list[str] = []
    seen: set[str] = set()
    for item in candidates:
        if item in seen:
            continue
        seen.add(item)
        deduped.append(item)
    return deduped


def detect_shell() -> str:
    """Return the path of the first runnable shell, or /bin/sh."""
    for candidate in _shell_candidates():
        executable = _resolve_executable(candidate)
        if executable:
            log.debug("using shell %s", executable)
            return executable
        log.debug("shell candidate %s is not runnable", candidate)
    return FALLBACK_SHELL
