"""Shared constants for procshell."""

# Exit code reported when a session never got a running child.
LAUNCH_FAILED = -1

# Exit status the forked child uses when it cannot replace its image.
EXEC_FAILED_EXIT_CODE = 127

# Offset added to a signal number for signal-terminated children (shell convention).
SIGNAL_EXIT_OFFSET = 128

DEFAULT_ROWS = 24
DEFAULT_COLS = 80

# Termination and polling tuning. Magnitudes matter, exact values do not.
TERM_GRACE_SECONDS = 1.0
KILL_REAP_SECONDS = 2.0
POLL_INTERVAL_SECONDS = 0.05
SELECT_TIMEOUT_SECONDS = 0.1
READ_CHUNK_SIZE = 4096

FALLBACK_SHELL = "/bin/sh"
