"""Error taxonomy for PTY sessions."""

from __future__ import annotations

import os


class PtyError(Exception):
    """Base class for recoverable PTY session errors."""


class PtyInvocationError(PtyError, ValueError):
    """The caller passed an unusable command."""


class PtyOpenError(PtyError, OSError):
    """Allocating the PTY pair or forking the child failed.

    ``errno`` carries the platform error code reported by the bridge.
    """

    def __init__(self, errno: int, command: str) -> None:
        reason = os.strerror(errno) if errno else "unknown error"
        super().__init__(errno, f"Failed to open PTY for {command!r}: {reason}")
        self.command = command


class PtyClosedError(PtyError):
    """An operation was attempted on a session that has been closed."""


class UnsupportedPlatformError(RuntimeError):
    """No platform bridge exists for the running operating system."""


class PtyInvariantError(RuntimeError):
    """An internal invariant was violated. This is a defect, not a runtime condition."""
