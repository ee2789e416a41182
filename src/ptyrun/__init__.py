"""ptyrun — run a child process on a pseudoterminal instead of pipes."""

from ptyrun.errors import (
    PtyClosedError,
    PtyError,
    PtyInvariantError,
    PtyInvocationError,
    PtyOpenError,
    UnsupportedPlatformError,
)
from ptyrun.model import ChildOutcome, OutcomeKind, TerminalSettings, WindowSize
from ptyrun.pty import PtySession, launch

__all__ = [
    "ChildOutcome",
    "OutcomeKind",
    "PtyClosedError",
    "PtyError",
    "PtyInvariantError",
    "PtyInvocationError",
    "PtyOpenError",
    "PtySession",
    "TerminalSettings",
    "UnsupportedPlatformError",
    "WindowSize",
    "launch",
]
