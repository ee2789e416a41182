"""PTY sessions — child processes driven through a pseudoterminal.

``launch()`` forks a command onto the slave side of a new PTY and returns
a ``PtySession`` wrapping the master side: byte streams, liveness,
resize, close and exit-status reaping.
"""

from ptyrun.pty.session import PtySession, build_argv, launch
from ptyrun.pty.stream import PtyReader, PtyWriter

__all__ = [
    "PtySession",
    "PtyReader",
    "PtyWriter",
    "build_argv",
    "launch",
]
