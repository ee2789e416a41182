"""Fake platform bridge for testing - no real process spawned."""

from __future__ import annotations

import errno
import logging
import os
from collections import deque
from collections.abc import Mapping, Sequence

from ptyrun.model import ChildOutcome, TerminalSettings, WindowSize
from ptyrun.platform.protocol import ChildSide, ForkResult, ParentSide

logger = logging.getLogger(__name__)


class FakeBridge:
    """Fake PlatformBridge for unit tests.

    - The "master" is the read end of a real pipe, so sessions can read,
      select and close it; tests feed it with ``inject_output()``.
    - Child state changes are scripted with ``script_outcomes()``.
    - Behaves like ``waitpid``: once a terminal outcome has been reported,
      the pid counts as reaped and later waits yield UNKNOWN.
    """

    name = "fake"

    def __init__(self, pid: int = 4242) -> None:
        self.pid = pid
        self.open_errno: int = 0
        self.child_side: ChildSide | None = None
        self.master_override: int | None = None
        self.exec_errno: int = errno.ENOENT

        self.open_calls: list[tuple[TerminalSettings | None, WindowSize | None]] = []
        self.exec_calls: list[tuple[str, list[str], dict[str, str] | None]] = []
        self.wait_calls: list[bool] = []
        self.sizes: dict[int, WindowSize] = {}

        self._outcomes: deque[ChildOutcome] = deque()
        self._final = ChildOutcome.exited(0)
        self._reaped = False
        self._last_error = 0
        self._write_fd: int | None = None

    # -- PlatformBridge ----------------------------------------------------

    def open_pty_and_fork(
        self,
        settings: TerminalSettings | None = None,
        window_size: WindowSize | None = None,
    ) -> ForkResult:
        self.open_calls.append((settings, window_size))
        if self.open_errno:
            self._last_error = self.open_errno
            raise OSError(self.open_errno, os.strerror(self.open_errno))
        if self.child_side is not None:
            return self.child_side

        read_fd, self._write_fd = os.pipe()
        if window_size is not None:
            self.sizes[read_fd] = window_size
        master_fd = read_fd if self.master_override is None else self.master_override
        logger.debug("Fake PTY forked pid=%d master=%d", self.pid, master_fd)
        return ParentSide(master_fd=master_fd, pid=self.pid)

    def replace_process_image(
        self, path: str, argv: Sequence[str], env: Mapping[str, str] | None
    ) -> None:
        self.exec_calls.append((path, list(argv), dict(env) if env is not None else None))
        self._last_error = self.exec_errno
        raise OSError(self.exec_errno, os.strerror(self.exec_errno))

    def get_window_size(self, fd: int) -> WindowSize:
        return self.sizes.get(fd, WindowSize())

    def set_window_size(self, fd: int, size: WindowSize) -> None:
        self.sizes[fd] = size

    def wait_for_child(self, pid: int, block: bool = True) -> ChildOutcome:
        self.wait_calls.append(block)
        if self._reaped or pid != self.pid:
            self._last_error = errno.ECHILD
            return ChildOutcome.unknown()
        while self._outcomes:
            outcome = self._outcomes.popleft()
            if outcome.terminated:
                self._reaped = True
                return outcome
            if not block:
                return outcome
        if not block:
            return ChildOutcome.running()
        self._reaped = True
        return self._final

    def last_error(self) -> int:
        return self._last_error

    # Test helper methods

    def script_outcomes(self, *outcomes: ChildOutcome, final: ChildOutcome | None = None) -> None:
        """Test helper: queue the states reported by successive waits."""
        self._outcomes.extend(outcomes)
        if final is not None:
            self._final = final

    def inject_output(self, data: bytes) -> None:
        """Test helper: make ``data`` readable on the master."""
        if self._write_fd is None:
            raise RuntimeError("Fake PTY not forked")
        os.write(self._write_fd, data)

    def hang_up(self) -> None:
        """Test helper: close the child side so the master reads EOF."""
        if self._write_fd is not None:
            os.close(self._write_fd)
            self._write_fd = None
