"""PlatformBridge protocol and the tagged result of a PTY fork."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ptyrun.model import ChildOutcome, TerminalSettings, WindowSize


@dataclass(frozen=True)
class ParentSide:
    """Fork result seen by the parent: the master descriptor and child pid."""

    master_fd: int
    pid: int


@dataclass(frozen=True)
class ChildSide:
    """Fork result seen by the child.

    ``setup_errno`` is non-zero when the child could not finish attaching to
    the slave; it must then terminate without running any caller code.
    """

    setup_errno: int = 0


ForkResult = ParentSide | ChildSide


@runtime_checkable
class PlatformBridge(Protocol):
    """Raw per-OS primitives a PTY session needs.

    Every operation works on descriptors and pids, never on sessions.
    Failures raise ``OSError`` and are remembered for ``last_error()``.
    """

    name: str

    def open_pty_and_fork(
        self,
        settings: TerminalSettings | None = None,
        window_size: WindowSize | None = None,
    ) -> ForkResult: ...

    def replace_process_image(
        self, path: str, argv: Sequence[str], env: Mapping[str, str] | None
    ) -> None: ...

    def get_window_size(self, fd: int) -> WindowSize: ...

    def set_window_size(self, fd: int, size: WindowSize) -> None: ...

    def wait_for_child(self, pid: int, block: bool = True) -> ChildOutcome: ...

    def last_error(self) -> int: ...
