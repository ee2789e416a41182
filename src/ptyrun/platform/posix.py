"""POSIX platform bridges — openpty/fork/exec, winsize ioctls, waitpid.

One adapter class per operating system family. They share everything
except how the child turns the slave into its controlling terminal:

* Linux and the BSD family (macOS included) issue ``TIOCSCTTY``.
* SunOS/illumos pushes the STREAMS terminal modules onto the slave and
  acquires the controlling terminal by reopening the slave device.
"""

from __future__ import annotations

import fcntl
import logging
import os
import struct
import termios
import threading
from collections.abc import Mapping, Sequence

from ptyrun.model import ChildOutcome, TerminalSettings, WindowSize
from ptyrun.platform.protocol import ChildSide, ForkResult, ParentSide

logger = logging.getLogger(__name__)

STDIN_FILENO = 0
STDOUT_FILENO = 1
STDERR_FILENO = 2

# struct winsize: ws_row, ws_col, ws_xpixel, ws_ypixel
_WINSIZE_FORMAT = "HHHH"


def decode_status(status: int) -> ChildOutcome:
    """Decode a raw ``waitpid`` status word into a ChildOutcome."""
    if os.WIFEXITED(status):
        return ChildOutcome.exited(os.WEXITSTATUS(status))
    if os.WIFSIGNALED(status):
        return ChildOutcome.signaled(os.WTERMSIG(status))
    if os.WIFSTOPPED(status) or os.WIFCONTINUED(status):
        return ChildOutcome.running()
    return ChildOutcome.unknown()


def _errno_of(exc: BaseException) -> int:
    if isinstance(exc, OSError):
        return exc.errno or 0
    # termios.error carries (errno, message) in args
    if exc.args and isinstance(exc.args[0], int):
        return exc.args[0]
    return 0


class PosixBridge:
    """Shared POSIX implementation of the PlatformBridge protocol."""

    name = "posix"

    def __init__(self) -> None:
        self._errors = threading.local()

    # -- errors ------------------------------------------------------------

    def last_error(self) -> int:
        return getattr(self._errors, "errno", 0)

    def _record(self, exc: BaseException) -> int:
        code = _errno_of(exc)
        self._errors.errno = code
        return code

    # -- fork --------------------------------------------------------------

    def open_pty_and_fork(
        self,
        settings: TerminalSettings | None = None,
        window_size: WindowSize | None = None,
    ) -> ForkResult:
        """Allocate a PTY pair, configure the slave, and fork.

        ``os.openpty`` grants and unlocks the slave and creates both
        descriptors non-inheritable, so no other child process can keep
        this master alive past its own exec.
        """
        try:
            master_fd, slave_fd = os.openpty()
        except OSError as e:
            self._record(e)
            raise

        try:
            if settings is not None:
                termios.tcsetattr(slave_fd, termios.TCSANOW, settings.to_attr_list())
            if window_size is not None:
                self.set_window_size(slave_fd, window_size)
            self.prepare_slave(slave_fd)
            pid = os.fork()
        except (OSError, termios.error) as e:
            code = self._record(e)
            os.close(master_fd)
            os.close(slave_fd)
            raise OSError(code, os.strerror(code) if code else str(e)) from e

        if pid == 0:
            try:
                self._attach_child(master_fd, slave_fd)
            except BaseException as e:  # nothing may escape into caller code
                return ChildSide(setup_errno=self._record(e) or -1)
            return ChildSide()

        os.close(slave_fd)
        return ParentSide(master_fd=master_fd, pid=pid)

    def _attach_child(self, master_fd: int, slave_fd: int) -> None:
        os.close(master_fd)
        os.setsid()
        self.acquire_controlling_terminal(slave_fd)
        os.dup2(slave_fd, STDIN_FILENO)
        os.dup2(slave_fd, STDOUT_FILENO)
        os.dup2(slave_fd, STDERR_FILENO)
        if slave_fd > STDERR_FILENO:
            os.close(slave_fd)

    def prepare_slave(self, slave_fd: int) -> None:
        """Hook run in the parent on the fresh slave, before the fork."""

    def acquire_controlling_terminal(self, slave_fd: int) -> None:
        """Make ``slave_fd`` the controlling terminal of the new session."""
        fcntl.ioctl(slave_fd, termios.TIOCSCTTY, 0)

    # -- exec --------------------------------------------------------------

    def replace_process_image(
        self, path: str, argv: Sequence[str], env: Mapping[str, str] | None
    ) -> None:
        try:
            if env is None:
                os.execvp(path, list(argv))
            else:
                os.execvpe(path, list(argv), dict(env))
        except OSError as e:
            self._record(e)
            raise

    # -- window size -------------------------------------------------------

    def get_window_size(self, fd: int) -> WindowSize:
        try:
            packed = fcntl.ioctl(
                fd, termios.TIOCGWINSZ, struct.pack(_WINSIZE_FORMAT, 0, 0, 0, 0)
            )
        except OSError as e:
            self._record(e)
            raise
        rows, cols, xpixel, ypixel = struct.unpack(_WINSIZE_FORMAT, packed)
        return WindowSize(rows=rows, cols=cols, xpixel=xpixel, ypixel=ypixel)

    def set_window_size(self, fd: int, size: WindowSize) -> None:
        packed = struct.pack(
            _WINSIZE_FORMAT, size.rows, size.cols, size.xpixel, size.ypixel
        )
        try:
            fcntl.ioctl(fd, termios.TIOCSWINSZ, packed)
        except OSError as e:
            self._record(e)
            raise

    # -- wait --------------------------------------------------------------

    def wait_for_child(self, pid: int, block: bool = True) -> ChildOutcome:
        """Wait for ``pid`` to change state.

        Returns RUNNING from a non-blocking check of a live child and
        UNKNOWN when the pid was already reaped or is not our child.
        """
        options = 0 if block else os.WNOHANG
        try:
            waited, status = os.waitpid(pid, options)
        except ChildProcessError as e:
            self._record(e)
            return ChildOutcome.unknown()
        except OSError as e:
            self._record(e)
            raise
        if waited == 0:
            return ChildOutcome.running()
        return decode_status(status)


class LinuxBridge(PosixBridge):
    name = "linux"


class BsdBridge(PosixBridge):
    """macOS, FreeBSD, OpenBSD and NetBSD."""

    name = "bsd"


class SunOSBridge(PosixBridge):
    name = "sunos"

    STREAMS_MODULES = ("ptem", "ldterm", "ttcompat")

    def prepare_slave(self, slave_fd: int) -> None:
        push = getattr(fcntl, "I_PUSH", None)
        if push is None:
            return
        for module in self.STREAMS_MODULES:
            try:
                fcntl.ioctl(slave_fd, push, module.encode() + b"\0")
            except OSError as e:
                # Already pushed by the kernel on newer illumos releases.
                logger.debug("Could not push %s onto slave: %s", module, e)

    def acquire_controlling_terminal(self, slave_fd: int) -> None:
        # A session leader without a terminal acquires the first one it opens.
        tmp_fd = os.open(os.ttyname(slave_fd), os.O_RDWR)
        os.close(tmp_fd)
