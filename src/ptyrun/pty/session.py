"""PTY session — one child process attached to a pseudoterminal."""

from __future__ import annotations

import contextlib
import logging
import os
import signal
import threading
from collections.abc import Mapping, Sequence
from typing import NoReturn

from ptyrun.config import PtyrunConfig, get_config
from ptyrun.errors import PtyClosedError, PtyInvariantError, PtyInvocationError, PtyOpenError
from ptyrun.model import ChildOutcome, OutcomeKind, TerminalSettings, WindowSize
from ptyrun.platform import ChildSide, PlatformBridge, default_bridge
from ptyrun.pty.stream import MasterHandle, PtyReader, PtyWriter

logger = logging.getLogger(__name__)

_STDERR_FILENO = 2


def build_argv(command: str, args: Sequence[str] | None = None) -> list[str]:
    """Craft the argv handed to exec.

    ``args`` may already start with ``command`` (a full argv); otherwise
    ``command`` is prepended as argv[0].
    """
    if not args:
        return [command]
    if args[0] == command:
        return list(args)
    return [command, *args]


def _abort_child(command: str, error: int) -> NoReturn:
    """Kill a forked child whose exec failed.

    Runs between fork and exec, so it only touches raw descriptors. The
    child dies from SIGKILL, which the parent reports as an abnormal exit.
    """
    reason = os.strerror(error) if error > 0 else "unknown error"
    message = f"ptyrun: cannot execute {command!r}: {reason} (errno {error})\r\n"
    with contextlib.suppress(OSError):
        os.write(_STDERR_FILENO, message.encode("utf-8", errors="replace"))
    os.kill(os.getpid(), signal.SIGKILL)
    os._exit(127)


def _run_child(
    bridge: PlatformBridge,
    child: ChildSide,
    command: str,
    argv: list[str],
    env: dict[str, str] | None,
) -> NoReturn:
    if child.setup_errno:
        _abort_child(command, child.setup_errno)
    error = 0
    try:
        bridge.replace_process_image(command, argv, env)
    except BaseException:  # the child must never unwind into caller code
        error = bridge.last_error()
    _abort_child(command, error)


class PtySession:
    """A child process running on the slave side of a PTY.

    Created by ``launch()``. The session exclusively owns the master
    descriptor and the child pid:

    - ``stdout`` reads what the child writes to its terminal.
    - ``stdin`` delivers bytes to the child as keyboard input.
    - ``close()`` releases the master. A child that is still running gets
      a hangup (SIGHUP) from the kernel and, unless it handles it, dies.
      Any thread blocked on either stream is released.
    - ``wait_for()`` reaps the child and returns its exit code, or -1 for
      any abnormal termination.

    The session starts no threads; callers dedicate their own threads to
    reading, writing and waiting. ``close()`` is the only way to cancel a
    blocked call.
    """

    def __init__(
        self,
        master_fd: int,
        pid: int,
        argv: list[str],
        bridge: PlatformBridge,
        config: PtyrunConfig,
    ) -> None:
        self._handle = MasterHandle(master_fd)
        self._pid = pid
        self._argv = argv
        self._bridge = bridge
        self._config = config
        self._outcome: ChildOutcome | None = None
        self._outcome_lock = threading.Lock()
        self._recorded = threading.Event()

        self.stdout = PtyReader(self._handle, config.read_chunk_size)
        self.stdin = PtyWriter(self._handle)

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def argv(self) -> list[str]:
        return list(self._argv)

    @property
    def closed(self) -> bool:
        return self._handle.closed

    @property
    def outcome(self) -> ChildOutcome | None:
        """The recorded child outcome, or None while it has not been reaped."""
        return self._outcome

    def fileno(self) -> int:
        """The master descriptor (non-blocking). Raises after close()."""
        return self._handle.fileno()

    # -- child state -------------------------------------------------------

    def _record(self, outcome: ChildOutcome) -> ChildOutcome:
        with self._outcome_lock:
            if self._outcome is None:
                self._outcome = outcome
                self._recorded.set()
                if outcome.kind is OutcomeKind.EXITED:
                    logger.info("PTY child %d exited (code=%d)", self._pid, outcome.value)
                elif outcome.kind is OutcomeKind.SIGNALED:
                    logger.info("PTY child %d killed by signal %d", self._pid, outcome.value)
            return self._outcome

    def is_child_alive(self) -> bool:
        """Check on the child without blocking."""
        if self._outcome is not None:
            return False
        outcome = self._bridge.wait_for_child(self._pid, block=False)
        if outcome.kind is OutcomeKind.RUNNING:
            return True
        if outcome.kind is not OutcomeKind.UNKNOWN:
            self._record(outcome)
        # UNKNOWN: a concurrent wait_for() has reaped it and records the status.
        return False

    def wait_for(self) -> int:
        """Block until the child terminates and return its exit code.

        Any abnormal termination, including the hangup caused by
        ``close()``, yields -1. The outcome is cached, so repeated calls
        return immediately.
        """
        if self._outcome is None:
            outcome = self._bridge.wait_for_child(self._pid, block=True)
            while outcome.kind is OutcomeKind.RUNNING:
                outcome = self._bridge.wait_for_child(self._pid, block=True)
            if outcome.kind is OutcomeKind.UNKNOWN:
                # Reaped by a concurrent is_child_alive() that may still be recording it.
                if not self._recorded.wait(self._config.reap_grace):
                    logger.warning(
                        "PTY child %d was reaped elsewhere; exit status unknown",
                        self._pid,
                    )
            self._record(outcome)
        return self._outcome.to_exit_code()

    # -- terminal ----------------------------------------------------------

    def get_win_size(self) -> WindowSize:
        try:
            return self._bridge.get_window_size(self._handle.fileno())
        except OSError as e:
            if self._handle.closed:
                raise PtyClosedError("Cannot query the window size of a closed PTY") from e
            raise

    def set_win_size(self, size: WindowSize) -> None:
        try:
            self._bridge.set_window_size(self._handle.fileno(), size)
        except OSError as e:
            if self._handle.closed:
                raise PtyClosedError("Cannot resize a closed PTY") from e
            raise
        logger.debug("PTY child %d resized to %dx%d", self._pid, size.rows, size.cols)

    # -- lifecycle ---------------------------------------------------------

    def close(self) -> None:
        """Release the master descriptor. Safe to call any number of times."""
        if self._handle.close():
            logger.debug(
                "Closed PTY master for child %d (%s)",
                self._pid,
                "running" if self._outcome is None else "terminated",
            )

    def __enter__(self) -> PtySession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<PtySession pid={self._pid} {state} argv={self._argv!r}>"


def launch(
    command: str,
    args: Sequence[str] | None = None,
    env: Mapping[str, str] | None = None,
    settings: TerminalSettings | None = None,
    window_size: WindowSize | None = None,
    *,
    bridge: PlatformBridge | None = None,
    config: PtyrunConfig | None = None,
) -> PtySession:
    """Run ``command`` on the slave side of a new PTY.

    Args:
        command: Program to run; looked up on PATH when it has no slash.
        args: Arguments, with or without ``command`` as argv[0].
        env: Child environment. None inherits the current one.
        settings: Initial termios attributes. None keeps system defaults.
        window_size: Initial window size. None falls back to ``config.window``.
        bridge: Platform bridge. None uses the process-wide default.
        config: Settings. None uses the process-wide configuration.

    Returns:
        The running session.

    Raises:
        PtyInvocationError: If ``command`` is empty.
        PtyOpenError: If the PTY could not be allocated or the fork failed.
    """
    if not isinstance(command, str) or not command:
        raise PtyInvocationError("Invalid command line: command must be a non-empty string")

    bridge = bridge or default_bridge()
    config = config or get_config()
    argv = build_argv(command, args)
    child_env = dict(env) if env is not None else None
    if window_size is None:
        window_size = config.window

    try:
        forked = bridge.open_pty_and_fork(settings, window_size)
    except OSError as e:
        raise PtyOpenError(e.errno or bridge.last_error(), command) from e

    if isinstance(forked, ChildSide):
        _run_child(bridge, forked, command, argv, child_env)

    if forked.master_fd < 0:
        logger.error(
            "Fork of %r reported success with master fd %d (pid=%d)",
            command,
            forked.master_fd,
            forked.pid,
        )
        raise PtyInvariantError(f"Failed to fork PTY: invalid master fd {forked.master_fd}")

    session = PtySession(forked.master_fd, forked.pid, argv, bridge, config)
    logger.info(
        "PTY session started: pid=%d fd=%d cmd=%s",
        forked.pid,
        forked.master_fd,
        " ".join(argv),
    )
    return session
