"""Tests for ptyrun.platform (bridge selection, POSIX adapter primitives)."""

from __future__ import annotations

import errno
import os
import signal
import sys
import threading

import pytest

from ptyrun.errors import UnsupportedPlatformError
from ptyrun.model import OutcomeKind, WindowSize
from ptyrun.platform import PlatformBridge, default_bridge, select_bridge
from ptyrun.platform.fake import FakeBridge

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX bridge")


# ---------------------------------------------------------------------------
# select_bridge / default_bridge
# ---------------------------------------------------------------------------


@posix_only
class TestSelectBridge:
    def test_linux(self) -> None:
        from ptyrun.platform.posix import LinuxBridge

        assert isinstance(select_bridge("linux"), LinuxBridge)

    @pytest.mark.parametrize("name", ["darwin", "freebsd13", "openbsd7", "netbsd"])
    def test_bsd_family(self, name: str) -> None:
        from ptyrun.platform.posix import BsdBridge

        assert isinstance(select_bridge(name), BsdBridge)

    def test_sunos(self) -> None:
        from ptyrun.platform.posix import SunOSBridge

        assert isinstance(select_bridge("sunos5"), SunOSBridge)

    def test_adapters_satisfy_protocol(self) -> None:
        assert isinstance(select_bridge("linux"), PlatformBridge)
        assert isinstance(FakeBridge(), PlatformBridge)

    def test_default_is_selected_once(self) -> None:
        assert default_bridge() is default_bridge()


class TestUnsupportedPlatform:
    @pytest.mark.parametrize("name", ["win32", "cygwin", "emscripten", "wasi"])
    def test_raises(self, name: str) -> None:
        with pytest.raises(UnsupportedPlatformError, match=name):
            select_bridge(name)

    def test_is_not_recoverable_pty_error(self) -> None:
        from ptyrun.errors import PtyError

        assert not issubclass(UnsupportedPlatformError, PtyError)


# ---------------------------------------------------------------------------
# decode_status
# ---------------------------------------------------------------------------


@pytest.mark.skipif(
    not sys.platform.startswith(("linux", "darwin")),
    reason="status word layout checked for Linux/macOS",
)
class TestDecodeStatus:
    def test_exited(self) -> None:
        from ptyrun.platform.posix import decode_status

        outcome = decode_status(3 << 8)
        assert outcome.kind is OutcomeKind.EXITED
        assert outcome.exit_code == 3

    def test_exit_zero(self) -> None:
        from ptyrun.platform.posix import decode_status

        assert decode_status(0).exit_code == 0

    def test_signaled(self) -> None:
        from ptyrun.platform.posix import decode_status

        outcome = decode_status(signal.SIGKILL)
        assert outcome.kind is OutcomeKind.SIGNALED
        assert outcome.signal == signal.SIGKILL

    def test_stopped_counts_as_running(self) -> None:
        from ptyrun.platform.posix import decode_status

        outcome = decode_status((signal.SIGSTOP << 8) | 0x7F)
        assert outcome.kind is OutcomeKind.RUNNING


# ---------------------------------------------------------------------------
# PosixBridge primitives on a bare PTY pair
# ---------------------------------------------------------------------------


@posix_only
class TestPosixPrimitives:
    @pytest.fixture
    def pair(self):
        master_fd, slave_fd = os.openpty()
        yield master_fd, slave_fd
        os.close(slave_fd)
        os.close(master_fd)

    def test_window_size_round_trip(self, pair) -> None:
        master_fd, _ = pair
        bridge = select_bridge()
        size = WindowSize(rows=30, cols=120, xpixel=640, ypixel=480)
        bridge.set_window_size(master_fd, size)
        assert bridge.get_window_size(master_fd) == size

    def test_master_and_slave_share_size(self, pair) -> None:
        master_fd, slave_fd = pair
        bridge = select_bridge()
        bridge.set_window_size(slave_fd, WindowSize(rows=50, cols=160))
        got = bridge.get_window_size(master_fd)
        assert (got.rows, got.cols) == (50, 160)

    def test_window_size_on_bad_fd_records_errno(self) -> None:
        bridge = select_bridge()
        read_fd, write_fd = os.pipe()
        try:
            with pytest.raises(OSError):
                bridge.get_window_size(read_fd)
            assert bridge.last_error() == errno.ENOTTY
        finally:
            os.close(read_fd)
            os.close(write_fd)

    def test_wait_for_unknown_pid(self) -> None:
        bridge = select_bridge()
        outcome = bridge.wait_for_child(os.getpid(), block=False)
        assert outcome.kind is OutcomeKind.UNKNOWN
        assert bridge.last_error() == errno.ECHILD

    def test_last_error_is_per_thread(self) -> None:
        bridge = select_bridge()
        bridge.wait_for_child(os.getpid(), block=False)
        seen: list[int] = []
        t = threading.Thread(target=lambda: seen.append(bridge.last_error()))
        t.start()
        t.join()
        assert seen == [0]
        assert bridge.last_error() == errno.ECHILD

    def test_exec_failure_raises(self) -> None:
        bridge = select_bridge()
        with pytest.raises(OSError):
            bridge.replace_process_image(
                "/nonexistent/ptyrun-missing", ["/nonexistent/ptyrun-missing"], None
            )
        assert bridge.last_error() == errno.ENOENT
