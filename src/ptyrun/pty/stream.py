"""Byte streams over a PTY master descriptor."""

from __future__ import annotations

import errno
import io
import logging
import os
import selectors
import threading
from collections.abc import Iterator

from ptyrun.errors import PtyClosedError

logger = logging.getLogger(__name__)

# Reading a master whose slave side is gone fails with EIO on Linux
# instead of returning b"".
_HANGUP_ERRNOS = frozenset({errno.EIO})


class MasterHandle:
    """Owns a PTY master descriptor for one session.

    Blocking reads and writes wait in a selector on the master together
    with a private wake pipe. ``close()`` writes to the pipe before it
    releases the master, so every waiter returns promptly. No lock is ever
    held around the descriptor itself.

    The master is switched to non-blocking mode; the selectors are the only
    place a stream call blocks. Reading and writing each get their own
    selector so one reader and one writer can wait at the same time.
    """

    def __init__(self, fd: int) -> None:
        self._fd = fd
        os.set_blocking(fd, False)
        self._wake_r, self._wake_w = os.pipe()
        os.set_blocking(self._wake_w, False)
        self._closed = False
        self._close_lock = threading.Lock()

        self._read_selector = selectors.DefaultSelector()
        self._read_selector.register(fd, selectors.EVENT_READ)
        self._read_selector.register(self._wake_r, selectors.EVENT_READ)
        self._write_selector = selectors.DefaultSelector()
        self._write_selector.register(fd, selectors.EVENT_WRITE)
        self._write_selector.register(self._wake_r, selectors.EVENT_READ)

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        if self._closed:
            raise PtyClosedError("PTY master is closed")
        return self._fd

    def _wait_ready(self, for_write: bool) -> bool:
        """Block until the master is ready. False means close() woke us."""
        selector = self._write_selector if for_write else self._read_selector
        try:
            ready = selector.select()
        except (OSError, ValueError):
            if self._closed:
                return False
            raise
        # The wake byte is never drained, so a closed handle stays readable.
        woken = any(key.fd == self._wake_r for key, _ in ready)
        return not (self._closed or woken)

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; b"" at end-of-stream or on close."""
        if self._closed:
            raise PtyClosedError("Cannot read from a closed PTY")
        while True:
            if not self._wait_ready(for_write=False):
                return b""
            try:
                return os.read(self._fd, size)
            except BlockingIOError:
                continue
            except OSError as e:
                if self._closed or e.errno in _HANGUP_ERRNOS:
                    logger.debug("PTY master fd=%d reached end-of-stream: %s", self._fd, e)
                    return b""
                raise

    def write(self, data: bytes | memoryview) -> int:
        """Write all of ``data``, blocking until the OS has accepted it."""
        if self._closed:
            raise PtyClosedError("Cannot write to a closed PTY")
        view = memoryview(data).cast("B")
        total = len(view)
        while view:
            if not self._wait_ready(for_write=True):
                raise PtyClosedError("PTY closed during write")
            try:
                written = os.write(self._fd, view)
            except BlockingIOError:
                continue
            except OSError as e:
                if self._closed:
                    raise PtyClosedError("PTY closed during write") from e
                raise
            view = view[written:]
        return total

    def close(self) -> bool:
        """Release the master. Returns False if it was already released."""
        with self._close_lock:
            if self._closed:
                return False
            self._closed = True
        os.write(self._wake_w, b"\0")
        os.close(self._fd)
        return True

    def __del__(self) -> None:
        """Release every descriptor on garbage collection."""
        if not hasattr(self, "_write_selector"):
            return
        try:
            self.close()
        finally:
            self._read_selector.close()
            self._write_selector.close()
            os.close(self._wake_r)
            os.close(self._wake_w)


class PtyReader(io.RawIOBase):
    """Child output: what the terminal-attached program writes."""

    def __init__(self, handle: MasterHandle, chunk_size: int = 4096) -> None:
        super().__init__()
        self._handle = handle
        self._chunk_size = chunk_size

    def readable(self) -> bool:
        return True

    def fileno(self) -> int:
        return self._handle.fileno()

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        data = self._handle.read(len(view))
        view[: len(data)] = data
        return len(data)

    def chunks(self, size: int | None = None) -> Iterator[bytes]:
        """Yield output as it arrives until end-of-stream.

        Iteration also ends, without raising, once the session is closed,
        whether the close lands during a read or between two of them.
        """
        size = size or self._chunk_size
        while True:
            try:
                data = self._handle.read(size)
            except PtyClosedError:
                return
            if not data:
                return
            yield data


class PtyWriter(io.RawIOBase):
    """Child input: bytes delivered as if typed on the keyboard."""

    def __init__(self, handle: MasterHandle) -> None:
        super().__init__()
        self._handle = handle

    def writable(self) -> bool:
        return True

    def fileno(self) -> int:
        return self._handle.fileno()

    def write(self, data) -> int:
        return self._handle.write(data)
