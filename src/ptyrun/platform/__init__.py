"""Platform bridges — per-OS syscall adapters behind one protocol.

Exactly one adapter is used per process. ``default_bridge()`` picks it on
first use from ``sys.platform`` and keeps it; callers that want a
different one (tests, mostly) pass a bridge to ``launch()`` explicitly.
"""

from __future__ import annotations

import logging
import sys
import threading

from ptyrun.errors import UnsupportedPlatformError
from ptyrun.platform.protocol import ChildSide, ForkResult, ParentSide, PlatformBridge

logger = logging.getLogger(__name__)

__all__ = [
    "ChildSide",
    "ForkResult",
    "ParentSide",
    "PlatformBridge",
    "default_bridge",
    "select_bridge",
]

_LINUX = ("linux",)
_BSD = ("darwin", "freebsd", "openbsd", "netbsd", "dragonfly")
_SUNOS = ("sunos", "solaris", "illumos")


def select_bridge(platform_name: str | None = None) -> PlatformBridge:
    """Create the adapter for ``platform_name`` (defaults to ``sys.platform``).

    Raises:
        UnsupportedPlatformError: If no adapter exists for the platform.
    """
    name = (platform_name or sys.platform).lower()

    if name.startswith(_LINUX):
        from ptyrun.platform.posix import LinuxBridge

        return LinuxBridge()
    if name.startswith(_BSD):
        from ptyrun.platform.posix import BsdBridge

        return BsdBridge()
    if name.startswith(_SUNOS):
        from ptyrun.platform.posix import SunOSBridge

        return SunOSBridge()

    raise UnsupportedPlatformError(f"ptyrun has no PTY support for OS {name!r}")


_bridge: PlatformBridge | None = None
_bridge_lock = threading.Lock()


def default_bridge() -> PlatformBridge:
    """Get the process-wide bridge, selecting it on first use."""
    global _bridge
    with _bridge_lock:
        if _bridge is None:
            _bridge = select_bridge()
            logger.debug("Selected %s platform bridge", _bridge.name)
        return _bridge
