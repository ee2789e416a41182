"""Value types shared by sessions and platform bridges."""

from ptyrun.model.outcome import ABNORMAL_EXIT, ChildOutcome, OutcomeKind
from ptyrun.model.terminal import TerminalSettings, WindowSize

__all__ = [
    "ABNORMAL_EXIT",
    "ChildOutcome",
    "OutcomeKind",
    "TerminalSettings",
    "WindowSize",
]
