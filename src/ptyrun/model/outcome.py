"""ChildOutcome — what became of a child process."""

from __future__ import annotations

import enum
from dataclasses import dataclass

# Public result for any termination that is not a normal exit.
ABNORMAL_EXIT = -1


class OutcomeKind(enum.Enum):
    RUNNING = "running"
    EXITED = "exited"
    SIGNALED = "signaled"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ChildOutcome:
    """Decoded child state.

    ``value`` is the exit code for EXITED and the signal number for
    SIGNALED; it is unused otherwise.
    """

    kind: OutcomeKind
    value: int = 0

    @classmethod
    def running(cls) -> ChildOutcome:
        return cls(OutcomeKind.RUNNING)

    @classmethod
    def exited(cls, code: int) -> ChildOutcome:
        return cls(OutcomeKind.EXITED, code)

    @classmethod
    def signaled(cls, signum: int) -> ChildOutcome:
        return cls(OutcomeKind.SIGNALED, signum)

    @classmethod
    def unknown(cls) -> ChildOutcome:
        return cls(OutcomeKind.UNKNOWN)

    @property
    def terminated(self) -> bool:
        return self.kind is not OutcomeKind.RUNNING

    @property
    def exit_code(self) -> int | None:
        return self.value if self.kind is OutcomeKind.EXITED else None

    @property
    def signal(self) -> int | None:
        return self.value if self.kind is OutcomeKind.SIGNALED else None

    def to_exit_code(self) -> int:
        """Collapse to the integer reported by ``PtySession.wait_for()``."""
        if self.kind is OutcomeKind.EXITED:
            return self.value
        return ABNORMAL_EXIT
