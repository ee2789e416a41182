"""Terminal value types exchanged with the platform bridge."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

_USHRT_MAX = 0xFFFF


class WindowSize(BaseModel):
    """Terminal dimensions as carried by ``struct winsize``."""

    model_config = ConfigDict(frozen=True)

    rows: int = Field(default=0, ge=0, le=_USHRT_MAX)
    cols: int = Field(default=0, ge=0, le=_USHRT_MAX)
    xpixel: int = Field(default=0, ge=0, le=_USHRT_MAX)
    ypixel: int = Field(default=0, ge=0, le=_USHRT_MAX)


class TerminalSettings(BaseModel):
    """Initial termios attributes applied to the slave before the fork.

    Field order mirrors the list used by ``termios.tcgetattr`` and
    ``termios.tcsetattr``. Control characters are kept as integers; the
    bridge converts them back when applying.
    """

    model_config = ConfigDict(frozen=True)

    iflag: int = Field(ge=0)
    oflag: int = Field(ge=0)
    cflag: int = Field(ge=0)
    lflag: int = Field(ge=0)
    ispeed: int = Field(ge=0)
    ospeed: int = Field(ge=0)
    cc: tuple[int, ...] = ()

    @classmethod
    def from_fd(cls, fd: int) -> TerminalSettings:
        """Capture the attributes of an open terminal, e.g. the host's stdin."""
        import termios

        iflag, oflag, cflag, lflag, ispeed, ospeed, cc = termios.tcgetattr(fd)
        return cls(
            iflag=iflag,
            oflag=oflag,
            cflag=cflag,
            lflag=lflag,
            ispeed=ispeed,
            ospeed=ospeed,
            cc=tuple(c[0] if isinstance(c, bytes) else c for c in cc),
        )

    def with_echo(self, enabled: bool) -> TerminalSettings:
        """Return a copy with local echo switched on or off."""
        import termios

        if enabled:
            lflag = self.lflag | termios.ECHO
        else:
            lflag = self.lflag & ~termios.ECHO
        return self.model_copy(update={"lflag": lflag})

    def to_attr_list(self) -> list:
        """Render in the shape ``termios.tcsetattr`` expects."""
        return [
            self.iflag,
            self.oflag,
            self.cflag,
            self.lflag,
            self.ispeed,
            self.ospeed,
            list(self.cc),
        ]
