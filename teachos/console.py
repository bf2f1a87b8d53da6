"""Console formatting and the line-edited keyboard input buffer."""

from __future__ import annotations

import threading
from collections.abc import Iterable

from .kbd import ctrl
from .layout import KernelPanic

INPUT_BUF = 128
BACKSPACE = 0x100

_DIGITS = "0123456789abcdef"
_BACKSPACE_ECHO = "\b \b"
_NEWLINE = ord("\n")


def format_int(value: int, base: int, signed: bool) -> str:
    """Render a 32-bit integer in ``base``; unsigned values wrap modulo 2**32."""
    negative = signed and value < 0
    x = -value if negative else value & 0xFFFFFFFF
    digits = []
    while True:
        digits.append(_DIGITS[x % base])
        x //= base
        if x == 0:
            break
    if negative:
        digits.append("-")
    return "".join(reversed(digits))


def _as_int32(value: int) -> int:
    return ((value & 0xFFFFFFFF) ^ 0x80000000) - 0x80000000


def cprintf(fmt: str, *args) -> str:
    """Format text understanding only %d, %x, %p, %s and %%."""
    if fmt is None:
        raise KernelPanic("null fmt")
    out = []
    values = iter(args)
    chars = iter(fmt)
    for c in chars:
        if c != "%":
            out.append(c)
            continue
        c = next(chars, None)
        if c is None:
            break
        if c == "d":
            out.append(format_int(_as_int32(next(values)), 10, True))
        elif c in "xp":
            out.append(format_int(next(values), 16, False))
        elif c == "s":
            s = next(values)
            out.append("(null)" if s is None else str(s))
        elif c == "%":
            out.append("%")
        else:
            # Print unknown % sequence to draw attention.
            out.append("%" + c)
    return "".join(out)


class ConsoleInput:
    """Circular input buffer with line editing, filled by keyboard interrupts."""

    def __init__(self) -> None:
        self._buf = [0] * INPUT_BUF
        self._r = 0  # read index
        self._w = 0  # write index
        self._e = 0  # edit index
        self._cond = threading.Condition()
        self._killed = False
        self.dump_requested = False

    def interrupt(self, chars: str | Iterable[int]) -> str:
        """Feed typed characters; returns what is echoed to the screen."""
        codes = (ord(c) for c in chars) if isinstance(chars, str) else chars
        echo = []
        with self._cond:
            for c in codes:
                if c < 0:
                    break
                if c == ctrl("P"):
                    self.dump_requested = True
                elif c == ctrl("U"):
                    while (
                        self._e != self._w
                        and self._buf[(self._e - 1) % INPUT_BUF] != _NEWLINE
                    ):
                        self._e -= 1
                        echo.append(_BACKSPACE_ECHO)
                elif c in (ctrl("H"), 0x7F):
                    if self._e != self._w:
                        self._e -= 1
                        echo.append(_BACKSPACE_ECHO)
                elif c != 0 and self._e - self._r < INPUT_BUF:
                    if c == ord("\r"):
                        c = _NEWLINE
                    self._buf[self._e % INPUT_BUF] = c
                    self._e += 1
                    echo.append(chr(c))
                    if c in (_NEWLINE, ctrl("D")) or self._e == self._r + INPUT_BUF:
                        self._w = self._e
                        self._cond.notify_all()
        return "".join(echo)

    def cancel(self) -> None:
        """Make waiting and future blocked reads fail."""
        with self._cond:
            self._killed = True
            self._cond.notify_all()

    def read(self, n: int) -> str:
        """Read up to ``n`` characters, stopping after a newline or at Control-D."""
        target = n
        out = []
        with self._cond:
            while n > 0:
                while self._r == self._w:
                    if self._killed:
                        raise InterruptedError("console read interrupted")
                    self._cond.wait()
                c = self._buf[self._r % INPUT_BUF]
                self._r += 1
                if c == ctrl("D"):
                    if n < target:
                        # Keep ^D so the next read returns nothing.
                        self._r -= 1
                    break
                out.append(chr(c))
                n -= 1
                if c == _NEWLINE:
                    break
        return "".join(out)