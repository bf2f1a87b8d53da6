"""PC keyboard scan code decoding."""

from __future__ import annotations

NO = 0

SHIFT = 1 << 0
CTL = 1 << 1
ALT = 1 << 2
CAPSLOCK = 1 << 3
NUMLOCK = 1 << 4
SCROLLLOCK = 1 << 5
E0ESC = 1 << 6

KEY_HOME = 0xE0
KEY_END = 0xE1
KEY_UP = 0xE2
KEY_DN = 0xE3
KEY_LF = 0xE4
KEY_RT = 0xE5
KEY_PGUP = 0xE6
KEY_PGDN = 0xE7
KEY_INS = 0xE8
KEY_DEL = 0xE9


def ctrl(ch: str) -> int:
    """Character code produced by Control and ``ch``."""
    return ord(ch) - ord("@")


def _table(base: str | list[int], extra: dict[int, int]) -> tuple[int, ...]:
    codes = [ord(c) for c in base] if isinstance(base, str) else [c & 0xFF for c in base]
    codes.extend([NO] * (256 - len(codes)))
    for code, value in extra.items():
        codes[code] = value & 0xFF
    return tuple(codes)


_SPECIAL = {
    0xC8: KEY_UP,
    0xD0: KEY_DN,
    0xC9: KEY_PGUP,
    0xD1: KEY_PGDN,
    0xCB: KEY_LF,
    0xCD: KEY_RT,
    0x97: KEY_HOME,
    0xCF: KEY_END,
    0xD2: KEY_INS,
    0xD3: KEY_DEL,
}

SHIFTCODE = _table([], {0x1D: CTL, 0x2A: SHIFT, 0x36: SHIFT, 0x38: ALT, 0x9D: CTL, 0xB8: ALT})
TOGGLECODE = _table([], {0x3A: CAPSLOCK, 0x45: NUMLOCK, 0x46: SCROLLLOCK})

NORMALMAP = _table(
    "\x00\x1b1234567890-=\b\t"
    "qwertyuiop[]\n\x00as"
    "dfghjkl;'`\x00\\zxcv"
    "bnm,./\x00*\x00 \x00\x00\x00\x00\x00\x00"
    "\x00\x00\x00\x00\x00\x00\x00789-456+1"
    "230.",
    {0x9C: ord("\n"), 0xB5: ord("/"), **_SPECIAL},
)

SHIFTMAP = _table(
    "\x00\x1b!@#$%^&*()_+\b\t"
    "QWERTYUIOP{}\n\x00AS"
    'DFGHJKL:"~\x00|ZXCV'
    "BNM<>?\x00*\x00 \x00\x00\x00\x00\x00\x00"
    "\x00\x00\x00\x00\x00\x00\x00789-456+1"
    "230.",
    {0x9C: ord("\n"), 0xB5: ord("/"), **_SPECIAL},
)

CTLMAP = _table(
    [NO] * 16
    + [ctrl(c) for c in "QWERTYUI"]
    + [ctrl("O"), ctrl("P"), NO, NO, ord("\r"), NO, ctrl("A"), ctrl("S")]
    + [ctrl(c) for c in "DFGHJKL"] + [NO]
    + [NO, NO, NO, ctrl("\\")] + [ctrl(c) for c in "ZXCV"]
    + [ctrl("B"), ctrl("N"), ctrl("M"), NO, NO, ctrl("/"), NO, NO],
    {0x9C: ord("\r"), 0xB5: ctrl("/"), **_SPECIAL},
)

_CHARCODE = (NORMALMAP, SHIFTMAP, CTLMAP, CTLMAP)


class KeyboardDecoder:
    """Turns a stream of scan codes into character codes, tracking modifiers."""

    def __init__(self) -> None:
        self.shift = 0

    def feed(self, scancode: int) -> int:
        """Decode one scan code; returns 0 when no character results."""
        data = scancode & 0xFF
        if data == 0xE0:
            self.shift |= E0ESC
            return 0
        if data & 0x80:
            # Key released.
            if not self.shift & E0ESC:
                data &= 0x7F
            self.shift &= ~(SHIFTCODE[data] | E0ESC)
            return 0
        if self.shift & E0ESC:
            data |= 0x80
            self.shift &= ~E0ESC

        self.shift |= SHIFTCODE[data]
        self.shift ^= TOGGLECODE[data]
        c = _CHARCODE[self.shift & (CTL | SHIFT)][data]
        if self.shift & CAPSLOCK:
            if ord("a") <= c <= ord("z"):
                c += ord("A") - ord("a")
            elif ord("A") <= c <= ord("Z"):
                c += ord("a") - ord("A")
        return c