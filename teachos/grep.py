"""Line filter using a small regular expression matcher (^ . * $ only)."""

from __future__ import annotations

import sys
from collections.abc import Iterable
from typing import TextIO


def match(re: str, text: str) -> bool:
    """Whether ``re`` matches anywhere in ``text``."""
    if re.startswith("^"):
        return _matchhere(re[1:], text)
    # The empty tail must be tried as well.
    return any(_matchhere(re, text[start:]) for start in range(len(text) + 1))


def _matchhere(re: str, text: str) -> bool:
    """Whether ``re`` matches at the beginning of ``text``."""
    if not re:
        return True
    if len(re) >= 2 and re[1] == "*":
        return _matchstar(re[0], re[2:], text)
    if re == "$":
        return text == ""
    if text and re[0] in (".", text[0]):
        return _matchhere(re[1:], text[1:])
    return False


def _matchstar(c: str, re: str, text: str) -> bool:
    """Whether ``c*`` followed by ``re`` matches at the beginning of ``text``."""
    while True:
        if _matchhere(re, text):
            return True
        if text and (text[0] == c or c == "."):
            text = text[1:]
        else:
            return False


def grep(pattern: str, stream: Iterable[str], out: TextIO) -> int:
    """Copy the newline-terminated lines of ``stream`` that match to ``out``.

    A final line without a newline is not considered. Returns the number of
    lines written.
    """
    written = 0
    for line in stream:
        if line.endswith("\n") and match(pattern, line[:-1]):
            out.write(line)
            written += 1
    return written


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("usage: grep pattern [file ...]", file=sys.stderr)
        return 1
    pattern, *paths = args
    if not paths:
        grep(pattern, sys.stdin, sys.stdout)
        return 0
    for path in paths:
        try:
            fh = open(path, encoding="utf-8", errors="replace", newline="")
        except OSError:
            print(f"grep: cannot open {path}")
            return 1
        with fh:
            grep(pattern, fh, sys.stdout)
    return 0