"""Small command line tools: cat, echo, first-line cat, tokenizer and greeting."""

from __future__ import annotations

import getopt
import re
import sys
from collections.abc import Iterable
from typing import IO, TextIO

from .layout import DIRSIZ

BUF_SIZE = 128
_CHUNK = 512


def cat(streams: Iterable[IO], out: IO) -> None:
    """Copy each stream to ``out`` in turn."""
    for stream in streams:
        while chunk := stream.read(_CHUNK):
            out.write(chunk)


def echo(args: list[str]) -> str:
    """The arguments joined by spaces and ended by a newline; nothing without arguments."""
    if not args:
        return ""
    return " ".join(args) + "\n"


def fmtname(path: str) -> str:
    """The last element of ``path``, blank-padded to DIRSIZ characters."""
    name = path.rsplit("/", 1)[-1]
    if len(name) >= DIRSIZ:
        return name
    return name.ljust(DIRSIZ)


def first_line(stream: TextIO) -> str:
    """The first line of ``stream``, at most BUF_SIZE - 1 characters, newline-terminated.

    An empty stream gives an empty string.
    """
    line = stream.readline(BUF_SIZE - 1)
    if not line:
        return ""
    return line if line.endswith("\n") else line + "\n"


def tokenize(text: str, delims: str = " \t\n") -> list[str]:
    """The non-empty runs of ``text`` separated by any of the ``delims`` characters."""
    if not delims:
        return [text] if text else []
    pattern = "[" + re.escape(delims) + "]+"
    return [token for token in re.split(pattern, text) if token]


def hello(name: str) -> str:
    """A greeting for ``name``."""
    return f"Hello, {name}!"


def cat_main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    sys.stdout.flush()
    out = sys.stdout.buffer
    if not args:
        cat([sys.stdin.buffer], out)
        out.flush()
        return 0
    for path in args:
        try:
            fh = open(path, "rb")
        except OSError:
            out.write(f"cat: cannot open {path}\n".encode())
            out.flush()
            return 1
        with fh:
            cat([fh], out)
    out.flush()
    return 0


def echo_main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    sys.stdout.write(echo(args))
    return 0


def simple_cat_main(argv: list[str] | None = None) -> int:
    """Repeat the first line of the file given by -f, or of standard input."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        opts, rest = getopt.getopt(args, "f:")
    except getopt.GetoptError:
        print("example: invalid command line")
        return 1
    if rest:
        print("example: invalid command line")
        return 1

    fname = None
    for _, value in opts:
        fname = value

    if fname is None:
        sys.stdout.write(first_line(sys.stdin))
        return 0
    try:
        fh = open(fname, encoding="utf-8", errors="replace", newline="")
    except OSError:
        print("example: cannot open file", file=sys.stderr)
        return 1
    with fh:
        sys.stdout.write(first_line(fh))
    return 0


def hello_main(argv: list[str] | None = None) -> int:
    print(hello("my friend"))
    return 0