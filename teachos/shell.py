"""A minimal shell that runs one program per line, and a fork-and-exec demo."""

from __future__ import annotations

import os
import subprocess
import sys
from typing import TextIO

PROMPT = "simplesh> "
_LINE_MAX = 512


def run_line(line: str) -> int | None:
    """Run the program named by ``line`` without a path search.

    Returns its exit status, 1 when it cannot be started, or None for an
    empty line.
    """
    command = line.split("\n", 1)[0]
    if not command:
        return None
    executable = command if "/" in command else os.path.join(os.curdir, command)
    sys.stdout.flush()
    try:
        return subprocess.run([command], executable=executable).returncode
    except OSError:
        print("simplesh: exec failed", flush=True)
        return 1


def run_shell(stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    """Prompt, read a line and run it, until end of input."""
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout
    while True:
        stdout.write(PROMPT)
        stdout.flush()
        line = stdin.readline(_LINE_MAX - 1)
        if not line:
            break
        run_line(line)
    return 0


def list_long(directory: str | os.PathLike | None = None) -> int:
    """Run ``/bin/ls -l`` in ``directory`` and wait for it; returns its status."""
    print("child: execing /bin/ls -l", flush=True)
    try:
        status = subprocess.run(["/bin/ls", "-l"], cwd=directory).returncode
    except OSError:
        print("child: exec failed", flush=True)
        status = 1
    print("parent: child process exits", flush=True)
    return status


def main(argv: list[str] | None = None) -> int:
    return run_shell(sys.stdin, sys.stdout)