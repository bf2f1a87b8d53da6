"""Open files: a system-wide table of reference-counted file structures."""

from __future__ import annotations

import enum
import errno
import threading
from dataclasses import dataclass
from typing import Any

from .fs import FileSystem, Inode, Stat
from .layout import BSIZE, MAXOPBLOCKS, NFILE, KernelPanic

# Write a few blocks at a time so one operation never exceeds the log:
# inode, indirect block, allocation blocks and two blocks of slop for
# writes that are not block-aligned.
MAX_WRITE = ((MAXOPBLOCKS - 1 - 1 - 2) // 2) * BSIZE


class FileType(enum.Enum):
    """What an open file refers to."""

    NONE = 0
    PIPE = 1
    INODE = 2


@dataclass(eq=False)
class File:
    """An open file: a pipe end or an inode with a current offset."""

    type: FileType = FileType.NONE
    ref: int = 0
    readable: bool = False
    writable: bool = False
    pipe: Any = None
    ip: Inode | None = None
    off: int = 0


class FileTable:
    """Fixed pool of open files shared by the whole system."""

    def __init__(self, fs: FileSystem, nfile: int = NFILE) -> None:
        self.fs = fs
        self._lock = threading.Lock()
        self._files = [File() for _ in range(nfile)]

    def alloc(self) -> File:
        """Take an unused file structure, with one reference."""
        with self._lock:
            for f in self._files:
                if f.ref == 0:
                    f.ref = 1
                    f.type = FileType.NONE
                    f.readable = False
                    f.writable = False
                    f.pipe = None
                    f.ip = None
                    f.off = 0
                    return f
        raise OSError(errno.ENFILE, "file table overflow")

    def dup(self, f: File) -> File:
        """Take another reference to an open file."""
        with self._lock:
            if f.ref < 1:
                raise KernelPanic("filedup")
            f.ref += 1
        return f

    def close(self, f: File) -> None:
        """Drop a reference; release the pipe end or inode with the last one."""
        with self._lock:
            if f.ref < 1:
                raise KernelPanic("fileclose")
            f.ref -= 1
            if f.ref > 0:
                return
            kind, pipe, ip, writable = f.type, f.pipe, f.ip, f.writable
            f.type = FileType.NONE

        if kind is FileType.PIPE:
            pipe.close(writable)
        elif kind is FileType.INODE:
            with self.fs.log.transaction():
                self.fs.iput(ip)

    def stat(self, f: File) -> Stat:
        """Metadata of the inode behind an open file."""
        if f.type is not FileType.INODE:
            raise OSError(errno.EBADF, "not an inode file")
        self.fs.ilock(f.ip)
        try:
            return self.fs.stati(f.ip)
        finally:
            self.fs.iunlock(f.ip)

    def read(self, f: File, n: int) -> bytes:
        """Read up to ``n`` bytes from the current offset."""
        if not f.readable:
            raise OSError(errno.EBADF, "file not open for reading")
        if f.type is FileType.PIPE:
            return f.pipe.read(n)
        if f.type is FileType.INODE:
            self.fs.ilock(f.ip)
            try:
                data = self.fs.readi(f.ip, f.off, n)
                f.off += len(data)
            finally:
                self.fs.iunlock(f.ip)
            return data
        raise KernelPanic("fileread")

    def write(self, f: File, data: bytes) -> int:
        """Write ``data`` at the current offset; returns the number of bytes."""
        if not f.writable:
            raise OSError(errno.EBADF, "file not open for writing")
        if f.type is FileType.PIPE:
            return f.pipe.write(data)
        if f.type is FileType.INODE:
            written = 0
            while written < len(data):
                chunk = data[written : written + MAX_WRITE]
                with self.fs.log.transaction():
                    self.fs.ilock(f.ip)
                    try:
                        r = self.fs.writei(f.ip, chunk, f.off)
                        f.off += r
                    finally:
                        self.fs.iunlock(f.ip)
                if r != len(chunk):
                    raise KernelPanic("short filewrite")
                written += r
            return len(data)
        raise KernelPanic("filewrite")