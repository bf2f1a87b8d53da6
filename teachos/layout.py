"""On-disk file system format, kernel parameters and inode types."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

# Kernel parameters.
NPROC = 64
KSTACKSIZE = 4096
NCPU = 8
NOFILE = 16
NFILE = 100
NINODE = 50
NDEV = 10
ROOTDEV = 1
MAXARG = 32
MAXOPBLOCKS = 10
LOGSIZE = MAXOPBLOCKS * 3
NBUF = MAXOPBLOCKS * 3
FSSIZE = 1000

# File system geometry.
ROOTINO = 1
BSIZE = 512
NDIRECT = 12
NINDIRECT = BSIZE // 4
MAXFILE = NDIRECT + NINDIRECT
DIRSIZ = 14

# Inode types.
T_DIR = 1
T_FILE = 2
T_DEV = 3

_SUPERBLOCK = struct.Struct("<7I")
_DINODE = struct.Struct(f"<4hI{NDIRECT + 1}I")
_DIRENT = struct.Struct(f"<H{DIRSIZ}s")

SUPERBLOCK_SIZE = _SUPERBLOCK.size
DINODE_SIZE = _DINODE.size
DIRENT_SIZE = _DIRENT.size

IPB = BSIZE // DINODE_SIZE
BPB = BSIZE * 8


class KernelPanic(RuntimeError):
    """An invariant the kernel relies on has been violated."""


def _check_length(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise ValueError(f"{what} needs {size} bytes, got {len(data)}")


@dataclass
class Superblock:
    """Describes the disk layout of a file system image."""

    size: int = 0
    nblocks: int = 0
    ninodes: int = 0
    nlog: int = 0
    logstart: int = 0
    inodestart: int = 0
    bmapstart: int = 0

    def pack(self) -> bytes:
        return _SUPERBLOCK.pack(
            self.size,
            self.nblocks,
            self.ninodes,
            self.nlog,
            self.logstart,
            self.inodestart,
            self.bmapstart,
        )

    @classmethod
    def unpack(cls, data: bytes) -> Superblock:
        _check_length(data, SUPERBLOCK_SIZE, "superblock")
        return cls(*_SUPERBLOCK.unpack_from(data))


@dataclass
class Dinode:
    """An inode as stored on disk."""

    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list[int] = field(default_factory=lambda: [0] * (NDIRECT + 1))

    def pack(self) -> bytes:
        if len(self.addrs) != NDIRECT + 1:
            raise ValueError(f"an inode holds exactly {NDIRECT + 1} block addresses")
        return _DINODE.pack(
            self.type, self.major, self.minor, self.nlink, self.size, *self.addrs
        )

    @classmethod
    def unpack(cls, data: bytes) -> Dinode:
        _check_length(data, DINODE_SIZE, "inode")
        type_, major, minor, nlink, size, *addrs = _DINODE.unpack_from(data)
        return cls(type_, major, minor, nlink, size, list(addrs))


@dataclass
class Dirent:
    """A directory entry: an inode number and a name of at most DIRSIZ bytes."""

    inum: int = 0
    name: str = ""

    def pack(self) -> bytes:
        return _DIRENT.pack(self.inum, self.name.encode("utf-8")[:DIRSIZ])

    @classmethod
    def unpack(cls, data: bytes) -> Dirent:
        _check_length(data, DIRENT_SIZE, "directory entry")
        inum, raw = _DIRENT.unpack_from(data)
        name = raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")
        return cls(inum, name)


def iblock(inum: int, sb: Superblock) -> int:
    """Block holding inode ``inum``."""
    return inum // IPB + sb.inodestart


def bblock(b: int, sb: Superblock) -> int:
    """Bitmap block holding the bit for block ``b``."""
    return b // BPB + sb.bmapstart