"""File system: block allocation, inodes, directories and path names.

Operations that change the disk must run inside a log transaction
(``with fs.log.transaction(): ...``); inodes must be locked with
:meth:`FileSystem.ilock` before their contents are examined or changed.
"""

from __future__ import annotations

import errno
import logging
import struct
import threading
from dataclasses import dataclass, field
from typing import Any

from .bufcache import BufferCache, _SleepLock
from .layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    DIRENT_SIZE,
    DIRSIZ,
    IPB,
    MAXFILE,
    NDEV,
    NDIRECT,
    NINDIRECT,
    NINODE,
    ROOTDEV,
    ROOTINO,
    T_DEV,
    T_DIR,
    Dinode,
    Dirent,
    KernelPanic,
    Superblock,
    bblock,
    iblock,
)
from .log import Log

_logger = logging.getLogger(__name__)

_INDIRECT = struct.Struct(f"<{NINDIRECT}I")


@dataclass(frozen=True)
class Stat:
    """Metadata about a file."""

    dev: int
    ino: int
    type: int
    nlink: int
    size: int


@dataclass(eq=False)
class Inode:
    """In-memory copy of an inode, plus reference count and validity."""

    dev: int = 0
    inum: int = 0
    ref: int = 0
    valid: bool = False
    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list[int] = field(default_factory=lambda: [0] * (NDIRECT + 1))
    _lock: _SleepLock = field(default_factory=_SleepLock, init=False, repr=False)

    @property
    def locked(self) -> bool:
        """Whether the calling thread holds this inode's lock."""
        return self._lock.holding()


def readsb(cache: BufferCache, dev: int) -> Superblock:
    """Read the superblock of a device."""
    bp = cache.bread(dev, 1)
    try:
        return Superblock.unpack(bytes(bp.data))
    finally:
        cache.brelse(bp)


def skipelem(path: str) -> tuple[str, str] | None:
    """Split off the first path element.

    Returns the element, cut to DIRSIZ characters, and the rest of the path
    without leading slashes; returns None when there is no element left.
    """
    stripped = path.lstrip("/")
    if not stripped:
        return None
    elem, _, rest = stripped.partition("/")
    return elem[:DIRSIZ], rest.lstrip("/")


def namecmp(s: str, t: str) -> int:
    """Compare two directory entry names over their first DIRSIZ bytes."""
    a = s.encode("utf-8")[:DIRSIZ]
    b = t.encode("utf-8")[:DIRSIZ]
    return (a > b) - (a < b)


def _dinode_offset(inum: int) -> int:
    return (inum % IPB) * DINODE_SIZE


class FileSystem:
    """A mounted file system on one device, with its log and inode cache."""

    def __init__(self, cache: BufferCache, dev: int = ROOTDEV) -> None:
        self.cache = cache
        self.dev = dev
        self._lock = threading.Lock()
        self._icache = [Inode() for _ in range(NINODE)]
        self.sb = readsb(cache, dev)
        self.log = Log(cache, dev, self.sb)
        # Major device number -> object with read(ip, n) and write(ip, data).
        self.devsw: dict[int, Any] = {}
        _logger.info(
            "sb: size %d nblocks %d ninodes %d nlog %d logstart %d "
            "inodestart %d bmap start %d",
            self.sb.size,
            self.sb.nblocks,
            self.sb.ninodes,
            self.sb.nlog,
            self.sb.logstart,
            self.sb.inodestart,
            self.sb.bmapstart,
        )

    # Blocks.

    def _bzero(self, bno: int) -> None:
        bp = self.cache.bread(self.dev, bno)
        try:
            bp.data[:] = bytes(BSIZE)
            self.log.log_write(bp)
        finally:
            self.cache.brelse(bp)

    def _claim_bit(self, bp, limit: int) -> int | None:
        for bi in range(limit):
            mask = 1 << (bi % 8)
            if not bp.data[bi // 8] & mask:
                bp.data[bi // 8] |= mask
                self.log.log_write(bp)
                return bi
        return None

    def _balloc(self) -> int:
        """Allocate a zeroed disk block."""
        for base in range(0, self.sb.size, BPB):
            bp = self.cache.bread(self.dev, bblock(base, self.sb))
            try:
                bi = self._claim_bit(bp, min(BPB, self.sb.size - base))
            finally:
                self.cache.brelse(bp)
            if bi is not None:
                self._bzero(base + bi)
                return base + bi
        raise KernelPanic("balloc: out of blocks")

    def _bfree(self, b: int) -> None:
        bp = self.cache.bread(self.dev, bblock(b, self.sb))
        try:
            bi = b % BPB
            mask = 1 << (bi % 8)
            if not bp.data[bi // 8] & mask:
                raise KernelPanic("freeing free block")
            bp.data[bi // 8] &= ~mask & 0xFF
            self.log.log_write(bp)
        finally:
            self.cache.brelse(bp)

    # Inodes.

    def ialloc(self, type_: int) -> Inode:
        """Allocate an on-disk inode of the given type; returns it referenced, unlocked."""
        for inum in range(1, self.sb.ninodes):
            bp = self.cache.bread(self.dev, iblock(inum, self.sb))
            try:
                off = _dinode_offset(inum)
                claimed = Dinode.unpack(bytes(bp.data[off : off + DINODE_SIZE])).type == 0
                if claimed:
                    bp.data[off : off + DINODE_SIZE] = Dinode(type=type_).pack()
                    self.log.log_write(bp)
            finally:
                self.cache.brelse(bp)
            if claimed:
                return self._iget(self.dev, inum)
        raise KernelPanic("ialloc: no inodes")

    def iupdate(self, ip: Inode) -> None:
        """Copy a modified in-memory inode to disk."""
        bp = self.cache.bread(ip.dev, iblock(ip.inum, self.sb))
        try:
            off = _dinode_offset(ip.inum)
            dinode = Dinode(ip.type, ip.major, ip.minor, ip.nlink, ip.size, list(ip.addrs))
            bp.data[off : off + DINODE_SIZE] = dinode.pack()
            self.log.log_write(bp)
        finally:
            self.cache.brelse(bp)

    def _iget(self, dev: int, inum: int) -> Inode:
        with self._lock:
            empty = None
            for ip in self._icache:
                if ip.ref > 0 and ip.dev == dev and ip.inum == inum:
                    ip.ref += 1
                    return ip
                if empty is None and ip.ref == 0:
                    empty = ip
            if empty is None:
                raise KernelPanic("iget: no inodes")
            empty.dev = dev
            empty.inum = inum
            empty.ref = 1
            empty.valid = False
            return empty

    def idup(self, ip: Inode) -> Inode:
        """Take another reference to an inode."""
        with self._lock:
            ip.ref += 1
        return ip

    def ilock(self, ip: Inode) -> None:
        """Lock an inode, reading it from disk if necessary."""
        if ip is None or ip.ref < 1:
            raise KernelPanic("ilock")
        ip._lock.acquire()
        if not ip.valid:
            try:
                bp = self.cache.bread(ip.dev, iblock(ip.inum, self.sb))
                try:
                    off = _dinode_offset(ip.inum)
                    dinode = Dinode.unpack(bytes(bp.data[off : off + DINODE_SIZE]))
                finally:
                    self.cache.brelse(bp)
            except Exception:
                ip._lock.release()
                raise
            ip.type = dinode.type
            ip.major = dinode.major
            ip.minor = dinode.minor
            ip.nlink = dinode.nlink
            ip.size = dinode.size
            ip.addrs = list(dinode.addrs)
            ip.valid = True
            if ip.type == 0:
                raise KernelPanic("ilock: no type")

    def iunlock(self, ip: Inode) -> None:
        """Unlock an inode."""
        if ip is None or not ip.locked or ip.ref < 1:
            raise KernelPanic("iunlock")
        ip._lock.release()

    def iput(self, ip: Inode) -> None:
        """Drop a reference; free the inode on disk if it was the last and unlinked."""
        ip._lock.acquire()
        try:
            if ip.valid and ip.nlink == 0:
                with self._lock:
                    refs = ip.ref
                if refs == 1:
                    self._itrunc(ip)
                    ip.type = 0
                    self.iupdate(ip)
                    ip.valid = False
        finally:
            ip._lock.release()
        with self._lock:
            ip.ref -= 1

    def iunlockput(self, ip: Inode) -> None:
        """Unlock an inode, then drop the reference."""
        self.iunlock(ip)
        self.iput(ip)

    # Inode content.

    def _bmap(self, ip: Inode, bn: int) -> int:
        """Disk block holding block ``bn`` of the inode, allocating it if needed."""
        if bn < NDIRECT:
            if ip.addrs[bn] == 0:
                ip.addrs[bn] = self._balloc()
            return ip.addrs[bn]
        bn -= NDIRECT
        if bn < NINDIRECT:
            if ip.addrs[NDIRECT] == 0:
                ip.addrs[NDIRECT] = self._balloc()
            bp = self.cache.bread(ip.dev, ip.addrs[NDIRECT])
            try:
                addr = _INDIRECT.unpack_from(bp.data)[bn]
                if addr == 0:
                    addr = self._balloc()
                    struct.pack_into("<I", bp.data, bn * 4, addr)
                    self.log.log_write(bp)
            finally:
                self.cache.brelse(bp)
            return addr
        raise KernelPanic("bmap: out of range")

    def _itrunc(self, ip: Inode) -> None:
        for i, addr in enumerate(ip.addrs[:NDIRECT]):
            if addr:
                self._bfree(addr)
                ip.addrs[i] = 0
        if ip.addrs[NDIRECT]:
            bp = self.cache.bread(ip.dev, ip.addrs[NDIRECT])
            try:
                for addr in _INDIRECT.unpack_from(bp.data):
                    if addr:
                        self._bfree(addr)
            finally:
                self.cache.brelse(bp)
            self._bfree(ip.addrs[NDIRECT])
            ip.addrs[NDIRECT] = 0
        ip.size = 0
        self.iupdate(ip)

    def stati(self, ip: Inode) -> Stat:
        """Metadata of a locked inode."""
        return Stat(dev=ip.dev, ino=ip.inum, type=ip.type, nlink=ip.nlink, size=ip.size)

    def _device(self, ip: Inode, operation: str):
        device = self.devsw.get(ip.major) if 0 <= ip.major < NDEV else None
        if device is None or not hasattr(device, operation):
            raise OSError(errno.ENODEV, f"no device for major number {ip.major}")
        return device

    def readi(self, ip: Inode, off: int, n: int) -> bytes:
        """Read up to ``n`` bytes at ``off``; stops at the end of the file."""
        if ip.type == T_DEV:
            return self._device(ip, "read").read(ip, n)
        if n < 0 or off < 0 or off > ip.size:
            raise ValueError(f"cannot read {n} bytes at offset {off} of {ip.size}")
        n = min(n, ip.size - off)
        out = bytearray()
        while len(out) < n:
            pos = off + len(out)
            bp = self.cache.bread(ip.dev, self._bmap(ip, pos // BSIZE))
            try:
                start = pos % BSIZE
                m = min(n - len(out), BSIZE - start)
                out += bp.data[start : start + m]
            finally:
                self.cache.brelse(bp)
        return bytes(out)

    def writei(self, ip: Inode, data: bytes, off: int) -> int:
        """Write ``data`` at ``off``, growing the file as needed; returns the count."""
        if ip.type == T_DEV:
            return self._device(ip, "write").write(ip, data)
        n = len(data)
        if off < 0 or off > ip.size:
            raise ValueError(f"cannot write at offset {off} of {ip.size}")
        if off + n > MAXFILE * BSIZE:
            raise ValueError("write goes past the maximum file size")
        tot = 0
        while tot < n:
            pos = off + tot
            bp = self.cache.bread(ip.dev, self._bmap(ip, pos // BSIZE))
            try:
                start = pos % BSIZE
                m = min(n - tot, BSIZE - start)
                bp.data[start : start + m] = data[tot : tot + m]
                self.log.log_write(bp)
            finally:
                self.cache.brelse(bp)
            tot += m
        if n > 0 and off + n > ip.size:
            ip.size = off + n
            self.iupdate(ip)
        return n

    # Directories.

    def _read_dirent(self, dp: Inode, off: int, what: str) -> Dirent:
        raw = self.readi(dp, off, DIRENT_SIZE)
        if len(raw) != DIRENT_SIZE:
            raise KernelPanic(what)
        return Dirent.unpack(raw)

    def dirlookup(self, dp: Inode, name: str) -> tuple[Inode, int] | None:
        """Find an entry in a locked directory: its inode and byte offset, or None."""
        if dp.type != T_DIR:
            raise KernelPanic("dirlookup not DIR")
        for off in range(0, dp.size, DIRENT_SIZE):
            de = self._read_dirent(dp, off, "dirlookup read")
            if de.inum == 0:
                continue
            if namecmp(name, de.name) == 0:
                return self._iget(dp.dev, de.inum), off
        return None

    def dirlink(self, dp: Inode, name: str, inum: int) -> None:
        """Add the entry (name, inum) to a locked directory."""
        found = self.dirlookup(dp, name)
        if found is not None:
            self.iput(found[0])
            raise FileExistsError(errno.EEXIST, "directory entry exists", name)
        for off in range(0, dp.size, DIRENT_SIZE):
            if self._read_dirent(dp, off, "dirlink read").inum == 0:
                break
        else:
            off = -(-dp.size // DIRENT_SIZE) * DIRENT_SIZE
        if self.writei(dp, Dirent(inum, name).pack(), off) != DIRENT_SIZE:
            raise KernelPanic("dirlink")

    # Paths.

    def _namex(
        self, path: str, parent: bool, cwd: Inode | None
    ) -> tuple[Inode, str] | None:
        if path.startswith("/") or cwd is None:
            ip = self._iget(self.dev, ROOTINO)
        else:
            ip = self.idup(cwd)
        name = ""
        while (step := skipelem(path)) is not None:
            name, path = step
            self.ilock(ip)
            if ip.type != T_DIR:
                self.iunlockput(ip)
                return None
            if parent and path == "":
                # Stop one level early.
                self.iunlock(ip)
                return ip, name
            found = self.dirlookup(ip, name)
            if found is None:
                self.iunlockput(ip)
                return None
            self.iunlockput(ip)
            ip = found[0]
        if parent:
            self.iput(ip)
            return None
        return ip, name

    def namei(self, path: str, cwd: Inode | None = None) -> Inode | None:
        """Inode for a path, relative to ``cwd`` (the root if None), or None."""
        result = self._namex(path, False, cwd)
        return result[0] if result is not None else None

    def nameiparent(
        self, path: str, cwd: Inode | None = None
    ) -> tuple[Inode, str] | None:
        """Inode of the parent directory and the final element's name, or None."""
        return self._namex(path, True, cwd)