"""Buffer cache: an LRU set of locked, cached copies of disk blocks."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from .layout import BSIZE, NBUF, KernelPanic

B_VALID = 0x2  # buffer has been read from disk
B_DIRTY = 0x4  # buffer needs to be written to disk


class _SleepLock:
    """A lock that remembers which thread holds it."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._holder: int | None = None

    def acquire(self) -> None:
        with self._cond:
            while self._holder is not None:
                self._cond.wait()
            self._holder = threading.get_ident()

    def release(self) -> None:
        with self._cond:
            self._holder = None
            self._cond.notify_all()

    def holding(self) -> bool:
        return self._holder == threading.get_ident()


@dataclass(eq=False)
class Buf:
    """One cached disk block."""

    dev: int = -1
    blockno: int = -1
    flags: int = 0
    refcnt: int = 0
    data: bytearray = field(default_factory=lambda: bytearray(BSIZE))
    _lock: _SleepLock = field(default_factory=_SleepLock, init=False, repr=False)

    @property
    def locked(self) -> bool:
        """Whether the calling thread holds this buffer."""
        return self._lock.holding()


class BufferCache:
    """Cache of disk blocks; the front of the list is the most recently used."""

    def __init__(self, disk, nbuf: int = NBUF) -> None:
        self._disk = disk
        self._lock = threading.Lock()
        self._lru: list[Buf] = [Buf() for _ in range(nbuf)]

    def _get(self, dev: int, blockno: int) -> Buf:
        with self._lock:
            buf = next(
                (b for b in self._lru if b.dev == dev and b.blockno == blockno), None
            )
            if buf is not None:
                buf.refcnt += 1
            else:
                # A dirty buffer is pinned by the log even with no references.
                buf = next(
                    (
                        b
                        for b in reversed(self._lru)
                        if b.refcnt == 0 and not b.flags & B_DIRTY
                    ),
                    None,
                )
                if buf is None:
                    raise KernelPanic("bget: no buffers")
                buf.dev = dev
                buf.blockno = blockno
                buf.flags = 0
                buf.refcnt = 1
        buf._lock.acquire()
        return buf

    def _sync(self, buf: Buf) -> None:
        if not buf.locked:
            raise KernelPanic("iderw: buf not locked")
        if buf.flags & (B_VALID | B_DIRTY) == B_VALID:
            raise KernelPanic("iderw: nothing to do")
        if buf.flags & B_DIRTY:
            self._disk.write(buf.dev, buf.blockno, bytes(buf.data))
            buf.flags &= ~B_DIRTY
        else:
            buf.data[:] = self._disk.read(buf.dev, buf.blockno)
        buf.flags |= B_VALID

    def bread(self, dev: int, blockno: int) -> Buf:
        """Return a locked buffer holding the block's contents."""
        buf = self._get(dev, blockno)
        if not buf.flags & B_VALID:
            try:
                self._sync(buf)
            except Exception:
                self.brelse(buf)
                raise
        return buf

    def bwrite(self, buf: Buf) -> None:
        """Write a locked buffer's contents to disk."""
        if not buf.locked:
            raise KernelPanic("bwrite")
        buf.flags |= B_DIRTY
        self._sync(buf)

    def brelse(self, buf: Buf) -> None:
        """Release a locked buffer, moving it to the front when unused."""
        if not buf.locked:
            raise KernelPanic("brelse")
        buf._lock.release()
        with self._lock:
            buf.refcnt -= 1
            if buf.refcnt == 0:
                self._lru.remove(buf)
                self._lru.insert(0, buf)