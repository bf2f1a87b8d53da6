"""Write-ahead redo log that makes groups of block writes atomic.

A transaction collects the blocks changed by several file system
operations. It commits only once no operation is in progress: the changed
blocks are copied into the log area, the header naming them is written
(the commit point), the blocks are installed at their home locations and
the header is cleared again.
"""

from __future__ import annotations

import struct
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from .bufcache import B_DIRTY, Buf, BufferCache
from .layout import BSIZE, LOGSIZE, MAXOPBLOCKS, KernelPanic, Superblock

# Header block: a count followed by the home block number of each logged block.
_HEADER = struct.Struct(f"<i{LOGSIZE}i")


class Log:
    """The on-disk log of one device and the in-memory state of its transaction."""

    def __init__(self, cache: BufferCache, dev: int, sb: Superblock) -> None:
        if _HEADER.size >= BSIZE:
            raise KernelPanic("initlog: too big logheader")
        self._cache = cache
        self.dev = dev
        self.start = sb.logstart
        self.size = sb.nlog
        self._cond = threading.Condition()
        self._outstanding = 0
        self._committing = False
        self._blocks: list[int] = []
        self._recover()

    @property
    def pending(self) -> tuple[int, ...]:
        """Home block numbers logged in the current transaction."""
        return tuple(self._blocks)

    @property
    def outstanding(self) -> int:
        """Number of file system operations currently in progress."""
        return self._outstanding

    def _read_head(self) -> None:
        buf = self._cache.bread(self.dev, self.start)
        try:
            n, *blocks = _HEADER.unpack_from(buf.data)
        finally:
            self._cache.brelse(buf)
        if not 0 <= n <= LOGSIZE:
            raise KernelPanic("read_head: corrupt log header")
        self._blocks = blocks[:n]

    def _write_head(self) -> None:
        buf = self._cache.bread(self.dev, self.start)
        try:
            n = len(self._blocks)
            struct.pack_into("<i", buf.data, 0, n)
            struct.pack_into(f"<{n}i", buf.data, 4, *self._blocks)
            self._cache.bwrite(buf)
        finally:
            self._cache.brelse(buf)

    def _install_trans(self) -> None:
        """Copy committed blocks from the log to their home locations."""
        for tail, home in enumerate(self._blocks):
            lbuf = self._cache.bread(self.dev, self.start + tail + 1)
            try:
                dbuf = self._cache.bread(self.dev, home)
                try:
                    dbuf.data[:] = lbuf.data
                    self._cache.bwrite(dbuf)
                finally:
                    self._cache.brelse(dbuf)
            finally:
                self._cache.brelse(lbuf)

    def _write_log(self) -> None:
        """Copy modified blocks from the cache into the log area."""
        for tail, home in enumerate(self._blocks):
            to = self._cache.bread(self.dev, self.start + tail + 1)
            try:
                source = self._cache.bread(self.dev, home)
                try:
                    to.data[:] = source.data
                    self._cache.bwrite(to)
                finally:
                    self._cache.brelse(source)
            finally:
                self._cache.brelse(to)

    def _recover(self) -> None:
        self._read_head()
        self._install_trans()
        self._blocks = []
        self._write_head()

    def _commit(self) -> None:
        if self._blocks:
            self._write_log()
            self._write_head()
            self._install_trans()
            self._blocks = []
            self._write_head()

    def begin_op(self) -> None:
        """Start a file system operation, waiting while the log is busy or full."""
        with self._cond:
            while self._committing or (
                len(self._blocks) + (self._outstanding + 1) * MAXOPBLOCKS > LOGSIZE
            ):
                self._cond.wait()
            self._outstanding += 1

    def end_op(self) -> None:
        """Finish an operation; the last one to finish commits the transaction."""
        with self._cond:
            if self._outstanding < 1:
                raise KernelPanic("end_op outside of trans")
            self._outstanding -= 1
            if self._committing:
                raise KernelPanic("log.committing")
            do_commit = self._outstanding == 0
            if do_commit:
                self._committing = True
            else:
                self._cond.notify_all()

        if do_commit:
            try:
                self._commit()
            finally:
                with self._cond:
                    self._committing = False
                    self._cond.notify_all()

    def log_write(self, buf: Buf) -> None:
        """Record a modified buffer in the transaction and pin it in the cache."""
        if len(self._blocks) >= LOGSIZE or len(self._blocks) >= self.size - 1:
            raise KernelPanic("too big a transaction")
        if self._outstanding < 1:
            raise KernelPanic("log_write outside of trans")
        with self._cond:
            if buf.blockno not in self._blocks:
                self._blocks.append(buf.blockno)
            buf.flags |= B_DIRTY

    @contextmanager
    def transaction(self) -> Iterator[Log]:
        """Run the enclosed block as one file system operation."""
        self.begin_op()
        try:
            yield self
        finally:
            self.end_op()