"""Build a file system image holding a root directory and some files."""

from __future__ import annotations

import argparse
import os
import struct
import sys
from collections.abc import Iterable, Mapping

from .layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    FSSIZE,
    IPB,
    LOGSIZE,
    MAXFILE,
    NDIRECT,
    NINDIRECT,
    ROOTINO,
    T_DIR,
    T_FILE,
    Dinode,
    Dirent,
    Superblock,
    iblock,
)

NINODES = 200

_INDIRECT = struct.Struct(f"<{NINDIRECT}I")


class ImageBuilder:
    """Lays out an image: boot block, superblock, log, inodes, bitmap, data."""

    def __init__(self, fssize: int = FSSIZE, ninodes: int = NINODES) -> None:
        self.fssize = fssize
        self.ninodes = ninodes
        self.nbitmap = fssize // BPB + 1
        self.ninodeblocks = ninodes // IPB + 1
        self.nlog = LOGSIZE
        self.nmeta = 2 + self.nlog + self.ninodeblocks + self.nbitmap
        self.nblocks = fssize - self.nmeta
        if self.nblocks <= 0:
            raise ValueError(f"{fssize} blocks leave no room for data")
        self.sb = Superblock(
            size=fssize,
            nblocks=self.nblocks,
            ninodes=ninodes,
            nlog=self.nlog,
            logstart=2,
            inodestart=2 + self.nlog,
            bmapstart=2 + self.nlog + self.ninodeblocks,
        )
        self._image = bytearray(fssize * BSIZE)
        self._freeinode = 1
        self.freeblock = self.nmeta
        self._wsect(1, self.sb.pack())

        self.rootino = self.ialloc(T_DIR)
        if self.rootino != ROOTINO:
            raise RuntimeError("root directory did not get the root inode number")
        self.iappend(self.rootino, Dirent(self.rootino, ".").pack())
        self.iappend(self.rootino, Dirent(self.rootino, "..").pack())

    def _wsect(self, sec: int, data: bytes) -> None:
        if not 0 <= sec < self.fssize:
            raise ValueError(f"sector {sec} is outside the image")
        start = sec * BSIZE
        self._image[start : start + BSIZE] = bytes(data[:BSIZE]).ljust(BSIZE, b"\0")

    def _rsect(self, sec: int) -> bytes:
        if not 0 <= sec < self.fssize:
            raise ValueError(f"sector {sec} is outside the image")
        start = sec * BSIZE
        return bytes(self._image[start : start + BSIZE])

    def _rinode(self, inum: int) -> Dinode:
        off = (inum % IPB) * DINODE_SIZE
        return Dinode.unpack(self._rsect(iblock(inum, self.sb))[off : off + DINODE_SIZE])

    def _winode(self, inum: int, din: Dinode) -> None:
        bn = iblock(inum, self.sb)
        block = bytearray(self._rsect(bn))
        off = (inum % IPB) * DINODE_SIZE
        block[off : off + DINODE_SIZE] = din.pack()
        self._wsect(bn, block)

    def _next_block(self) -> int:
        if self.freeblock >= self.fssize:
            raise ValueError("file system image is full")
        block = self.freeblock
        self.freeblock += 1
        return block

    def ialloc(self, type_: int) -> int:
        """Allocate the next inode with the given type and one link."""
        if self._freeinode >= self.ninodes:
            raise ValueError("out of inodes")
        inum = self._freeinode
        self._freeinode += 1
        self._winode(inum, Dinode(type=type_, nlink=1, size=0))
        return inum

    def iappend(self, inum: int, data: bytes) -> None:
        """Append bytes to an inode's contents, allocating blocks as needed."""
        din = self._rinode(inum)
        off = din.size
        pos = 0
        while pos < len(data):
            fbn = off // BSIZE
            if fbn >= MAXFILE:
                raise ValueError("file too large for one inode")
            if fbn < NDIRECT:
                if din.addrs[fbn] == 0:
                    din.addrs[fbn] = self._next_block()
                x = din.addrs[fbn]
            else:
                if din.addrs[NDIRECT] == 0:
                    din.addrs[NDIRECT] = self._next_block()
                indirect = list(_INDIRECT.unpack(self._rsect(din.addrs[NDIRECT])))
                if indirect[fbn - NDIRECT] == 0:
                    indirect[fbn - NDIRECT] = self._next_block()
                    self._wsect(din.addrs[NDIRECT], _INDIRECT.pack(*indirect))
                x = indirect[fbn - NDIRECT]
            n1 = min(len(data) - pos, (fbn + 1) * BSIZE - off)
            block = bytearray(self._rsect(x))
            start = off - fbn * BSIZE
            block[start : start + n1] = data[pos : pos + n1]
            self._wsect(x, block)
            pos += n1
            off += n1
        din.size = off
        self._winode(inum, din)

    def add_file(self, name: str, data: bytes) -> int:
        """Add a file to the root directory; a leading underscore is dropped."""
        if "/" in name:
            raise ValueError(f"file name may not contain '/': {name!r}")
        if name.startswith("_"):
            name = name[1:]
        inum = self.ialloc(T_FILE)
        self.iappend(self.rootino, Dirent(inum, name).pack())
        self.iappend(inum, data)
        return inum

    def finish(self) -> bytes:
        """Round up the root directory size, write the bitmap, return the image."""
        din = self._rinode(self.rootino)
        din.size = (din.size // BSIZE + 1) * BSIZE
        self._winode(self.rootino, din)

        used = self.freeblock
        if used >= BPB:
            raise ValueError("too many blocks in use for one bitmap block")
        bitmap = bytearray(BSIZE)
        for i in range(used):
            bitmap[i // 8] |= 1 << (i % 8)
        self._wsect(self.sb.bmapstart, bitmap)
        return bytes(self._image)


def build_image(files: Mapping[str, bytes] | Iterable[tuple[str, bytes]]) -> bytes:
    """Build a complete image holding the given (name, contents) files."""
    items = files.items() if isinstance(files, Mapping) else files
    builder = ImageBuilder()
    for name, data in items:
        builder.add_file(name, data)
    return builder.finish()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="mkfs", add_help=False)
    parser.add_argument("image", nargs="?")
    parser.add_argument("files", nargs="*")
    args = parser.parse_args(argv)
    if args.image is None:
        print("Usage: mkfs fs.img files...", file=sys.stderr)
        return 1

    builder = ImageBuilder()
    print(
        f"nmeta {builder.nmeta} (boot, super, log blocks {builder.nlog} "
        f"inode blocks {builder.ninodeblocks}, bitmap blocks {builder.nbitmap}) "
        f"blocks {builder.nblocks} total {builder.fssize}"
    )
    for path in args.files:
        try:
            with open(path, "rb") as fh:
                data = fh.read()
        except OSError as exc:
            print(f"{path}: {exc.strerror}", file=sys.stderr)
            return 1
        try:
            builder.add_file(os.path.basename(path), data)
        except ValueError as exc:
            print(f"mkfs: {exc}", file=sys.stderr)
            return 1

    print(f"balloc: first {builder.freeblock} blocks have been allocated")
    print(f"balloc: write bitmap block at sector {builder.sb.bmapstart}")
    try:
        image = builder.finish()
        with open(args.image, "wb") as fh:
            fh.write(image)
    except (OSError, ValueError) as exc:
        print(f"{args.image}: {exc}", file=sys.stderr)
        return 1
    return 0