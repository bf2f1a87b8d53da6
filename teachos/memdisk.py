"""A disk whose blocks live in memory."""

from __future__ import annotations

from .layout import BSIZE, ROOTDEV, KernelPanic


class MemDisk:
    """Block device backed by an in-memory file system image."""

    def __init__(self, image: bytes, dev: int = ROOTDEV) -> None:
        self._data = bytearray(image)
        self._dev = dev
        self._nblocks = len(self._data) // BSIZE

    def __len__(self) -> int:
        return self._nblocks

    def _offset(self, dev: int, blockno: int) -> int:
        if dev != self._dev:
            raise KernelPanic(f"iderw: request not for disk {self._dev}")
        if not 0 <= blockno < self._nblocks:
            raise KernelPanic("iderw: block out of range")
        return blockno * BSIZE

    def read(self, dev: int, blockno: int) -> bytes:
        """Return the contents of one block."""
        start = self._offset(dev, blockno)
        return bytes(self._data[start : start + BSIZE])

    def write(self, dev: int, blockno: int, data: bytes) -> None:
        """Replace the contents of one block."""
        start = self._offset(dev, blockno)
        if len(data) != BSIZE:
            raise ValueError(f"a block is {BSIZE} bytes, got {len(data)}")
        self._data[start : start + BSIZE] = data

    def image(self) -> bytes:
        """Return a copy of the whole disk."""
        return bytes(self._data)