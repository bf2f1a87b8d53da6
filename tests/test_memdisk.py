import pytest

from teachos.layout import BSIZE, KernelPanic
from teachos.memdisk import MemDisk


@pytest.fixture
def disk():
    return MemDisk(bytes(BSIZE * 4), 1)


def test_write_then_read(disk):
    block = bytes(range(256)) * 2
    disk.write(1, 2, block)
    assert disk.read(1, 2) == block
    assert disk.image()[2 * BSIZE : 3 * BSIZE] == block


def test_other_blocks_untouched(disk):
    disk.write(1, 1, b"x" * BSIZE)
    assert disk.read(1, 0) == bytes(BSIZE)
    assert disk.read(1, 2) == bytes(BSIZE)


def test_length_in_blocks(disk):
    assert len(disk) == 4


def test_wrong_device_panics(disk):
    with pytest.raises(KernelPanic):
        disk.read(0, 0)


def test_out_of_range_panics(disk):
    with pytest.raises(KernelPanic):
        disk.read(1, 4)
    with pytest.raises(KernelPanic):
        disk.write(1, -1, bytes(BSIZE))


def test_wrong_block_size_rejected(disk):
    with pytest.raises(ValueError):
        disk.write(1, 0, b"short")


def test_source_image_is_copied():
    image = bytearray(BSIZE * 2)
    disk = MemDisk(image, 1)
    disk.write(1, 0, b"y" * BSIZE)
    assert image == bytearray(BSIZE * 2)
    assert disk.image()[:BSIZE] == b"y" * BSIZE