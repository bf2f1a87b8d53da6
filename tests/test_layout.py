import pytest

from teachos.layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    DIRENT_SIZE,
    DIRSIZ,
    IPB,
    NDIRECT,
    Dinode,
    Dirent,
    Superblock,
    bblock,
    iblock,
)


def test_superblock_round_trip():
    sb = Superblock(1000, 941, 200, 30, 2, 32, 58)
    assert Superblock.unpack(sb.pack()) == sb


def test_superblock_unpacks_from_full_block():
    sb = Superblock(size=1000, ninodes=200, bmapstart=58)
    block = sb.pack().ljust(BSIZE, b"\0")
    assert Superblock.unpack(block) == sb


def test_superblock_short_data_rejected():
    with pytest.raises(ValueError):
        Superblock.unpack(b"\x01\x02")


def test_dinode_round_trip_and_size():
    addrs = list(range(100, 100 + NDIRECT + 1))
    ino = Dinode(type=2, major=0, minor=0, nlink=1, size=1234, addrs=addrs)
    packed = ino.pack()
    assert len(packed) == DINODE_SIZE
    assert Dinode.unpack(packed) == ino


def test_dinodes_tile_a_block():
    inodes = [
        Dinode(type=2, major=0, minor=0, nlink=1, size=i, addrs=[i] * (NDIRECT + 1))
        for i in range(IPB)
    ]
    block = b"".join(ino.pack() for ino in inodes)
    assert len(block) == BSIZE
    last = block[(IPB - 1) * DINODE_SIZE : IPB * DINODE_SIZE]
    assert Dinode.unpack(last) == inodes[-1]


def test_dirents_tile_a_block():
    count = BSIZE // DIRENT_SIZE
    block = b"".join(Dirent(i + 1, f"f{i}").pack() for i in range(count))
    assert len(block) == BSIZE
    last = block[(count - 1) * DIRENT_SIZE : count * DIRENT_SIZE]
    assert Dirent.unpack(last) == Dirent(count, f"f{count - 1}")


def test_dinode_wrong_address_count():
    with pytest.raises(ValueError):
        Dinode(addrs=[0, 1, 2]).pack()


def test_dirent_wire_bytes():
    assert Dirent(1, ".").pack() == b"\x01\x00." + bytes(13)


def test_dirent_name_truncated_to_dirsiz():
    name = "abcdefghijklmnopq"
    entry = Dirent.unpack(Dirent(7, name).pack())
    assert entry.inum == 7
    assert entry.name == name[:DIRSIZ]


def test_dirent_round_trip():
    entry = Dirent(42, "README")
    assert Dirent.unpack(entry.pack()) == entry


def test_iblock_steps_every_ipb_inodes():
    sb = Superblock(inodestart=32)
    assert iblock(0, sb) == sb.inodestart
    assert iblock(IPB - 1, sb) == sb.inodestart
    assert iblock(IPB, sb) == sb.inodestart + 1


def test_bblock_steps_every_bpb_blocks():
    sb = Superblock(bmapstart=58)
    assert bblock(0, sb) == sb.bmapstart
    assert bblock(BPB - 1, sb) == sb.bmapstart
    assert bblock(BPB, sb) == sb.bmapstart + 1