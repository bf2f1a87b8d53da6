import errno

import pytest

from teachos.bufcache import BufferCache
from teachos.file import MAX_WRITE, File, FileTable, FileType
from teachos.fs import FileSystem
from teachos.layout import T_FILE, KernelPanic
from teachos.memdisk import MemDisk
from teachos.mkfs import build_image


class FakePipe:
    def __init__(self):
        self.data = bytearray()
        self.closed = []

    def read(self, n):
        out = bytes(self.data[:n])
        del self.data[:n]
        return out

    def write(self, data):
        self.data += data
        return len(data)

    def close(self, writable):
        self.closed.append(writable)


def mount(files):
    fs = FileSystem(BufferCache(MemDisk(build_image(files))))
    return fs, FileTable(fs)


def open_file(table, fs, path, readable=True, writable=False):
    f = table.alloc()
    f.type = FileType.INODE
    f.ip = fs.namei(path)
    f.readable = readable
    f.writable = writable
    return f


def test_read_advances_offset():
    fs, table = mount({"hello": b"hello world"})
    f = open_file(table, fs, "/hello")
    assert table.read(f, 5) == b"hello"
    assert f.off == 5
    assert table.read(f, 100) == b" world"
    assert table.read(f, 10) == b""


def test_stat_of_inode_file():
    fs, table = mount({"hello": b"hello world"})
    f = open_file(table, fs, "/hello")
    st = table.stat(f)
    assert st.size == len(b"hello world")
    assert st.type == T_FILE


def test_write_in_chunks_and_read_back():
    fs, table = mount({"empty": b""})
    data = bytes(range(256)) * 16
    assert len(data) > 2 * MAX_WRITE
    w = open_file(table, fs, "/empty", readable=False, writable=True)
    assert table.write(w, data) == len(data)
    assert w.off == len(data)
    r = open_file(table, fs, "/empty")
    assert table.read(r, len(data)) == data
    assert table.stat(r).size == len(data)


def test_read_not_readable():
    fs, table = mount({"hello": b"hi"})
    f = open_file(table, fs, "/hello", readable=False)
    with pytest.raises(OSError) as exc:
        table.read(f, 1)
    assert exc.value.errno == errno.EBADF


def test_write_not_writable():
    fs, table = mount({"hello": b"hi"})
    f = open_file(table, fs, "/hello")
    with pytest.raises(OSError) as exc:
        table.write(f, b"x")
    assert exc.value.errno == errno.EBADF


def test_pipe_read_write_and_close():
    fs, table = mount({})
    pipe = FakePipe()
    f = table.alloc()
    f.type = FileType.PIPE
    f.pipe = pipe
    f.readable = True
    f.writable = True
    assert table.write(f, b"abc") == 3
    assert table.read(f, 2) == b"ab"
    table.close(f)
    assert pipe.closed == [True]
    assert f.type is FileType.NONE


def test_stat_of_pipe_fails():
    fs, table = mount({})
    f = table.alloc()
    f.type = FileType.PIPE
    f.pipe = FakePipe()
    with pytest.raises(OSError):
        table.stat(f)


def test_dup_and_close_inode_file():
    fs, table = mount({"hello": b"hi"})
    f = open_file(table, fs, "/hello")
    ip = f.ip
    assert table.dup(f) is f
    assert f.ref == 2
    table.close(f)
    assert f.ref == 1
    assert f.type is FileType.INODE
    refs = ip.ref
    table.close(f)
    assert f.ref == 0
    assert f.type is FileType.NONE
    assert ip.ref == refs - 1


def test_close_and_dup_of_closed_file_panic():
    fs, table = mount({})
    f = File()
    with pytest.raises(KernelPanic):
        table.close(f)
    with pytest.raises(KernelPanic):
        table.dup(f)


def test_alloc_exhaustion_and_reuse():
    fs = FileSystem(BufferCache(MemDisk(build_image({}))))
    table = FileTable(fs, 2)
    a = table.alloc()
    b = table.alloc()
    assert a is not b
    with pytest.raises(OSError) as exc:
        table.alloc()
    assert exc.value.errno == errno.ENFILE
    table.close(a)
    assert table.alloc() is a


def test_read_of_untyped_file_panics():
    fs, table = mount({})
    f = table.alloc()
    f.readable = True
    with pytest.raises(KernelPanic):
        table.read(f, 1)