# teachos

`teachos` is a set of small, readable models of the pieces that make up a
Unix-like operating system, together with a few classic command-line tools.
It is meant for studying how those pieces fit together: every layer is plain
Python, can be driven from a test or a REPL, and raises `KernelPanic` where an
invariant the layer relies on is broken.

## What is inside

- **On-disk layout** (`teachos.layout`): kernel parameters and file system
  geometry constants; `Superblock`, `Dinode` and `Dirent` records with
  `pack()` / `unpack()`; `iblock()` and `bblock()` to find the block holding an
  inode or a bitmap bit.
- **In-memory disk** (`teachos.memdisk`): `MemDisk` keeps a whole disk image in
  memory and serves block reads and writes for one device number.
- **Buffer cache** (`teachos.bufcache`): `BufferCache` with `bread`, `bwrite`
  and `brelse`, recycling the least recently used buffer that is neither
  referenced nor dirty.
- **Write-ahead log** (`teachos.log`): `Log` groups block writes into
  transactions (`begin_op`, `end_op`, `log_write`, or the `transaction()`
  context manager) and replays a committed transaction when it is created.
- **File system** (`teachos.fs`): `FileSystem` with inode allocation and
  locking, reading and writing (`readi`, `writei`), directories (`dirlookup`,
  `dirlink`) and path lookup (`namei`, `nameiparent`); `skipelem()` and
  `namecmp()` for path elements.
- **Open files** (`teachos.file`): `FileTable` hands out reference-counted
  `File` objects and reads, writes and stats through them.
- **Image builder** (`teachos.mkfs`): `ImageBuilder` and `build_image()` create
  a fresh file system image holding a root directory and the files you give it.
- **Console** (`teachos.console`): `cprintf()` and `format_int()` (only `%d`,
  `%x`, `%p`, `%s` and `%%`), and `ConsoleInput`, a line-editing input buffer
  that understands backspace, kill-line (Control-U) and end-of-file
  (Control-D).
- **Keyboard** (`teachos.kbd`): `KeyboardDecoder` turns PC scan codes into
  character codes, tracking shift, control and caps lock; `ctrl()` gives
  control codes.
- **Page replacement** (`teachos.clock`): `ClockQueue` runs the CLOCK eviction
  algorithm over `Page` objects, encrypting pages it evicts and decrypting
  pages it brings in.
- **Tools** (`teachos.grep`, `teachos.commands`, `teachos.shell`): a small
  `grep` supporting `^ . * $`; `cat`, `echo`, `first_line()`, `fmtname()`,
  `tokenize()` and `hello()`; a minimal shell (`run_shell`, `run_line`) and
  `list_long()`, which runs `/bin/ls -l` and waits for it.
- **Processes** (`teachos.processes`): `run_workers()` for threads,
  `install_handlers()` for SIGINT and SIGTERM, `pack_slot()` / `unpack_slot()`
  with `write_shared()` / `read_shared()` for a slot in shared memory, and
  `fork_quiz()`, the classic fork puzzle (POSIX only).

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Commands

Build a disk image holding the given files (a leading `_` in a file name is
dropped):

```
teachos-mkfs fs.img README.md notes.txt
```

Print the lines matching a simple regular expression, from the named files or
from standard input:

```
teachos-grep '^ho.*e$' notes.txt
```

Print files, or standard input when none are named; print the arguments:

```
teachos-cat notes.txt
teachos-echo hello world
```

Print only the first line of a file given with `-f`, or of standard input:

```
teachos-simple-cat -f notes.txt
```

Print a greeting:

```
teachos-hello
```

Start the minimal shell. Each line is the path of a program to run, with no
arguments and no search of `PATH`; end input to leave:

```
teachos-shell
```

Step through the CLOCK page-replacement demonstration, pressing Enter to see
the queue after each later stage:

```
teachos-clock
```

## Using the library

```python
from teachos.clock import ClockQueue, Page

queue = ClockQueue(8)
pages = [Page(vpn) for vpn in range(12)]
for page in pages[:4]:
    queue.reference(page)
print(queue.format())
```

```python
from teachos.grep import match

assert match("^ab*c$", "abbbc")
assert not match("^ab*c$", "abd")
```

```python
from teachos.bufcache import BufferCache
from teachos.fs import FileSystem
from teachos.memdisk import MemDisk
from teachos.mkfs import build_image

image = build_image({"hello.txt": b"hello, disk\n"})
fs = FileSystem(BufferCache(MemDisk(image, 1), 30), 1)

ip = fs.namei("/hello.txt")
fs.ilock(ip)
print(fs.readi(ip, 0, ip.size))
fs.iunlockput(ip)
```

## What it does not do

The package models parts of a kernel; it does not boot or run one. There is
no process table, scheduler or system-call layer, so the file system is used
directly from Python rather than by programs running on it. `FileTable`
accepts pipe-backed files but the package has no pipe implementation of its
own, and device inodes only work for devices you register in
`FileSystem.devsw`. There is no `ls` command; `fmtname()` is provided on its
own.