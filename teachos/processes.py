"""Processes, threads, signals and shared memory in small examples."""

from __future__ import annotations

import mmap
import os
import signal
import struct
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from multiprocessing import shared_memory

THREAD_CNT = 5
SLOT_TEXT = 100

# A slot: a NUL-terminated string of up to 99 bytes, then an int.
_SLOT = struct.Struct(f"{SLOT_TEXT}si")
SLOT_SIZE = _SLOT.size


def run_workers(count: int = THREAD_CNT) -> list[int]:
    """Start ``count`` threads that each greet, wait for them, then greet from main.

    Returns the identifiers of the worker threads.
    """
    idents: list[int] = []
    lock = threading.Lock()

    def work() -> None:
        ident = threading.get_ident()
        sys.stdout.write(f"Hello from worker {ident}\n")
        with lock:
            idents.append(ident)

    workers = [threading.Thread(target=work) for _ in range(count)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    print("Hello from main thread")
    return idents


def _terminate(signum: int, frame) -> None:
    print(f"Captured signal {signum}")
    print("Terminating...")
    raise SystemExit(0)


def install_handlers() -> dict[int, object]:
    """Make SIGINT and SIGTERM report themselves and exit; returns the old handlers."""
    return {
        signum: signal.signal(signum, _terminate)
        for signum in (signal.SIGINT, signal.SIGTERM)
    }


def pack_slot(text: str, num: int) -> bytes:
    """Encode a slot; the text must leave room for its terminating NUL."""
    raw = text.encode("utf-8")
    if len(raw) >= SLOT_TEXT:
        raise ValueError(f"slot text holds at most {SLOT_TEXT - 1} bytes")
    try:
        return _SLOT.pack(raw, num)
    except struct.error as exc:
        raise ValueError(str(exc)) from exc


def unpack_slot(data: bytes) -> tuple[str, int]:
    """Decode a slot into its text and number."""
    if len(data) < SLOT_SIZE:
        raise ValueError(f"a slot is {SLOT_SIZE} bytes, got {len(data)}")
    raw, num = _SLOT.unpack_from(data)
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace"), num


@contextmanager
def write_shared(name: str, text: str, num: int) -> Iterator[shared_memory.SharedMemory]:
    """Create (or open) a page of shared memory holding one slot.

    The region is unmapped and removed when the block ends.
    """
    slot = pack_slot(text, num)
    try:
        shm = shared_memory.SharedMemory(name=name, create=True, size=mmap.PAGESIZE)
    except FileExistsError:
        shm = shared_memory.SharedMemory(name=name)
    try:
        if shm.size < SLOT_SIZE:
            raise ValueError(f"shared memory {name!r} is too small for a slot")
        shm.buf[:SLOT_SIZE] = slot
        yield shm
    finally:
        shm.close()
        shm.unlink()


def read_shared(name: str) -> tuple[str, int]:
    """Read the slot held in an existing shared memory region."""
    shm = shared_memory.SharedMemory(name=name)
    try:
        data = bytes(shm.buf[:SLOT_SIZE])
    finally:
        shm.close()
    return unpack_slot(data)


def fork_quiz() -> int:
    """Evaluate ``if fork() or fork(): fork()``; every process prints one line.

    Each child waits for its own children and exits with the size of its
    subtree, so the caller gets the total number of processes.
    """
    original = os.getpid()
    children: list[int] = []

    def spawn() -> int:
        sys.stdout.flush()
        pid = os.fork()
        if pid:
            children.append(pid)
        else:
            children.clear()
        return pid

    try:
        if spawn() or spawn():
            spawn()
        print("I'm a process", flush=True)
        total = 1 + sum(
            os.waitstatus_to_exitcode(os.waitpid(pid, 0)[1]) for pid in children
        )
    except BaseException:
        if os.getpid() != original:
            os._exit(1)
        raise
    if os.getpid() != original:
        os._exit(total)
    return total