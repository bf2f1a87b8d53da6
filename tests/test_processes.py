import os
import signal

import pytest

from teachos.processes import (
    SLOT_SIZE,
    fork_quiz,
    install_handlers,
    pack_slot,
    read_shared,
    run_workers,
    unpack_slot,
    write_shared,
)


def test_run_workers_greets_from_each_thread(capsys):
    idents = run_workers(4)
    lines = capsys.readouterr().out.splitlines()
    assert len(idents) == 4
    assert lines[-1] == "Hello from main thread"
    assert sorted(lines[:-1]) == sorted(f"Hello from worker {i}" for i in idents)


def test_handlers_report_and_exit(capsys):
    previous = install_handlers()
    try:
        assert set(previous) == {signal.SIGINT, signal.SIGTERM}
        with pytest.raises(SystemExit) as exc:
            signal.raise_signal(signal.SIGTERM)
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert f"Captured signal {int(signal.SIGTERM)}\n" in out
    assert out.endswith("Terminating...\n")


def test_slot_round_trip():
    data = pack_slot("Hello", 123)
    assert len(data) == SLOT_SIZE
    assert unpack_slot(data) == ("Hello", 123)


def test_slot_text_is_nul_terminated():
    data = pack_slot("Hello", 123)
    assert data.startswith(b"Hello\0")


def test_slot_rejects_long_text():
    with pytest.raises(ValueError):
        pack_slot("x" * 100, 1)


def test_unpack_slot_rejects_short_data():
    with pytest.raises(ValueError):
        unpack_slot(b"\0" * (SLOT_SIZE - 1))


def test_shared_memory_round_trip():
    name = f"teachos-test-{os.getpid()}"
    with write_shared(name, "Hello", 123):
        assert read_shared(name) == ("Hello", 123)
    with pytest.raises(FileNotFoundError):
        read_shared(name)


def test_read_missing_shared_memory():
    with pytest.raises(FileNotFoundError):
        read_shared(f"teachos-missing-{os.getpid()}")