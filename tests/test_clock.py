import io

import pytest

from teachos.clock import PTE_A, PTE_E, PTE_P, ClockQueue, Page, main


def pages(n):
    return [Page(vpn) for vpn in range(n)]


def vpns(queue):
    return [page.vpn for page in queue.entries()]


def test_pages_queued_in_reference_order():
    table = pages(4)
    queue = ClockQueue()
    for vpn in (0, 3, 1, 2):
        queue.reference(table[vpn])
    assert vpns(queue) == [0, 3, 1, 2]
    for page in queue.entries():
        assert page.pte & PTE_P
        assert page.pte & PTE_A
        assert not page.pte & PTE_E


def test_present_page_reference_keeps_queue():
    table = pages(3)
    queue = ClockQueue(3)
    for page in table:
        queue.reference(page)
    table[1].pte &= ~PTE_A
    queue.reference(table[1])
    assert vpns(queue) == [0, 1, 2]
    assert table[1].referenced


def test_eviction_encrypts_victim():
    table = pages(3)
    queue = ClockQueue(2)
    queue.reference(table[0])
    queue.reference(table[1])
    queue.reference(table[2])
    assert vpns(queue) == [1, 2]
    assert table[0].pte & PTE_E
    assert not table[0].pte & PTE_P
    assert not table[1].referenced
    assert table[2].referenced


def test_second_chance_demo_sequence():
    table = pages(11)
    queue = ClockQueue()
    for vpn in (0, 3, 1, 2, 9, 7, 4, 6, 2, 10):
        queue.reference(table[vpn])
    assert vpns(queue) == [3, 1, 2, 9, 7, 4, 6, 10]
    assert table[0].pte & PTE_E


def test_queue_never_exceeds_size():
    table = pages(20)
    queue = ClockQueue(4)
    for page in table:
        queue.reference(page)
        assert len(queue.entries()) <= 4


def test_remove_closes_gap():
    table = pages(5)
    queue = ClockQueue()
    for page in table[:4]:
        queue.reference(page)
    assert queue.remove(1) is True
    assert vpns(queue) == [0, 2, 3]
    queue.reference(table[4])
    assert vpns(queue) == [0, 2, 3, 4]


def test_remove_missing_page():
    queue = ClockQueue()
    queue.reference(Page(5))
    assert queue.remove(9) is False
    assert vpns(queue) == [5]


def test_clear_empties_queue():
    queue = ClockQueue()
    queue.reference(Page(1))
    queue.clear()
    assert queue.entries() == []


def test_format_empty_and_one_page():
    queue = ClockQueue()
    assert queue.format() == "CLK queue: | "
    queue.reference(Page(10))
    assert queue.format() == "CLK queue: | VPN A R 1 | "


def test_zero_size_rejected():
    with pytest.raises(ValueError):
        ClockQueue(0)


def test_page_encrypt_decrypt_round_trip():
    page = Page(3)
    page.decrypt()
    assert page.pte & (PTE_P | PTE_E) == PTE_P
    page.encrypt()
    assert page.pte & (PTE_P | PTE_E) == PTE_E
    page.encrypt()
    assert page.pte & (PTE_P | PTE_E) == PTE_E


def test_main_demo(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("\n" * 10))
    assert main([]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Ref page 0\n")
    assert "Remove page A\nRemove page B\n" in out
    assert out.count("CLK queue:") == 7