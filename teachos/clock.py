"""CLOCK page replacement over a fixed ring of slots."""

from __future__ import annotations

import sys
from dataclasses import dataclass

CLOCKSIZE = 8

PTE_P = 0x001
PTE_A = 0x020
PTE_E = 0x200


@dataclass(eq=False)
class Page:
    """A virtual page and its page-table entry flags."""

    vpn: int
    pte: int = PTE_E

    @property
    def referenced(self) -> bool:
        return bool(self.pte & PTE_A)

    def encrypt(self) -> None:
        if self.pte & PTE_E:
            return
        self.pte |= PTE_E
        self.pte &= ~PTE_P

    def decrypt(self) -> None:
        if not self.pte & PTE_E:
            return
        self.pte &= ~PTE_E
        self.pte |= PTE_P


class ClockQueue:
    """Ring buffer of resident pages with a clock hand at the tail."""

    def __init__(self, size: int = CLOCKSIZE) -> None:
        if size < 1:
            raise ValueError("clock queue needs at least one slot")
        self.size = size
        self.clear()

    def clear(self) -> None:
        """Empty the queue."""
        self._slots: list[Page | None] = [None] * self.size
        self._hand = -1

    def insert(self, page: Page) -> None:
        """Place a page not already queued, evicting and encrypting a victim if needed."""
        while True:
            self._hand = (self._hand + 1) % self.size
            current = self._slots[self._hand]
            if current is None:
                break
            if not current.pte & PTE_A:
                current.encrypt()
                break
            current.pte &= ~PTE_A
        self._slots[self._hand] = page
        page.decrypt()

    def remove(self, vpn: int) -> bool:
        """Drop the page with this number, closing the gap; report whether it was queued."""
        prev_tail = self._hand
        ring = ((self._hand + i) % self.size for i in range(self.size))
        match = next(
            (idx for idx in ring if (s := self._slots[idx]) is not None and s.vpn == vpn),
            None,
        )
        if match is None:
            return False
        idx = match
        while idx != prev_tail:
            nxt = (idx + 1) % self.size
            self._slots[idx] = self._slots[nxt]
            idx = nxt
        self._slots[prev_tail] = None
        self._hand = self.size - 1 if self._hand == 0 else self._hand - 1
        return True

    def reference(self, page: Page) -> None:
        """Touch a page, faulting it into the queue when it is not present."""
        if not page.pte & PTE_P:
            self.insert(page)
        page.pte |= PTE_A

    def entries(self) -> list[Page]:
        """Queued pages from head to tail."""
        start = (self._hand + 1) % self.size
        ordered = self._slots[start:] + self._slots[:start]
        return [page for page in ordered if page is not None]

    def format(self) -> str:
        cells = "".join(
            f"VPN {page.vpn:X} R {int(page.referenced)} | " for page in self.entries()
        )
        return "CLK queue: | " + cells


def main(argv: list[str] | None = None) -> int:
    """Walk through a fixed reference string, printing the queue as it changes."""
    pgtable = [Page(vpn) for vpn in range(12)]
    clock = ClockQueue()

    def ref(*vpns: int) -> None:
        for vpn in vpns:
            print(f"Ref page {vpn:X}")
            clock.reference(pgtable[vpn])

    def remove(*vpns: int) -> None:
        for vpn in vpns:
            print(f"Remove page {vpn:X}")
            clock.remove(vpn)

    def show(wait: bool = True) -> None:
        if wait:
            print("Hit [Enter] to print...", end="", flush=True)
            sys.stdin.readline()
        print(clock.format())
        print()

    ref(0, 3, 1, 2)
    show(wait=False)
    ref(9, 7, 4, 6)
    show()
    ref(2)
    show()
    ref(10)
    show()
    ref(1, 2, 3)
    show()
    ref(11)
    show()
    remove(10, 11)
    show()
    return 0