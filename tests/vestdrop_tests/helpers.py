"""Addresses, amounts and a controllable clock shared by the airdrop tests."""

from __future__ import annotations

ADMIN = "0x" + "aa" * 20
RECIPIENT1 = "0x" + "11" * 20
RECIPIENT2 = "0x" + "22" * 20
OUTSIDER = "0x" + "ee" * 20
ZERO = "0x" + "00" * 20

T0 = 1_700_000_000
ONE = 10**18
TOTAL_TOKENS = 1000 * ONE
THIRTY_DAYS = 86400 * 30


class FakeClock:
    """Deterministic time provider."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now

    def set(self, timestamp: int) -> int:
        self.now = timestamp
        return self.now


def recipient(index: int) -> str:
    """Deterministic non-zero address for bulk recipient lists."""
    return "0x" + format(index + 1, "040x")


class RefusingAsset:
    """
    Token wrapper whose transfers can be switched to report failure.

    A refused call returns False without moving anything, the way a
    non-reverting token signals failure.
    """

    def __init__(self, token) -> None:
        self.token = token
        self.address = token.address
        self.refuse_transfer = False
        self.refuse_transfer_from = False

    def __call__(self, address: str):
        return self if address and address.lower() == self.address else None

    def balance_of(self, account: str) -> int:
        return self.token.balance_of(account)

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        if self.refuse_transfer:
            return False
        return self.token.transfer(sender, recipient, amount)

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        if self.refuse_transfer_from:
            return False
        return self.token.transfer_from(spender, from_addr, to_addr, amount)
