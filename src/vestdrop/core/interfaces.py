"""
Collaborator Protocol Interfaces.

The airdrop contract depends on these protocols rather than concrete classes:
- a fungible asset exposing balance and transfer operations
- a source of the current timestamp
- an authorization oracle answering role membership

Any object with the right methods satisfies them, which keeps the contract
testable with fakes.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol, runtime_checkable

ZERO_ADDRESS = "0x" + "0" * 40


def is_zero_address(address: Optional[str]) -> bool:
    """True for the null reference (empty, None, or the all-zero address)."""
    return not address or address.lower() == ZERO_ADDRESS


@runtime_checkable
class FungibleAsset(Protocol):
    """Balance ledger of a single token."""

    address: str

    def balance_of(self, account: str) -> int:
        """Get the balance held by ``account``."""
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` from ``sender`` to ``recipient``; return False or raise on failure."""
        ...

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        """Move ``amount`` using an allowance granted to ``spender``; return False or raise on failure."""
        ...


@runtime_checkable
class RoleOracle(Protocol):
    """Answers whether an account holds a role."""

    def has_role(self, role: str, account: str) -> bool:
        ...


TimeProvider = Callable[[], int]
TokenResolver = Callable[[str], Optional[FungibleAsset]]
