"""
Per-recipient allocation ledger.

Entries are keyed by (campaign id, recipient address) and hold the
allocation and the cumulative amount already paid out. Entries are never
deleted; ``claimed`` only grows and never exceeds ``total_allocation``.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .exceptions import AirdropError

logger = logging.getLogger(__name__)

AllocationKey = Tuple[int, str]


@dataclass
class Allocation:
    """Amount owed to one recipient within one campaign."""

    total_allocation: int = 0
    claimed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class AllocationLedger:
    """Arena of allocation entries keyed by (campaign_id, recipient)."""

    entries: Dict[AllocationKey, Allocation] = field(default_factory=dict)

    # Undo journal: prior value of every key touched since begin(); None = key was absent
    _journal: Optional[Dict[AllocationKey, Optional[Allocation]]] = field(
        default=None, repr=False, compare=False
    )

    @staticmethod
    def _key(campaign_id: int, recipient: str) -> AllocationKey:
        return (campaign_id, recipient.lower())

    def get(self, campaign_id: int, recipient: str) -> Allocation:
        """Return the entry, or an unattached zero entry for unknown keys."""
        return self.entries.get(self._key(campaign_id, recipient), Allocation())

    def allocation_of(self, campaign_id: int, recipient: str) -> int:
        return self.get(campaign_id, recipient).total_allocation

    def claimed_of(self, campaign_id: int, recipient: str) -> int:
        return self.get(campaign_id, recipient).claimed

    def _touch(self, key: AllocationKey) -> Allocation:
        """Return the live entry for key, creating it, and journal its prior value."""
        entry = self.entries.get(key)
        if self._journal is not None and key not in self._journal:
            self._journal[key] = copy.copy(entry) if entry is not None else None
        if entry is None:
            entry = Allocation()
            self.entries[key] = entry
        return entry

    def set_allocation(self, campaign_id: int, recipient: str, amount: int) -> int:
        """
        Overwrite a recipient's allocation.

        Args:
            campaign_id: Campaign the entry belongs to
            recipient: Recipient address
            amount: New allocation

        Returns:
            Signed delta versus the previous allocation (a new entry
            starts from 0)
        """
        key = self._key(campaign_id, recipient)
        current = self.entries.get(key, Allocation())
        if amount < current.claimed:
            raise AirdropError(
                "allocation below claimed amount",
                details={"campaign_id": campaign_id, "recipient": key[1]},
            )
        entry = self._touch(key)
        delta = amount - entry.total_allocation
        entry.total_allocation = amount
        return delta

    def record_claim(self, campaign_id: int, recipient: str, amount: int) -> int:
        """Increase the cumulative claimed amount and return the new total."""
        key = self._key(campaign_id, recipient)
        current = self.entries.get(key)
        if current is None or current.claimed + amount > current.total_allocation:
            raise AirdropError(
                "claim exceeds allocation",
                details={"campaign_id": campaign_id, "recipient": key[1], "amount": amount},
            )
        entry = self._touch(key)
        entry.claimed += amount
        return entry.claimed

    # ==================== Journal ====================

    def begin(self) -> None:
        """Start recording undo information for one operation."""
        self._journal = {}

    def commit(self) -> None:
        self._journal = None

    def rollback(self) -> None:
        """Undo every change made since begin()."""
        if self._journal is None:
            return
        for key, original in self._journal.items():
            if original is None:
                self.entries.pop(key, None)
            else:
                self.entries[key] = original
        logger.debug(
            "AllocationLedger rolled back",
            extra={"event": "ledger.rolled_back", "entries": len(self._journal)},
        )
        self._journal = None

    def iter_campaign(self, campaign_id: int) -> Iterator[Tuple[str, Allocation]]:
        for (cid, recipient), entry in self.entries.items():
            if cid == campaign_id:
                yield recipient, entry

    def recipients(self, campaign_id: int) -> List[str]:
        return [recipient for recipient, _ in self.iter_campaign(campaign_id)]

    def sum_allocations(self, campaign_id: int) -> int:
        """Full scan of a campaign's entries; used for audits, never for bookkeeping."""
        return sum(entry.total_allocation for _, entry in self.iter_campaign(campaign_id))

    def sum_claimed(self, campaign_id: int) -> int:
        return sum(entry.claimed for _, entry in self.iter_campaign(campaign_id))

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        campaigns: Dict[str, Dict[str, Dict[str, int]]] = {}
        for (cid, recipient), entry in self.entries.items():
            campaigns.setdefault(str(cid), {})[recipient] = entry.to_dict()
        return {"campaigns": campaigns}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AllocationLedger":
        ledger = cls()
        for cid, recipients in data.get("campaigns", {}).items():
            for recipient, entry in recipients.items():
                ledger.entries[(int(cid), recipient.lower())] = Allocation(**entry)
        return ledger
