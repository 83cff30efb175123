"""
Contract event records.

Events are appended to an in-memory log as operations commit; the log is
part of the contract snapshot so a failed operation never leaves a stray
event behind.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

CAMPAIGN_CREATED = "CampaignCreated"
RECIPIENTS_ADDED = "RecipientsAdded"
CAMPAIGN_FINALIZED = "CampaignFinalized"
TOKENS_CLAIMED = "TokensClaimed"
UNCLAIMED_TOKENS_WITHDRAWN = "UnclaimedTokensWithdrawn"
PAUSED = "Paused"
UNPAUSED = "Unpaused"
ROLE_GRANTED = "RoleGranted"
ROLE_REVOKED = "RoleRevoked"


@dataclass
class ContractEvent:
    """Represents an emitted airdrop event."""

    event_type: str
    args: Dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractEvent":
        return cls(
            event_type=data["event_type"],
            args=dict(data.get("args", {})),
            timestamp=data.get("timestamp", 0),
        )


@dataclass
class EventLog:
    """Append-only list of committed events."""

    events: List[ContractEvent] = field(default_factory=list)

    def emit(self, event_type: str, timestamp: int, **args: Any) -> ContractEvent:
        event = ContractEvent(event_type=event_type, args=args, timestamp=timestamp)
        self.events.append(event)
        return event

    def of_type(self, event_type: str) -> List[ContractEvent]:
        return [event for event in self.events if event.event_type == event_type]

    def last(self) -> ContractEvent | None:
        return self.events[-1] if self.events else None

    def __len__(self) -> int:
        return len(self.events)

    def truncate(self, length: int) -> None:
        """Drop events appended after the log had ``length`` entries."""
        del self.events[length:]

    def get_state(self) -> List[Dict[str, Any]]:
        return [event.to_dict() for event in self.events]

    def restore_state(self, state: List[Dict[str, Any]]) -> None:
        self.events = [ContractEvent.from_dict(item) for item in state]
