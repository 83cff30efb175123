"""
Campaign registry.

Maps sequential campaign ids to campaign metadata: the token being
distributed, the running allocation total, and the vesting schedule locked
at finalization. Ids start at 0 and are never reused; campaigns are never
deleted.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from .exceptions import (
    CampaignAlreadyFinalized,
    CampaignNotFound,
    InvalidTokenAddress,
    InvalidVestingStart,
    ZeroAmount,
)
from .interfaces import ZERO_ADDRESS, is_zero_address
from .vesting import vesting_end

logger = logging.getLogger(__name__)


@dataclass
class Campaign:
    """Stored metadata of one campaign."""

    campaign_id: int
    token: str
    total_allocated: int = 0
    finalized: bool = False
    vesting_start: int = 0
    vesting_duration: int = 0
    # Running sums kept alongside the ledger for campaign-scoped recovery
    total_claimed: int = 0
    total_withdrawn: int = 0

    @property
    def escrowed(self) -> int:
        """Tokens pulled into the contract for this campaign (funded at finalization)."""
        return self.total_allocated if self.finalized else 0

    @property
    def remaining_escrow(self) -> int:
        return self.escrowed - self.total_claimed - self.total_withdrawn

    @property
    def vesting_end(self) -> int:
        return vesting_end(self.vesting_start, self.vesting_duration)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Campaign":
        return cls(**data)


@dataclass
class CampaignRegistry:
    """
    Campaign id allocator and metadata store.

    ``total_allocated`` is only ever adjusted by deltas handed in by the
    allocation ledger; it is never recomputed by scanning entries.
    """

    campaigns: Dict[int, Campaign] = field(default_factory=dict)
    next_campaign_id: int = 0

    # ==================== Mutations ====================

    def create(self, token: str) -> Campaign:
        """
        Allocate the next id and store an open campaign for ``token``.

        Raises:
            InvalidTokenAddress: If token is the null reference
        """
        if is_zero_address(token):
            raise InvalidTokenAddress("token is zero address", details={"token": token})

        campaign = Campaign(campaign_id=self.next_campaign_id, token=token.lower())
        self.campaigns[campaign.campaign_id] = campaign
        self.next_campaign_id += 1
        return campaign

    def adjust_total(self, campaign_id: int, delta: int) -> int:
        """Apply a signed allocation delta to an open campaign and return the new total."""
        campaign = self.require_open(campaign_id)
        campaign.total_allocated += delta
        return campaign.total_allocated

    def finalize(
        self,
        campaign_id: int,
        vesting_start: int,
        vesting_duration: int,
        now: int,
        max_start_delay: Optional[int] = None,
    ) -> Campaign:
        """
        Lock the vesting schedule of a campaign.

        Args:
            campaign_id: Campaign to finalize
            vesting_start: Timestamp when vesting begins (must be after ``now``)
            vesting_duration: Linear release length in seconds (>= 0)
            now: Current timestamp
            max_start_delay: Optional cap on ``vesting_start - now``

        Raises:
            CampaignNotFound, CampaignAlreadyFinalized, ZeroAmount, InvalidVestingStart
        """
        campaign = self.require_open(campaign_id)
        if campaign.total_allocated == 0:
            raise ZeroAmount(
                "campaign has no allocations", details={"campaign_id": campaign_id}
            )
        if vesting_start <= now:
            raise InvalidVestingStart(
                "vesting start must be in the future",
                details={"vesting_start": vesting_start, "now": now},
            )
        if max_start_delay is not None and vesting_start > now + max_start_delay:
            raise InvalidVestingStart(
                "vesting start exceeds maximum delay",
                details={
                    "vesting_start": vesting_start,
                    "now": now,
                    "max_start_delay": max_start_delay,
                },
            )
        if vesting_duration < 0:
            raise InvalidVestingStart(
                "vesting duration cannot be negative",
                details={"vesting_duration": vesting_duration},
            )

        campaign.vesting_start = vesting_start
        campaign.vesting_duration = vesting_duration
        campaign.finalized = True
        return campaign

    def record_claim(self, campaign_id: int, amount: int) -> None:
        self.require(campaign_id).total_claimed += amount

    def record_withdrawal(self, campaign_id: int, amount: int) -> None:
        self.require(campaign_id).total_withdrawn += amount

    # ==================== Lookups ====================

    def get(self, campaign_id: int) -> Optional[Campaign]:
        return self.campaigns.get(campaign_id)

    def require(self, campaign_id: int) -> Campaign:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            raise CampaignNotFound(
                f"campaign {campaign_id} not found", details={"campaign_id": campaign_id}
            )
        return campaign

    def require_open(self, campaign_id: int) -> Campaign:
        campaign = self.require(campaign_id)
        if campaign.finalized:
            raise CampaignAlreadyFinalized(
                f"campaign {campaign_id} is finalized", details={"campaign_id": campaign_id}
            )
        return campaign

    # Zero-value accessors: unknown ids read as defaults and never raise

    def token_of(self, campaign_id: int) -> str:
        campaign = self.campaigns.get(campaign_id)
        return campaign.token if campaign else ZERO_ADDRESS

    def total_allocated_of(self, campaign_id: int) -> int:
        campaign = self.campaigns.get(campaign_id)
        return campaign.total_allocated if campaign else 0

    def is_finalized(self, campaign_id: int) -> bool:
        campaign = self.campaigns.get(campaign_id)
        return campaign.finalized if campaign else False

    def vesting_start_of(self, campaign_id: int) -> int:
        campaign = self.campaigns.get(campaign_id)
        return campaign.vesting_start if campaign else 0

    def vesting_duration_of(self, campaign_id: int) -> int:
        campaign = self.campaigns.get(campaign_id)
        return campaign.vesting_duration if campaign else 0

    def recoverable_of(self, campaign_id: int) -> int:
        campaign = self.campaigns.get(campaign_id)
        return campaign.remaining_escrow if campaign else 0

    # ==================== Snapshots ====================

    def get_state(self) -> Dict[str, Any]:
        """Get current registry state for snapshotting."""
        return {
            "campaigns": copy.deepcopy(self.campaigns),
            "next_campaign_id": self.next_campaign_id,
        }

    def restore_state(self, state: Dict[str, Any]) -> None:
        """Restore registry state from a snapshot taken by get_state()."""
        self.campaigns = copy.deepcopy(state.get("campaigns", {}))
        self.next_campaign_id = state.get("next_campaign_id", 0)
        logger.debug("CampaignRegistry state restored from snapshot.")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "next_campaign_id": self.next_campaign_id,
            "campaigns": {str(cid): c.to_dict() for cid, c in self.campaigns.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CampaignRegistry":
        return cls(
            campaigns={
                int(cid): Campaign.from_dict(item)
                for cid, item in data.get("campaigns", {}).items()
            },
            next_campaign_id=data.get("next_campaign_id", 0),
        )
