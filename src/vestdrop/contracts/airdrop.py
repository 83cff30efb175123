"""
Vesting Airdrop Contract.

Distributes a fixed supply of an ERC20-style token to many recipients,
organized into independent campaigns:

- create_campaign: allocate a campaign id for a token
- add_recipients / change_user_allocation: edit allocations while open
- finalize_campaign: lock the linear vesting schedule and pull funding
- claim: recipients withdraw whatever has vested so far
- withdraw_unclaimed_tokens: admins recover the campaign's leftover escrow
  once the schedule has ended

Every entry point is all-or-nothing. Each runs inside a section that
snapshots the registry, ledger, roles, pause switch and event log, and
restores the snapshot if anything raises, including the token collaborator.

Recovery is scoped to a single campaign: the contract never hands out more
of a token than the campaign itself escrowed, even when several campaigns
share the same token.
"""

from __future__ import annotations

import hashlib
import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ..core import events as ev
from ..core.access_control import Role, RoleBasedAccessControl
from ..core.allocations import AllocationLedger
from ..core.campaigns import Campaign, CampaignRegistry
from ..core.config import MAX_RECIPIENTS_PER_BATCH, AirdropConfig, VestingStartDelayPolicy
from ..core.events import ContractEvent, EventLog
from ..core.exceptions import (
    AccessControlUnauthorizedAccount,
    ArraysMismatch,
    ArrayTooLarge,
    AllocationNotChanged,
    CampaignNotFinalized,
    InvalidAddress,
    NoTokensToClaim,
    TokenOperationError,
    VestingNotEnded,
    ZeroAmount,
)
from ..core.interfaces import (
    FungibleAsset,
    RoleOracle,
    TimeProvider,
    TokenResolver,
    is_zero_address,
)
from ..core.pause import PauseGuard
from ..core.vesting import claimable_amount

logger = logging.getLogger(__name__)


class AirdropERC20:
    """
    Campaign-based vesting airdrop.

    Args:
        admin: Initial holder of DEFAULT_ADMIN and ADMIN
        token_resolver: Maps a token address to its FungibleAsset
        time_provider: Returns the current integer timestamp
        config: Deployment configuration (vesting start delay cap)
        address: Contract address; derived from the admin when omitted
        role_oracle: Authorization oracle; defaults to the built-in role store
    """

    def __init__(
        self,
        admin: str,
        token_resolver: TokenResolver,
        time_provider: Optional[TimeProvider] = None,
        config: Optional[AirdropConfig] = None,
        address: str = "",
        role_oracle: Optional[RoleOracle] = None,
    ) -> None:
        if is_zero_address(admin):
            raise InvalidAddress("admin is zero address")

        self.config = config or AirdropConfig()
        self.token_resolver = token_resolver
        self._time_provider = time_provider or (lambda: int(time.time()))

        if not address:
            addr_hash = hashlib.sha3_256(f"airdrop:{admin.lower()}:{time.time_ns()}".encode()).digest()
            address = f"0x{addr_hash[-20:].hex()}"
        self.address = address.lower()

        self.access_control = RoleBasedAccessControl(admin_address=admin)
        self.role_oracle: RoleOracle = role_oracle or self.access_control
        self.pause_guard = PauseGuard(self.role_oracle, Role.ADMIN)
        self.registry = CampaignRegistry()
        self.ledger = AllocationLedger()
        self.event_log = EventLog()

        logger.info(
            "AirdropERC20 deployed",
            extra={
                "event": "airdrop.deployed",
                "address": self.address,
                "admin": admin[:10],
                "max_start_delay": self.config.max_start_delay,
            },
        )

    # ==================== Environment ====================

    def _current_time(self) -> int:
        timestamp = self._time_provider()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc

    def _resolve_token(self, token_address: str) -> FungibleAsset:
        token = self.token_resolver(token_address)
        if token is None:
            raise TokenOperationError(
                f"token {token_address} is not available", details={"token": token_address}
            )
        return token

    @staticmethod
    def _require_transfer(result: bool, operation: str, token_address: str, amount: int) -> None:
        """Treat a falsy result from the asset as a failed transfer."""
        if not result:
            raise TokenOperationError(
                f"token {operation} of {amount} failed",
                details={"token": token_address, "operation": operation, "amount": amount},
            )

    def _snapshot(self) -> Dict[str, Any]:
        # Ledger changes are journaled per key; everything else is small enough to copy
        self.ledger.begin()
        return {
            "registry": self.registry.get_state(),
            "roles": self.access_control.get_state(),
            "pause": self.pause_guard.get_state(),
            "events": len(self.event_log),
        }

    def _restore(self, snapshot: Dict[str, Any]) -> None:
        self.registry.restore_state(snapshot["registry"])
        self.access_control.restore_state(snapshot["roles"])
        self.pause_guard.restore_state(snapshot["pause"])
        self.event_log.truncate(snapshot["events"])
        self.ledger.rollback()

    @contextmanager
    def _atomic(self, operation: str, caller: str) -> Iterator[None]:
        """Run one entry point; on any exception restore the pre-call state and re-raise."""
        snapshot = self._snapshot()
        try:
            yield
            self.ledger.commit()
        except Exception as exc:
            self._restore(snapshot)
            logger.warning(
                "Airdrop %s rejected: %s",
                operation,
                getattr(exc, "code", type(exc).__name__),
                extra={
                    "event": f"airdrop.{operation}.rejected",
                    "caller": (caller or "")[:10],
                    "error": getattr(exc, "code", type(exc).__name__),
                },
            )
            raise

    def _require_admin(self, caller: str) -> None:
        if not self.role_oracle.has_role(Role.ADMIN.value, caller):
            logger.warning(
                "Access denied: %s is not an airdrop admin", caller,
                extra={"event": "airdrop.unauthorized", "caller": (caller or "")[:10]},
            )
            raise AccessControlUnauthorizedAccount(caller, Role.ADMIN.value)

    def _emit(self, event_type: str, now: int, **args: Any) -> ContractEvent:
        return self.event_log.emit(event_type, now, **args)

    @staticmethod
    def _validate_amount(amount: int) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise ValueError("amount must be an integer number of base units")
        if amount < 0:
            raise ValueError("amount cannot be negative")

    # ==================== Campaign Registry ====================

    def create_campaign(self, caller: str, token: str) -> int:
        """
        Create an open campaign distributing ``token``.

        Args:
            caller: Address calling (must hold ADMIN)
            token: Address of the token to distribute

        Returns:
            The new campaign id

        Raises:
            AccessControlUnauthorizedAccount, EnforcedPause, InvalidTokenAddress
        """
        with self._atomic("create_campaign", caller):
            now = self._current_time()
            campaign = self._create_campaign(caller, now, token)
        return campaign.campaign_id

    def _create_campaign(self, caller: str, now: int, token: str) -> Campaign:
        self._require_admin(caller)
        self.pause_guard.require_not_paused()

        campaign = self.registry.create(token)
        self._emit(ev.CAMPAIGN_CREATED, now, campaign_id=campaign.campaign_id, token=campaign.token)

        logger.info(
            "Campaign created",
            extra={
                "event": "airdrop.campaign_created",
                "campaign_id": campaign.campaign_id,
                "token": campaign.token[:10],
            },
        )
        return campaign

    def finalize_campaign(
        self,
        caller: str,
        campaign_id: int,
        vesting_start: int,
        vesting_duration: int,
    ) -> None:
        """
        Lock a campaign's schedule and pull its funding from the caller.

        The caller must have approved this contract for at least the
        campaign's total allocation on the campaign token.

        Raises:
            CampaignNotFound, CampaignAlreadyFinalized, ZeroAmount,
            InvalidVestingStart, TokenOperationError
        """
        with self._atomic("finalize_campaign", caller):
            now = self._current_time()
            self._finalize_campaign(caller, now, campaign_id, vesting_start, vesting_duration)

    def _finalize_campaign(
        self,
        caller: str,
        now: int,
        campaign_id: int,
        vesting_start: int,
        vesting_duration: int,
    ) -> None:
        self._require_admin(caller)
        self.pause_guard.require_not_paused()

        campaign = self.registry.finalize(
            campaign_id,
            vesting_start,
            vesting_duration,
            now,
            max_start_delay=self.config.max_start_delay,
        )
        token = self._resolve_token(campaign.token)
        self._require_transfer(
            token.transfer_from(self.address, caller, self.address, campaign.total_allocated),
            "transfer_from", campaign.token, campaign.total_allocated,
        )

        self._emit(ev.CAMPAIGN_FINALIZED, now, campaign_id=campaign_id)
        logger.info(
            "Campaign finalized",
            extra={
                "event": "airdrop.campaign_finalized",
                "campaign_id": campaign_id,
                "total_allocated": campaign.total_allocated,
                "vesting_start": vesting_start,
                "vesting_duration": vesting_duration,
            },
        )

    # ==================== Allocation Ledger ====================

    def add_recipients(
        self,
        caller: str,
        campaign_id: int,
        addresses: Sequence[str],
        amounts: Sequence[int],
    ) -> None:
        """
        Set the allocations of a batch of recipients.

        Each pair overwrites the recipient's allocation, so resubmitting a
        batch is a correction rather than an addition.

        Raises:
            CampaignNotFound, CampaignAlreadyFinalized, ArraysMismatch,
            ArrayTooLarge, InvalidAddress, ZeroAmount
        """
        with self._atomic("add_recipients", caller):
            now = self._current_time()
            self._add_recipients(caller, now, campaign_id, addresses, amounts)

    def _add_recipients(
        self,
        caller: str,
        now: int,
        campaign_id: int,
        addresses: Sequence[str],
        amounts: Sequence[int],
    ) -> None:
        self._require_admin(caller)
        self.pause_guard.require_not_paused()
        self.registry.require_open(campaign_id)

        if len(addresses) != len(amounts):
            raise ArraysMismatch(
                "addresses and amounts differ in length",
                details={"addresses": len(addresses), "amounts": len(amounts)},
            )
        if len(addresses) > MAX_RECIPIENTS_PER_BATCH:
            raise ArrayTooLarge(
                f"batch exceeds {MAX_RECIPIENTS_PER_BATCH} recipients",
                details={"size": len(addresses), "max": MAX_RECIPIENTS_PER_BATCH},
            )

        for recipient, amount in zip(addresses, amounts):
            if is_zero_address(recipient):
                raise InvalidAddress("recipient is zero address", details={"recipient": recipient})
            self._validate_amount(amount)
            if amount == 0:
                raise ZeroAmount("allocation cannot be zero", details={"recipient": recipient})
            delta = self.ledger.set_allocation(campaign_id, recipient, amount)
            self.registry.adjust_total(campaign_id, delta)

        self._emit(ev.RECIPIENTS_ADDED, now, campaign_id=campaign_id, count=len(addresses))
        logger.info(
            "Recipients added",
            extra={
                "event": "airdrop.recipients_added",
                "campaign_id": campaign_id,
                "count": len(addresses),
                "total_allocated": self.registry.total_allocated_of(campaign_id),
            },
        )

    def change_user_allocation(
        self,
        caller: str,
        campaign_id: int,
        address: str,
        new_amount: int,
    ) -> None:
        """
        Change one recipient's allocation in an open campaign.

        Setting the value already stored is rejected so operator mistakes
        surface instead of passing silently.

        Raises:
            InvalidAddress, CampaignNotFound, CampaignAlreadyFinalized,
            AllocationNotChanged
        """
        with self._atomic("change_user_allocation", caller):
            now = self._current_time()
            self._change_user_allocation(caller, now, campaign_id, address, new_amount)

    def _change_user_allocation(
        self,
        caller: str,
        now: int,
        campaign_id: int,
        address: str,
        new_amount: int,
    ) -> None:
        self._require_admin(caller)
        self.pause_guard.require_not_paused()

        if is_zero_address(address):
            raise InvalidAddress("recipient is zero address", details={"recipient": address})
        self.registry.require_open(campaign_id)
        self._validate_amount(new_amount)

        current = self.ledger.allocation_of(campaign_id, address)
        if new_amount == current:
            raise AllocationNotChanged(
                "allocation already has this value",
                details={"campaign_id": campaign_id, "recipient": address, "amount": current},
            )
        delta = self.ledger.set_allocation(campaign_id, address, new_amount)
        total = self.registry.adjust_total(campaign_id, delta)

        logger.info(
            "Allocation changed",
            extra={
                "event": "airdrop.allocation_changed",
                "campaign_id": campaign_id,
                "recipient": address[:10],
                "delta": delta,
                "total_allocated": total,
                "timestamp": now,
            },
        )

    # ==================== Claims & Recovery ====================

    def claim(self, caller: str, campaign_id: int) -> int:
        """
        Pay the caller everything vested and not yet claimed.

        Returns:
            Amount transferred

        Raises:
            EnforcedPause, CampaignNotFinalized, NoTokensToClaim, TokenOperationError
        """
        with self._atomic("claim", caller):
            now = self._current_time()
            amount = self._claim(caller, now, campaign_id)
        return amount

    def _claim(self, caller: str, now: int, campaign_id: int) -> int:
        self.pause_guard.require_not_paused()

        campaign = self.registry.get(campaign_id)
        if campaign is None or not campaign.finalized:
            raise CampaignNotFinalized(
                f"campaign {campaign_id} is not finalized", details={"campaign_id": campaign_id}
            )

        amount = self._claimable(campaign, caller, now)
        if amount == 0:
            raise NoTokensToClaim(
                "nothing to claim",
                details={"campaign_id": campaign_id, "recipient": caller},
            )

        self.ledger.record_claim(campaign_id, caller, amount)
        self.registry.record_claim(campaign_id, amount)
        token = self._resolve_token(campaign.token)
        self._require_transfer(
            token.transfer(self.address, caller, amount), "transfer", campaign.token, amount
        )

        self._emit(
            ev.TOKENS_CLAIMED, now, campaign_id=campaign_id, recipient=caller.lower(), amount=amount
        )
        logger.info(
            "Tokens claimed",
            extra={
                "event": "airdrop.tokens_claimed",
                "campaign_id": campaign_id,
                "recipient": caller[:10],
                "amount": amount,
            },
        )
        return amount

    def withdraw_unclaimed_tokens(self, caller: str, campaign_id: int, to: str) -> int:
        """
        Recover a campaign's leftover escrow after its schedule has ended.

        Only the campaign's own remainder (escrowed minus claimed minus
        already withdrawn) is sent; repeating the call transfers zero.

        Returns:
            Amount transferred

        Raises:
            AccessControlUnauthorizedAccount, EnforcedPause, InvalidAddress,
            CampaignNotFound, VestingNotEnded, TokenOperationError
        """
        with self._atomic("withdraw_unclaimed_tokens", caller):
            now = self._current_time()
            amount = self._withdraw_unclaimed_tokens(caller, now, campaign_id, to)
        return amount

    def _withdraw_unclaimed_tokens(self, caller: str, now: int, campaign_id: int, to: str) -> int:
        self._require_admin(caller)
        self.pause_guard.require_not_paused()

        if is_zero_address(to):
            raise InvalidAddress("destination is zero address", details={"to": to})
        campaign = self.registry.require(campaign_id)
        if now < campaign.vesting_end:
            raise VestingNotEnded(
                "vesting has not ended",
                details={"campaign_id": campaign_id, "vesting_end": campaign.vesting_end, "now": now},
            )

        amount = campaign.remaining_escrow
        self.registry.record_withdrawal(campaign_id, amount)
        token = self._resolve_token(campaign.token)
        self._require_transfer(
            token.transfer(self.address, to, amount), "transfer", campaign.token, amount
        )

        self._emit(
            ev.UNCLAIMED_TOKENS_WITHDRAWN, now, campaign_id=campaign_id, to=to.lower(), amount=amount
        )
        logger.info(
            "Unclaimed tokens withdrawn",
            extra={
                "event": "airdrop.unclaimed_withdrawn",
                "campaign_id": campaign_id,
                "to": to[:10],
                "amount": amount,
            },
        )
        return amount

    def _claimable(self, campaign: Campaign, recipient: str, now: int) -> int:
        entry = self.ledger.get(campaign.campaign_id, recipient)
        vested_unclaimed = claimable_amount(
            entry.total_allocation,
            entry.claimed,
            campaign.vesting_start,
            campaign.vesting_duration,
            now,
        )
        # Never pay beyond what is left of this campaign's escrow
        return min(vested_unclaimed, max(0, campaign.remaining_escrow))

    # ==================== Access & Lifecycle Guard ====================

    def pause(self, caller: str, reason: str = "Manual emergency pause") -> None:
        """Pause every gated entry point (ADMIN only)."""
        with self._atomic("pause", caller):
            now = self._current_time()
            self.pause_guard.pause(caller, now, reason)
            self._emit(ev.PAUSED, now, account=caller.lower(), paused=True)

    def unpause(self, caller: str, reason: str = "Manual unpause") -> None:
        """Resume gated entry points (ADMIN only)."""
        with self._atomic("unpause", caller):
            now = self._current_time()
            self.pause_guard.unpause(caller, now, reason)
            self._emit(ev.UNPAUSED, now, account=caller.lower(), paused=False)

    def grant_role(self, caller: str, role: Role | str, account: str) -> bool:
        """Grant a role (DEFAULT_ADMIN only). Returns False if already held."""
        with self._atomic("grant_role", caller):
            now = self._current_time()
            changed = self.access_control.grant_role(caller, role, account, timestamp=now)
            if changed:
                self._emit(
                    ev.ROLE_GRANTED, now,
                    role=role.value if isinstance(role, Role) else role,
                    account=account.lower(),
                    sender=caller.lower(),
                )
        return changed

    def revoke_role(self, caller: str, role: Role | str, account: str) -> bool:
        """Revoke a role (DEFAULT_ADMIN only). Returns False if not held."""
        with self._atomic("revoke_role", caller):
            now = self._current_time()
            changed = self.access_control.revoke_role(caller, role, account, timestamp=now)
            if changed:
                self._emit(
                    ev.ROLE_REVOKED, now,
                    role=role.value if isinstance(role, Role) else role,
                    account=account.lower(),
                    sender=caller.lower(),
                )
        return changed

    # ==================== View Functions ====================

    @property
    def paused(self) -> bool:
        return self.pause_guard.is_paused()

    @property
    def events(self) -> List[ContractEvent]:
        return self.event_log.events

    def has_role(self, role: Role | str, account: str) -> bool:
        return self.role_oracle.has_role(role.value if isinstance(role, Role) else role, account)

    def get_next_campaign_id(self) -> int:
        return self.registry.next_campaign_id

    def get_campaign_token(self, campaign_id: int) -> str:
        return self.registry.token_of(campaign_id)

    def get_campaign_total_amount(self, campaign_id: int) -> int:
        return self.registry.total_allocated_of(campaign_id)

    def get_campaign_finalized(self, campaign_id: int) -> bool:
        return self.registry.is_finalized(campaign_id)

    def get_campaign_vesting_start(self, campaign_id: int) -> int:
        return self.registry.vesting_start_of(campaign_id)

    def get_campaign_vesting_duration(self, campaign_id: int) -> int:
        return self.registry.vesting_duration_of(campaign_id)

    def get_campaign_recipient_info(self, campaign_id: int, recipient: str) -> Tuple[int, int]:
        """Return (total_allocation, claimed) for a recipient, zeros when unknown."""
        entry = self.ledger.get(campaign_id, recipient)
        return entry.total_allocation, entry.claimed

    def get_claimable_amount(
        self, campaign_id: int, recipient: str, at: Optional[int] = None
    ) -> int:
        """Amount ``recipient`` could claim now (or at ``at``); 0 for unfinalized campaigns."""
        campaign = self.registry.get(campaign_id)
        if campaign is None or not campaign.finalized:
            return 0
        now = self._current_time() if at is None else at
        return self._claimable(campaign, recipient, now)

    def get_campaign_recoverable_amount(self, campaign_id: int) -> int:
        """Escrow that withdraw_unclaimed_tokens would send once vesting ends."""
        return self.registry.recoverable_of(campaign_id)

    def verify_accounting(self) -> Dict[str, Any]:
        """
        Audit every campaign by scanning the ledger.

        Returns:
            {"is_consistent": bool, "issues": [...]} where each issue names
            the campaign and the broken relation
        """
        issues: List[Dict[str, Any]] = []
        for campaign_id, campaign in self.registry.campaigns.items():
            allocated = self.ledger.sum_allocations(campaign_id)
            if allocated != campaign.total_allocated:
                issues.append({
                    "campaign_id": campaign_id,
                    "issue": "total_allocated_mismatch",
                    "expected": allocated,
                    "actual": campaign.total_allocated,
                })
            claimed = self.ledger.sum_claimed(campaign_id)
            if claimed != campaign.total_claimed:
                issues.append({
                    "campaign_id": campaign_id,
                    "issue": "total_claimed_mismatch",
                    "expected": claimed,
                    "actual": campaign.total_claimed,
                })
            if campaign.remaining_escrow < 0:
                issues.append({
                    "campaign_id": campaign_id,
                    "issue": "escrow_overdrawn",
                    "actual": campaign.remaining_escrow,
                })
            for recipient, entry in self.ledger.iter_campaign(campaign_id):
                if not 0 <= entry.claimed <= entry.total_allocation:
                    issues.append({
                        "campaign_id": campaign_id,
                        "issue": "claimed_out_of_range",
                        "recipient": recipient,
                        "claimed": entry.claimed,
                        "allocation": entry.total_allocation,
                    })
        return {"is_consistent": not issues, "issues": issues}

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize committed contract state to a dictionary."""
        return {
            "address": self.address,
            "registry": self.registry.to_dict(),
            "ledger": self.ledger.to_dict(),
            "access_control": self.access_control.to_dict(),
            "pause": self.pause_guard.get_state(),
            "events": self.event_log.get_state(),
            "config": {
                "vesting_start_delay_policy": self.config.vesting_start_delay_policy.value,
                "max_vesting_start_delay": self.config.max_vesting_start_delay,
            },
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        token_resolver: TokenResolver,
        time_provider: Optional[TimeProvider] = None,
        config: Optional[AirdropConfig] = None,
        role_oracle: Optional[RoleOracle] = None,
    ) -> "AirdropERC20":
        """
        Restore a contract from to_dict() output.

        The stored delay policy is used unless ``config`` is given. Pass the
        same ``role_oracle`` the contract was deployed with to keep using it.
        """
        if config is None:
            stored = data.get("config", {})
            config = AirdropConfig(
                vesting_start_delay_policy=VestingStartDelayPolicy(
                    stored.get("vesting_start_delay_policy", VestingStartDelayPolicy.NONE.value)
                ),
                max_vesting_start_delay=stored.get("max_vesting_start_delay", 0),
            )
        access = RoleBasedAccessControl.from_dict(data.get("access_control", {}))

        contract = cls.__new__(cls)
        contract.config = config
        contract.token_resolver = token_resolver
        contract._time_provider = time_provider or (lambda: int(time.time()))
        contract.address = data["address"].lower()
        contract.access_control = access
        contract.role_oracle = role_oracle or access
        contract.pause_guard = PauseGuard(contract.role_oracle, Role.ADMIN)
        contract.pause_guard.restore_state(data.get("pause", {}))
        contract.registry = CampaignRegistry.from_dict(data.get("registry", {}))
        contract.ledger = AllocationLedger.from_dict(data.get("ledger", {}))
        contract.event_log = EventLog()
        contract.event_log.restore_state(data.get("events", []))
        return contract
