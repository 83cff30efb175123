"""
Airdrop-specific exception hierarchy for vestdrop.

Every failure the distribution contract can report is a distinct exception
type so that automation and operators can branch on the condition instead of
parsing message text. The class name doubles as the stable ``code``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AirdropError(Exception):
    """Base exception for all airdrop-related errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        code: Stable condition name (the concrete class name)
    """

    def __init__(
        self,
        message: str = "",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.code = type(self).__name__
        self.message = message or self.code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": dict(self.details)}


# ==================== Input Errors ====================


class InvalidAddress(AirdropError):
    """Raised when a recipient, destination or admin address is the null address."""
    pass


class InvalidTokenAddress(AirdropError):
    """Raised when a campaign is created for the null token reference."""
    pass


class ArraysMismatch(AirdropError):
    """Raised when the address and amount batches differ in length."""
    pass


class ArrayTooLarge(AirdropError):
    """Raised when a batch exceeds the per-call recipient cap."""
    pass


class ZeroAmount(AirdropError):
    """Raised for a zero allocation, or when finalizing an empty campaign."""
    pass


class AllocationNotChanged(AirdropError):
    """Raised when an allocation change would store the value already stored."""
    pass


class InvalidVestingStart(AirdropError):
    """Raised when the vesting start is not in the future, or is too far in it."""
    pass


# ==================== Campaign State Errors ====================


class CampaignNotFound(AirdropError):
    """Raised when a campaign id was never allocated."""
    pass


class CampaignAlreadyFinalized(AirdropError):
    """Raised when mutating or finalizing a campaign whose schedule is locked."""
    pass


class CampaignNotFinalized(AirdropError):
    """Raised when claiming from a campaign that is not (or does not exist and so is not) finalized."""
    pass


class NoTokensToClaim(AirdropError):
    """Raised when the caller has nothing newly vested to claim."""
    pass


class VestingNotEnded(AirdropError):
    """Raised when recovering unclaimed funds before the schedule has ended."""
    pass


# ==================== Guard Errors ====================


class AccessControlUnauthorizedAccount(AirdropError):
    """Raised when the caller lacks the role an entry point requires."""

    def __init__(self, account: str, role: str) -> None:
        super().__init__(
            f"account {account} is missing role {role}",
            details={"account": account, "role": role},
        )
        self.account = account
        self.role = role


class EnforcedPause(AirdropError):
    """Raised by gated entry points while the contract is paused."""
    pass


class ExpectedPause(AirdropError):
    """Raised when unpausing a contract that is not paused."""
    pass


# ==================== Collaborator Errors ====================


class TokenOperationError(AirdropError):
    """Raised when the fungible-asset collaborator rejects a balance operation.

    Treated as a hard abort of the enclosing entry point.
    """
    pass
