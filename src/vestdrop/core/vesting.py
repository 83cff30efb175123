"""
Linear vesting math.

All functions are pure integer arithmetic on token base units. Partial vesting
truncates toward zero so the sum of every partial claim over a schedule can
never exceed the allocation.
"""

from __future__ import annotations


def vesting_end(vesting_start: int, vesting_duration: int) -> int:
    """Timestamp at which the whole allocation is vested."""
    return vesting_start + vesting_duration


def vested_amount(
    total_allocation: int,
    vesting_start: int,
    vesting_duration: int,
    now: int,
) -> int:
    """
    Calculates how much of an allocation has vested at ``now``.

    Args:
        total_allocation: Allocation in token base units
        vesting_start: Timestamp when vesting begins
        vesting_duration: Length of the linear release in seconds (0 = cliff at start)
        now: Current timestamp

    Returns:
        Vested amount in base units, rounded down
    """
    # Before start, nothing vests
    if now < vesting_start:
        return 0

    # Zero duration or schedule over: everything has vested
    if vesting_duration == 0 or now >= vesting_end(vesting_start, vesting_duration):
        return total_allocation

    elapsed = now - vesting_start
    return total_allocation * elapsed // vesting_duration


def claimable_amount(
    total_allocation: int,
    claimed: int,
    vesting_start: int,
    vesting_duration: int,
    now: int,
) -> int:
    """Vested amount minus what was already claimed, floored at zero."""
    vested = vested_amount(total_allocation, vesting_start, vesting_duration, now)
    return max(0, vested - claimed)
