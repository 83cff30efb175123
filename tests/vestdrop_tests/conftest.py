"""
Shared fixtures for airdrop tests: a controllable clock, a funded token and
a deployed AirdropERC20 that the admin has approved.
"""

from __future__ import annotations

import pytest

from vestdrop.contracts.airdrop import AirdropERC20
from vestdrop.contracts.erc20 import ERC20Factory
from vestdrop_tests.helpers import (
    ADMIN,
    RECIPIENT1,
    THIRTY_DAYS,
    TOTAL_TOKENS,
    FakeClock,
    RefusingAsset,
)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def factory():
    return ERC20Factory()


@pytest.fixture
def token(factory):
    return factory.create_token(
        creator=ADMIN,
        name="Test Token",
        symbol="TEST",
        initial_supply=TOTAL_TOKENS,
    )


@pytest.fixture
def airdrop(factory, token, clock):
    contract = AirdropERC20(ADMIN, factory, time_provider=clock)
    token.approve(ADMIN, contract.address, TOTAL_TOKENS)
    return contract


@pytest.fixture
def vesting_start(clock):
    return clock.now + 10


@pytest.fixture
def finalized(airdrop, token, clock, vesting_start):
    """Campaign 0 with RECIPIENT1 allocated a tenth of the supply, finalized for 30 days."""
    airdrop.create_campaign(ADMIN, token.address)
    airdrop.add_recipients(ADMIN, 0, [RECIPIENT1], [TOTAL_TOKENS // 10])
    airdrop.finalize_campaign(ADMIN, 0, vesting_start, THIRTY_DAYS)
    return 0


@pytest.fixture
def refusing_asset(token):
    return RefusingAsset(token)


@pytest.fixture
def refusing_airdrop(refusing_asset, token, clock):
    """Airdrop whose token resolver hands out the switchable asset."""
    contract = AirdropERC20(ADMIN, refusing_asset, time_provider=clock)
    token.approve(ADMIN, contract.address, TOTAL_TOKENS)
    return contract
