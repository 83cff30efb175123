"""
Tests for time-gated claiming and recovery of unclaimed escrow.
"""

import pytest

from vestdrop.core import events as ev
from vestdrop.core.exceptions import (
    AccessControlUnauthorizedAccount,
    CampaignNotFinalized,
    CampaignNotFound,
    InvalidAddress,
    NoTokensToClaim,
    TokenOperationError,
    VestingNotEnded,
)

from vestdrop_tests.helpers import (
    ADMIN,
    ONE,
    OUTSIDER,
    RECIPIENT1,
    RECIPIENT2,
    THIRTY_DAYS,
    TOTAL_TOKENS,
    ZERO,
)

ALLOCATION = TOTAL_TOKENS // 10


def _campaign(airdrop, token, allocations, vesting_start, duration=THIRTY_DAYS):
    campaign_id = airdrop.create_campaign(ADMIN, token.address)
    airdrop.add_recipients(ADMIN, campaign_id, list(allocations), list(allocations.values()))
    airdrop.finalize_campaign(ADMIN, campaign_id, vesting_start, duration)
    return campaign_id


class TestClaim:
    def test_partial_claim_one_day_in(self, airdrop, token, clock, vesting_start):
        _campaign(airdrop, token, {RECIPIENT1: 10 * ONE}, vesting_start)
        clock.set(vesting_start + 86401)

        amount = airdrop.claim(RECIPIENT1, 0)

        assert amount == 333337191358024691
        assert token.balance_of(RECIPIENT1) == amount
        event = airdrop.event_log.last()
        assert event.event_type == ev.TOKENS_CLAIMED
        assert event.args == {"campaign_id": 0, "recipient": RECIPIENT1, "amount": amount}

    def test_claim_matches_claimable_view(self, airdrop, token, clock, finalized, vesting_start):
        clock.set(vesting_start + 86400)
        claimable = airdrop.get_claimable_amount(finalized, RECIPIENT1)
        assert airdrop.claim(RECIPIENT1, finalized) == claimable
        assert airdrop.get_claimable_amount(finalized, RECIPIENT1) == 0

    def test_first_second_then_full_schedule(self, airdrop, token, clock, vesting_start):
        _campaign(airdrop, token, {RECIPIENT1: 10 * ONE}, vesting_start, duration=2_592_000)

        clock.set(vesting_start + 1)
        first = airdrop.claim(RECIPIENT1, 0)
        assert 0 < first < 10 * ONE

        clock.set(vesting_start + 2_592_001)
        airdrop.claim(RECIPIENT1, 0)
        assert airdrop.get_campaign_recipient_info(0, RECIPIENT1) == (10 * ONE, 10 * ONE)
        assert token.balance_of(RECIPIENT1) == 10 * ONE

    def test_claim_exactly_at_end_is_full(self, airdrop, token, clock, vesting_start):
        _campaign(airdrop, token, {RECIPIENT1: 10 * ONE}, vesting_start)
        clock.set(vesting_start + THIRTY_DAYS // 3)
        first = airdrop.claim(RECIPIENT1, 0)

        clock.set(vesting_start + THIRTY_DAYS)
        assert airdrop.get_claimable_amount(0, RECIPIENT1) == 10 * ONE - first
        airdrop.claim(RECIPIENT1, 0)
        assert token.balance_of(RECIPIENT1) == 10 * ONE

    def test_half_way_claim_is_half(self, airdrop, token, clock, finalized, vesting_start):
        clock.set(vesting_start + THIRTY_DAYS // 2)
        airdrop.claim(RECIPIENT1, finalized)
        _, claimed = airdrop.get_campaign_recipient_info(finalized, RECIPIENT1)
        assert claimed == ALLOCATION // 2

    def test_claims_are_monotonic(self, airdrop, token, clock, finalized, vesting_start):
        previous = 0
        for day in range(1, 31):
            clock.set(vesting_start + day * 86400)
            airdrop.claim(RECIPIENT1, finalized)
            _, claimed = airdrop.get_campaign_recipient_info(finalized, RECIPIENT1)
            assert claimed > previous
            previous = claimed
        assert previous == ALLOCATION

    def test_unknown_campaign_reads_as_not_finalized(self, airdrop):
        with pytest.raises(CampaignNotFinalized):
            airdrop.claim(RECIPIENT1, 0)

    def test_open_campaign(self, airdrop, token):
        airdrop.create_campaign(ADMIN, token.address)
        with pytest.raises(CampaignNotFinalized):
            airdrop.claim(RECIPIENT1, 0)

    def test_non_recipient_has_nothing(self, airdrop, clock, finalized, vesting_start):
        clock.set(vesting_start + THIRTY_DAYS)
        with pytest.raises(NoTokensToClaim):
            airdrop.claim(RECIPIENT2, finalized)

    def test_before_start(self, airdrop, finalized):
        assert airdrop.get_claimable_amount(finalized, RECIPIENT1) == 0
        with pytest.raises(NoTokensToClaim):
            airdrop.claim(RECIPIENT1, finalized)

    def test_nothing_new_in_same_second(self, airdrop, clock, finalized, vesting_start):
        clock.set(vesting_start + 1000)
        airdrop.claim(RECIPIENT1, finalized)
        with pytest.raises(NoTokensToClaim):
            airdrop.claim(RECIPIENT1, finalized)

    def test_fully_claimed(self, airdrop, clock, finalized, vesting_start):
        clock.set(vesting_start + THIRTY_DAYS + 1)
        airdrop.claim(RECIPIENT1, finalized)
        with pytest.raises(NoTokensToClaim):
            airdrop.claim(RECIPIENT1, finalized)

    def test_zero_duration_vests_at_start_not_before(self, airdrop, token, clock, vesting_start):
        _campaign(airdrop, token, {RECIPIENT1: 10 * ONE}, vesting_start, duration=0)

        clock.set(vesting_start - 1)
        with pytest.raises(NoTokensToClaim):
            airdrop.claim(RECIPIENT1, 0)

        clock.set(vesting_start)
        assert airdrop.get_claimable_amount(0, RECIPIENT1) == 10 * ONE
        assert airdrop.claim(RECIPIENT1, 0) == 10 * ONE

    def test_failed_transfer_does_not_persist_claim(self, airdrop, token, clock, finalized, vesting_start):
        clock.set(vesting_start + THIRTY_DAYS)
        token.pause(ADMIN)
        events_before = len(airdrop.events)

        with pytest.raises(TokenOperationError):
            airdrop.claim(RECIPIENT1, finalized)

        assert airdrop.get_campaign_recipient_info(finalized, RECIPIENT1) == (ALLOCATION, 0)
        assert airdrop.registry.get(finalized).total_claimed == 0
        assert len(airdrop.events) == events_before

        token.unpause(ADMIN)
        assert airdrop.claim(RECIPIENT1, finalized) == ALLOCATION

    def test_campaigns_sharing_a_token_pay_separately(self, airdrop, token, clock, vesting_start):
        _campaign(airdrop, token, {RECIPIENT1: 10 * ONE}, vesting_start)
        _campaign(airdrop, token, {RECIPIENT1: 4 * ONE, RECIPIENT2: ONE}, vesting_start, duration=0)
        clock.set(vesting_start + THIRTY_DAYS)

        assert airdrop.claim(RECIPIENT1, 1) == 4 * ONE
        assert airdrop.claim(RECIPIENT1, 0) == 10 * ONE
        assert token.balance_of(airdrop.address) == ONE


class TestWithdrawUnclaimedTokens:
    def test_zero_destination(self, airdrop, clock, finalized, vesting_start):
        clock.set(vesting_start + THIRTY_DAYS + 1)
        with pytest.raises(InvalidAddress):
            airdrop.withdraw_unclaimed_tokens(ADMIN, finalized, ZERO)

    def test_unknown_campaign(self, airdrop):
        with pytest.raises(CampaignNotFound):
            airdrop.withdraw_unclaimed_tokens(ADMIN, 999, ADMIN)

    def test_vesting_not_ended(self, airdrop, clock, finalized, vesting_start):
        with pytest.raises(VestingNotEnded):
            airdrop.withdraw_unclaimed_tokens(ADMIN, finalized, ADMIN)
        clock.set(vesting_start + THIRTY_DAYS - 1)
        with pytest.raises(VestingNotEnded):
            airdrop.withdraw_unclaimed_tokens(ADMIN, finalized, ADMIN)

    def test_allowed_exactly_at_end(self, airdrop, token, clock, finalized, vesting_start):
        clock.set(vesting_start + THIRTY_DAYS)
        assert airdrop.withdraw_unclaimed_tokens(ADMIN, finalized, RECIPIENT2) == ALLOCATION
        assert token.balance_of(RECIPIENT2) == ALLOCATION

    def test_withdraws_whole_escrow_when_nothing_claimed(self, airdrop, token, clock, finalized, vesting_start):
        clock.set(vesting_start + THIRTY_DAYS + 1)
        contract_balance = token.balance_of(airdrop.address)

        airdrop.withdraw_unclaimed_tokens(ADMIN, finalized, RECIPIENT2)

        assert token.balance_of(RECIPIENT2) == contract_balance
        event = airdrop.event_log.last()
        assert event.event_type == ev.UNCLAIMED_TOKENS_WITHDRAWN
        assert event.args == {"campaign_id": finalized, "to": RECIPIENT2, "amount": contract_balance}

    def test_withdraws_only_unclaimed_remainder(self, airdrop, token, clock, vesting_start):
        _campaign(airdrop, token, {RECIPIENT1: 10 * ONE, RECIPIENT2: 6 * ONE}, vesting_start)
        clock.set(vesting_start + THIRTY_DAYS)
        airdrop.claim(RECIPIENT1, 0)

        assert airdrop.withdraw_unclaimed_tokens(ADMIN, 0, OUTSIDER) == 6 * ONE
        assert token.balance_of(OUTSIDER) == 6 * ONE
        assert token.balance_of(airdrop.address) == 0

    def test_second_withdrawal_is_a_no_op(self, airdrop, token, clock, finalized, vesting_start):
        clock.set(vesting_start + THIRTY_DAYS + 1)
        airdrop.withdraw_unclaimed_tokens(ADMIN, finalized, ADMIN)
        balances = (token.balance_of(ADMIN), token.balance_of(airdrop.address))

        assert airdrop.withdraw_unclaimed_tokens(ADMIN, finalized, ADMIN) == 0
        assert (token.balance_of(ADMIN), token.balance_of(airdrop.address)) == balances

    def test_withdrawal_after_everything_claimed(self, airdrop, clock, finalized, vesting_start):
        clock.set(vesting_start + THIRTY_DAYS + 1)
        airdrop.claim(RECIPIENT1, finalized)
        assert airdrop.withdraw_unclaimed_tokens(ADMIN, finalized, ADMIN) == 0

    def test_claims_stop_after_recovery(self, airdrop, clock, finalized, vesting_start):
        clock.set(vesting_start + THIRTY_DAYS + 1)
        airdrop.withdraw_unclaimed_tokens(ADMIN, finalized, ADMIN)
        assert airdrop.get_claimable_amount(finalized, RECIPIENT1) == 0
        with pytest.raises(NoTokensToClaim):
            airdrop.claim(RECIPIENT1, finalized)

    def test_recovery_does_not_touch_other_campaigns(self, airdrop, token, clock, vesting_start):
        _campaign(airdrop, token, {RECIPIENT1: 10 * ONE}, vesting_start, duration=0)
        _campaign(airdrop, token, {RECIPIENT2: 5 * ONE}, vesting_start + 100, duration=THIRTY_DAYS)
        clock.set(vesting_start + 1)

        assert airdrop.withdraw_unclaimed_tokens(ADMIN, 0, OUTSIDER) == 10 * ONE
        assert token.balance_of(airdrop.address) == 5 * ONE

        clock.set(vesting_start + 100 + THIRTY_DAYS)
        assert airdrop.claim(RECIPIENT2, 1) == 5 * ONE

    def test_open_campaign_has_nothing_to_recover(self, airdrop, token):
        airdrop.create_campaign(ADMIN, token.address)
        airdrop.add_recipients(ADMIN, 0, [RECIPIENT1], [ONE])
        assert airdrop.withdraw_unclaimed_tokens(ADMIN, 0, ADMIN) == 0

    def test_requires_admin(self, airdrop, clock, finalized, vesting_start):
        clock.set(vesting_start + THIRTY_DAYS + 1)
        with pytest.raises(AccessControlUnauthorizedAccount):
            airdrop.withdraw_unclaimed_tokens(RECIPIENT1, finalized, RECIPIENT1)
        assert airdrop.get_campaign_recoverable_amount(finalized) == ALLOCATION


class TestRefusedTransfers:
    @pytest.fixture
    def funded(self, refusing_airdrop, token, vesting_start):
        refusing_airdrop.create_campaign(ADMIN, token.address)
        refusing_airdrop.add_recipients(ADMIN, 0, [RECIPIENT1], [10 * ONE])
        refusing_airdrop.finalize_campaign(ADMIN, 0, vesting_start, THIRTY_DAYS)
        return 0

    def test_refused_claim_is_not_recorded(
        self, refusing_airdrop, refusing_asset, token, clock, funded, vesting_start
    ):
        clock.set(vesting_start + THIRTY_DAYS)
        refusing_asset.refuse_transfer = True
        events_before = len(refusing_airdrop.events)

        with pytest.raises(TokenOperationError):
            refusing_airdrop.claim(RECIPIENT1, funded)

        assert refusing_airdrop.get_campaign_recipient_info(funded, RECIPIENT1) == (10 * ONE, 0)
        assert refusing_airdrop.get_campaign_recoverable_amount(funded) == 10 * ONE
        assert len(refusing_airdrop.events) == events_before
        assert token.balance_of(RECIPIENT1) == 0

        refusing_asset.refuse_transfer = False
        assert refusing_airdrop.claim(RECIPIENT1, funded) == 10 * ONE
        assert token.balance_of(RECIPIENT1) == 10 * ONE

    def test_refused_withdrawal_is_not_recorded(
        self, refusing_airdrop, refusing_asset, token, clock, funded, vesting_start
    ):
        clock.set(vesting_start + THIRTY_DAYS)
        refusing_asset.refuse_transfer = True

        with pytest.raises(TokenOperationError):
            refusing_airdrop.withdraw_unclaimed_tokens(ADMIN, funded, OUTSIDER)

        assert refusing_airdrop.get_campaign_recoverable_amount(funded) == 10 * ONE
        assert refusing_airdrop.verify_accounting()["is_consistent"]

        refusing_asset.refuse_transfer = False
        assert refusing_airdrop.withdraw_unclaimed_tokens(ADMIN, funded, OUTSIDER) == 10 * ONE
        assert token.balance_of(OUTSIDER) == 10 * ONE
