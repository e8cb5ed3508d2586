"""
Idempotency Conformance Tests

INVARIANT: A deposit pays out at most once.

    ∀ deposit d:
        withdraw(d) succeeds ⟹ every later withdraw(d) raises AlreadySettled
        state after a rejected repeat = state after the first withdrawal

This holds whichever branch (early or normal) settled the deposit, for
both asset variants, and however much time passes between attempts. A
payout that left the pool counts as paid even if the token then raises or
reports an odd result.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from datetime import timedelta

from lockvault import (
    TimeLockedVault, SafeAssetGateway, StandardToken, NoReturnToken, TokenRevert,
    Withdrawn, AlreadySettled,
)
from tests.helpers import OWNER, START, TREASURY, VAULT, days, observable_state


def _funded(token):
    vault = TimeLockedVault(SafeAssetGateway(token, VAULT), owner=OWNER, initial_time=START)
    token.mint(TREASURY, 10_000_000)
    token.approve(TREASURY, VAULT, 10_000_000)
    vault.fund_rewards(TREASURY, 10_000_000)
    token.mint("alice", 10_000_000)
    token.approve("alice", VAULT, 10_000_000)
    return vault


class TestIdempotencyProperties:
    """Property-based idempotency tests."""

    @given(
        principal=st.integers(min_value=1, max_value=10_000_000),
        first_day=st.integers(min_value=0, max_value=200),
        gaps=st.lists(st.integers(min_value=0, max_value=200), min_size=1, max_size=5),
        variant=st.sampled_from(["standard", "no_return"]),
    )
    @settings(max_examples=100, deadline=None)
    def test_repeated_withdrawal_always_rejected(self, principal, first_day, gaps, variant):
        """
        PROPERTY: After one successful withdrawal, every repeat is rejected
        and leaves state unchanged.
        """
        token = StandardToken("SAVE") if variant == "standard" else NoReturnToken("USDT")
        vault = _funded(token)
        vault.deposit("alice", principal)

        vault.advance_time(START + timedelta(days=first_day))
        receipt = vault.withdraw("alice", 0)
        after_first = observable_state(vault)
        balance = token.balance_of("alice")

        for gap in gaps:
            vault.advance_time(vault.current_time + timedelta(days=gap))
            with pytest.raises(AlreadySettled):
                vault.withdraw("alice", 0)
            assert observable_state(vault) == after_first
            assert token.balance_of("alice") == balance

        assert receipt.payout == balance - (10_000_000 - principal)


class TestIdempotencyExamples:
    """Explicit idempotency examples."""

    @pytest.mark.parametrize("held", [days(1), days(59), days(60), days(365)])
    def test_double_withdrawal(self, any_token, held):
        vault = _funded(any_token)
        vault.deposit("alice", 1000)
        vault.advance_time(START + held)
        vault.withdraw("alice", 0)

        with pytest.raises(AlreadySettled):
            vault.withdraw("alice", 0)
        assert vault.get_aggregate_stats().total_locked == 0

    def test_early_then_matured_still_settled(self):
        """Waiting past maturity does not revive an early-withdrawn deposit."""
        token = StandardToken("SAVE")
        vault = _funded(token)
        vault.deposit("alice", 1000)
        vault.advance_time(START + days(10))
        vault.withdraw("alice", 0)

        vault.advance_time(START + days(120))
        with pytest.raises(AlreadySettled):
            vault.withdraw("alice", 0)
        assert vault.get_aggregate_stats().total_rewards_paid == 0

    def test_sibling_deposits_independent(self):
        token = StandardToken("SAVE")
        vault = _funded(token)
        vault.deposit("alice", 1000)
        vault.deposit("alice", 1000)
        vault.advance_time(START + days(60))
        vault.withdraw("alice", 0)

        receipt = vault.withdraw("alice", 1)
        assert receipt.payout == 1020


class MoveThenRaiseToken(StandardToken):
    """Pays out, then fails in a post-transfer receiver hook."""

    def transfer(self, sender, to, amount):
        super().transfer(sender, to, amount)
        raise TokenRevert("receiver hook failed")


class OneReturnToken(StandardToken):
    """Pays out, then reports the result as 1 instead of True."""

    def transfer(self, sender, to, amount):
        return 1 if super().transfer(sender, to, amount) else 0


class TestPayoutCommitsOnceFundsMove:
    """A payout that left the pool settles the deposit, whatever the token reports."""

    @pytest.mark.parametrize("token_cls", [MoveThenRaiseToken, OneReturnToken])
    def test_single_payout_despite_token_report(self, token_cls):
        token = token_cls("ODD")
        vault = _funded(token)
        vault.deposit("alice", 1000)
        vault.advance_time(START + days(60))

        receipt = vault.withdraw("alice", 0)

        assert receipt.payout == 1020
        assert token.balance_of("alice") == 10_000_000 - 1000 + 1020
        assert vault.get_deposit("alice", 0).settled is True
        assert vault.get_aggregate_stats().total_locked == 0

        for _ in range(2):
            with pytest.raises(AlreadySettled):
                vault.withdraw("alice", 0)
        assert token.balance_of("alice") == 10_000_000 - 1000 + 1020
        assert len(vault.events.of_type(Withdrawn)) == 1

    def test_early_payout_through_raising_hook(self):
        token = MoveThenRaiseToken("ODD")
        vault = _funded(token)
        vault.deposit("alice", 1000)
        vault.advance_time(START + days(10))

        assert vault.withdraw("alice", 0).payout == 900
        with pytest.raises(AlreadySettled):
            vault.withdraw("alice", 0)
        assert token.balance_of("alice") == 10_000_000 - 100
