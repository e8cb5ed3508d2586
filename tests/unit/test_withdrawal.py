"""
Tests for withdrawal.py - plan_withdrawal and WithdrawalCoordinator

Tests:
- plan_withdrawal(): early vs normal branch, amounts, boundaries
- Coordinator state path for PAID and REJECTED attempts
- Solvency check (plain and ring-fenced) with rollback
- Events emitted with exact field order
"""

import pytest
from datetime import datetime, timedelta

from lockvault import (
    DepositRecord, DepositLedger, EventLog, SafeAssetGateway, StandardToken,
    VaultTerms, ElapsedTime,
    WithdrawalCoordinator, WithdrawalKind, WithdrawalState, plan_withdrawal,
    Withdrawn, EarlyWithdrawn, event_args,
    AlreadySettled, InsolventPool, InvalidDepositId, TransferFailed,
)


T0 = datetime(2025, 1, 1)


def _record(principal=1000, settled=False):
    return DepositRecord(
        owner="alice", index=3, principal=principal, deposited_at=T0,
        settled=settled, settled_at=T0 if settled else None,
    )


class TestPlanWithdrawal:

    def test_early(self):
        plan = plan_withdrawal(_record(), T0 + timedelta(days=30))
        assert plan.kind is WithdrawalKind.EARLY
        assert plan.penalty == 100
        assert plan.reward == 0
        assert plan.payout == 900
        assert plan.principal == 1000
        assert plan.owner == "alice"
        assert plan.index == 3
        assert plan.elapsed == ElapsedTime(30 * 86400)

    def test_immediately_after_deposit_is_early(self):
        plan = plan_withdrawal(_record(), T0)
        assert plan.kind is WithdrawalKind.EARLY
        assert plan.payout == 900

    def test_one_second_before_maturity_is_early(self):
        plan = plan_withdrawal(_record(), T0 + timedelta(days=60, seconds=-1))
        assert plan.kind is WithdrawalKind.EARLY

    def test_at_maturity_is_normal(self):
        plan = plan_withdrawal(_record(), T0 + timedelta(days=60))
        assert plan.kind is WithdrawalKind.NORMAL
        assert plan.reward == 20
        assert plan.penalty == 0
        assert plan.payout == 1020

    def test_bonus_period(self):
        plan = plan_withdrawal(_record(), T0 + timedelta(days=90))
        assert plan.reward == 30
        assert plan.payout == 1030

    def test_settled_record_rejected(self):
        with pytest.raises(AlreadySettled):
            plan_withdrawal(_record(settled=True), T0 + timedelta(days=90))

    def test_time_before_deposit_rejected(self):
        with pytest.raises(ValueError):
            plan_withdrawal(_record(), T0 - timedelta(days=1))

    def test_custom_terms(self):
        terms = VaultTerms(min_lock_period=timedelta(days=1), early_penalty_rate=5000)
        assert plan_withdrawal(_record(), T0 + timedelta(hours=1), terms).payout == 500
        assert plan_withdrawal(_record(), T0 + timedelta(days=1), terms).kind is WithdrawalKind.NORMAL


@pytest.fixture
def parts():
    token = StandardToken("SAVE")
    gateway = SafeAssetGateway(token, "vault")
    ledger = DepositLedger(gateway)
    events = EventLog()
    token.mint("alice", 1000)
    token.approve("alice", "vault", 1000)
    ledger.deposit("alice", 1000, T0)
    return token, ledger, events, gateway


def _coordinator(parts, terms=None):
    _, ledger, events, gateway = parts
    if terms is None:
        return WithdrawalCoordinator(ledger, gateway, events)
    return WithdrawalCoordinator(ledger, gateway, events, terms)


class TestCoordinatorEarly:

    def test_early_withdrawal_pays_and_keeps_penalty(self, parts):
        token, ledger, events, _ = parts
        receipt = _coordinator(parts).withdraw("alice", 0, T0 + timedelta(days=30))

        assert receipt.kind is WithdrawalKind.EARLY
        assert receipt.payout == 900
        assert receipt.penalty == 100
        assert receipt.path == (
            WithdrawalState.REQUESTED, WithdrawalState.VALIDATED,
            WithdrawalState.SETTLED, WithdrawalState.PAID,
        )
        assert token.balance_of("alice") == 900
        assert token.balance_of("vault") == 100
        assert ledger.get("alice", 0).settled
        assert ledger.total_locked == 0
        assert ledger.total_rewards_paid == 0
        assert ledger.total_penalties_collected == 100

    def test_early_event_field_order(self, parts):
        _, _, events, _ = parts
        _coordinator(parts).withdraw("alice", 0, T0 + timedelta(days=30))
        event = events.events()[-1]
        assert isinstance(event, EarlyWithdrawn)
        assert event_args(event) == ("alice", 900, 100, 0)


class TestCoordinatorNormal:

    def test_insolvent_without_reward_funding(self, parts):
        token, ledger, events, _ = parts
        before = ledger.snapshot()
        with pytest.raises(InsolventPool):
            _coordinator(parts).withdraw("alice", 0, T0 + timedelta(days=60))
        assert ledger.snapshot() == before
        assert token.balance_of("vault") == 1000
        assert len(events) == 0

    def test_normal_withdrawal_with_funding(self, parts):
        token, ledger, events, _ = parts
        token.mint("vault", 20)
        receipt = _coordinator(parts).withdraw("alice", 0, T0 + timedelta(days=60))

        assert receipt.kind is WithdrawalKind.NORMAL
        assert receipt.reward == 20
        assert receipt.payout == 1020
        assert token.balance_of("alice") == 1020
        assert token.balance_of("vault") == 0
        assert ledger.total_rewards_paid == 20
        assert ledger.total_penalties_collected == 0
        assert event_args(events.events()[-1]) == ("alice", 1000, 20, 0)
        assert isinstance(events.events()[-1], Withdrawn)

    def test_exactly_solvent_succeeds(self, parts):
        token, _, _, _ = parts
        token.mint("vault", 30)
        receipt = _coordinator(parts).withdraw("alice", 0, T0 + timedelta(days=90))
        assert receipt.payout == 1030

    def test_one_short_is_insolvent(self, parts):
        token, _, _, _ = parts
        token.mint("vault", 29)
        with pytest.raises(InsolventPool):
            _coordinator(parts).withdraw("alice", 0, T0 + timedelta(days=90))


class TestCoordinatorRejections:

    def test_unknown_deposit(self, parts):
        _, ledger, events, _ = parts
        with pytest.raises(InvalidDepositId):
            _coordinator(parts).withdraw("alice", 1, T0)
        assert len(events) == 0

    def test_double_withdrawal(self, parts):
        token, ledger, _, _ = parts
        coordinator = _coordinator(parts)
        coordinator.withdraw("alice", 0, T0 + timedelta(days=1))
        balance = token.balance_of("alice")
        with pytest.raises(AlreadySettled):
            coordinator.withdraw("alice", 0, T0 + timedelta(days=90))
        assert token.balance_of("alice") == balance
        assert ledger.total_locked == 0

    def test_failed_payout_rolls_back(self, parts):
        token, ledger, events, gateway = parts
        before = ledger.snapshot()
        token.mint("vault", 100)

        def broken_transfer(sender, to, amount):
            return False

        token.transfer = broken_transfer
        with pytest.raises(TransferFailed):
            _coordinator(parts).withdraw("alice", 0, T0 + timedelta(days=60))
        assert ledger.snapshot() == before
        assert ledger.get("alice", 0).settled is False
        assert len(events) == 0


class TestRingFencedSolvency:

    def _two_depositors(self, parts):
        token, ledger, _, _ = parts
        token.mint("bob", 5000)
        token.approve("bob", "vault", 5000)
        ledger.deposit("bob", 5000, T0)
        return token, ledger

    def test_plain_mode_pays_reward_from_other_principal(self, parts):
        token, ledger = self._two_depositors(parts)
        receipt = _coordinator(parts).withdraw("alice", 0, T0 + timedelta(days=60))
        assert receipt.payout == 1020
        assert token.balance_of("vault") == 5000 - 20

    def test_ring_fenced_mode_refuses(self, parts):
        token, ledger = self._two_depositors(parts)
        terms = VaultTerms(ring_fence_principal=True)
        with pytest.raises(InsolventPool):
            _coordinator(parts, terms).withdraw("alice", 0, T0 + timedelta(days=60))
        assert ledger.total_locked == 6000

    def test_ring_fenced_mode_pays_when_surplus_exists(self, parts):
        token, ledger = self._two_depositors(parts)
        token.mint("vault", 20)
        terms = VaultTerms(ring_fence_principal=True)
        receipt = _coordinator(parts, terms).withdraw("alice", 0, T0 + timedelta(days=60))
        assert receipt.payout == 1020
        assert token.balance_of("vault") == 5000

    def test_ring_fenced_early_withdrawal_unaffected(self, parts):
        self._two_depositors(parts)
        terms = VaultTerms(ring_fence_principal=True)
        receipt = _coordinator(parts, terms).withdraw("alice", 0, T0 + timedelta(days=1))
        assert receipt.payout == 900
