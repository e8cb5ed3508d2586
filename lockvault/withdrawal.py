"""
withdrawal.py - Withdrawal planning and the withdrawal state machine

ARCHITECTURE:
=============

1. PURE PLANNING (plan_withdrawal):
   - Takes a DepositRecord, the current time and the terms
   - Decides early vs normal and computes reward, penalty and payout
   - No ledger access, trivially testable; also backs the query surface

2. EXECUTION (WithdrawalCoordinator.withdraw):
   Each attempt walks the state machine

       REQUESTED -> VALIDATED -> SETTLED -> PAID
            \\            \\          \\
             +------------+----------+--> REJECTED

   REQUESTED -> VALIDATED  record looked up, must exist and be unsettled
   VALIDATED -> SETTLED    ledger snapshot taken, record settled, counters updated
   SETTLED   -> PAID       solvency check, then payout pushed to the user

   Any failure after the snapshot restores it before the error propagates,
   so settle-then-pay is one atomic unit from the caller's point of view.
   Settlement completes before the outbound transfer is issued.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple
import logging

from .core import (
    DepositRecord, ElapsedTime, Principal, VaultTerms, DEFAULT_TERMS,
    AlreadySettled, InsolventPool, LedgerError,
)
from .deposit_ledger import DepositLedger
from .events import EarlyWithdrawn, EventLog, Withdrawn
from .gateway import AssetGateway
from .rates import calculate_penalty, calculate_reward

logger = logging.getLogger(__name__)


class WithdrawalKind(Enum):
    EARLY = "early"
    NORMAL = "normal"


class WithdrawalState(Enum):
    REQUESTED = "requested"
    VALIDATED = "validated"
    SETTLED = "settled"
    PAID = "paid"
    REJECTED = "rejected"


_TRANSITIONS: Dict[WithdrawalState, FrozenSet[WithdrawalState]] = {
    WithdrawalState.REQUESTED: frozenset({WithdrawalState.VALIDATED, WithdrawalState.REJECTED}),
    WithdrawalState.VALIDATED: frozenset({WithdrawalState.SETTLED, WithdrawalState.REJECTED}),
    WithdrawalState.SETTLED: frozenset({WithdrawalState.PAID, WithdrawalState.REJECTED}),
    WithdrawalState.PAID: frozenset(),
    WithdrawalState.REJECTED: frozenset(),
}


# ============================================================================
# PURE PLANNING
# ============================================================================

@dataclass(frozen=True, slots=True)
class WithdrawalPlan:
    """
    What withdrawing a deposit at a given time would do.

    Attributes:
        owner: Depositor address
        index: Deposit index
        kind: EARLY (penalised) or NORMAL (rewarded)
        principal: Historical principal of the deposit
        elapsed: Lock duration at the planned time
        reward: Reward paid (zero for EARLY)
        penalty: Penalty retained by the pool (zero for NORMAL)
        payout: Amount transferred to the owner
    """
    owner: str
    index: int
    kind: WithdrawalKind
    principal: int
    elapsed: ElapsedTime
    reward: int
    penalty: int
    payout: int


def plan_withdrawal(
    record: DepositRecord,
    now: datetime,
    terms: VaultTerms = DEFAULT_TERMS,
) -> WithdrawalPlan:
    """
    Compute the outcome of withdrawing `record` at `now`.

    Raises:
        AlreadySettled: If the record has already been withdrawn
        ValueError: If `now` is before the deposit time
    """
    if record.settled:
        raise AlreadySettled(f"Deposit {record.owner}#{record.index} was already withdrawn")

    principal = Principal(record.principal)
    elapsed = ElapsedTime.between(record.deposited_at, now)

    if elapsed.seconds < terms.min_lock_seconds:
        penalty = calculate_penalty(principal, terms)
        return WithdrawalPlan(
            owner=record.owner,
            index=record.index,
            kind=WithdrawalKind.EARLY,
            principal=principal.amount,
            elapsed=elapsed,
            reward=0,
            penalty=penalty,
            payout=principal.amount - penalty,
        )

    reward = calculate_reward(principal, elapsed, terms)
    return WithdrawalPlan(
        owner=record.owner,
        index=record.index,
        kind=WithdrawalKind.NORMAL,
        principal=principal.amount,
        elapsed=elapsed,
        reward=reward,
        penalty=0,
        payout=principal.amount + reward,
    )


# ============================================================================
# STATE MACHINE
# ============================================================================

@dataclass
class WithdrawalAttempt:
    """Mutable progress of one withdrawal attempt through the state machine."""
    owner: str
    index: int
    state: WithdrawalState = WithdrawalState.REQUESTED
    history: List[WithdrawalState] = field(default_factory=lambda: [WithdrawalState.REQUESTED])
    reason: Optional[str] = None

    def advance(self, new_state: WithdrawalState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal withdrawal transition {self.state.name} -> {new_state.name}")
        logger.debug("withdrawal %s#%d: %s -> %s", self.owner, self.index, self.state.name, new_state.name)
        self.state = new_state
        self.history.append(new_state)

    def reject(self, error: Exception) -> None:
        self.reason = f"{type(error).__name__}: {error}"
        self.advance(WithdrawalState.REJECTED)


@dataclass(frozen=True, slots=True)
class WithdrawalReceipt:
    """Record of a completed (PAID) withdrawal."""
    plan: WithdrawalPlan
    settled_at: datetime
    path: Tuple[WithdrawalState, ...]

    @property
    def kind(self) -> WithdrawalKind:
        return self.plan.kind

    @property
    def payout(self) -> int:
        return self.plan.payout

    @property
    def reward(self) -> int:
        return self.plan.reward

    @property
    def penalty(self) -> int:
        return self.plan.penalty


class WithdrawalCoordinator:
    """
    Drives withdrawals from request to payout.

    The coordinator never writes ledger state itself; it goes through
    DepositLedger's operations and uses snapshot()/restore() to keep
    settlement and payout atomic.
    """

    def __init__(
        self,
        ledger: DepositLedger,
        gateway: AssetGateway,
        events: EventLog,
        terms: VaultTerms = DEFAULT_TERMS,
    ):
        self.ledger = ledger
        self.gateway = gateway
        self.events = events
        self.terms = terms

    def available_for_payout(self) -> int:
        """
        Pool balance a payout may draw on right now.

        With ring-fencing, principal still locked by other deposits is
        excluded. Called after settlement, so the withdrawing deposit's own
        principal is no longer counted as locked.
        """
        holdings = self.gateway.balance()
        if self.terms.ring_fence_principal:
            return holdings - self.ledger.total_locked
        return holdings

    def withdraw(self, user: str, index: int, now: datetime) -> WithdrawalReceipt:
        """
        Withdraw deposit `index` of `user` at time `now`.

        Returns:
            WithdrawalReceipt for the PAID attempt

        Raises:
            InvalidDepositId: Unknown deposit (no state change)
            AlreadySettled: Deposit already withdrawn (no state change)
            InsolventPool: Pool cannot cover the payout (settlement rolled back)
            TransferFailed: Payout transfer failed (settlement rolled back)
        """
        attempt = WithdrawalAttempt(owner=user, index=index)

        # REQUESTED -> VALIDATED
        try:
            record = self.ledger.get(user, index)
            plan = plan_withdrawal(record, now, self.terms)
        except LedgerError as e:
            attempt.reject(e)
            logger.warning("withdrawal %s#%s rejected: %s", user, index, attempt.reason)
            raise
        attempt.advance(WithdrawalState.VALIDATED)

        # VALIDATED -> SETTLED
        snapshot = self.ledger.snapshot()
        try:
            settlement = self.ledger.settle(user, index, now)
            if plan.kind is WithdrawalKind.EARLY:
                self.ledger.record_penalty_collected(plan.penalty)
            else:
                self.ledger.record_reward_paid(plan.reward)
            attempt.advance(WithdrawalState.SETTLED)

            # SETTLED -> PAID
            available = self.available_for_payout()
            if available < plan.payout:
                raise InsolventPool(
                    f"Payout {plan.payout} for {user}#{index} exceeds available pool balance {available}"
                )
            if plan.payout > 0:
                self.gateway.push(user, plan.payout)
        except Exception as e:
            self.ledger.restore(snapshot)
            attempt.reject(e)
            logger.warning("withdrawal %s#%s rolled back: %s", user, index, attempt.reason)
            raise
        attempt.advance(WithdrawalState.PAID)

        if plan.kind is WithdrawalKind.EARLY:
            self.events.emit(EarlyWithdrawn(user, plan.payout, plan.penalty, index), now)
            logger.info(
                "early withdrawal %s#%d: payout %d, penalty %d",
                user, index, plan.payout, plan.penalty,
            )
        else:
            self.events.emit(Withdrawn(user, settlement.principal.amount, plan.reward, index), now)
            logger.info(
                "withdrawal %s#%d: principal %d, reward %d",
                user, index, plan.principal, plan.reward,
            )

        return WithdrawalReceipt(plan=plan, settled_at=now, path=tuple(attempt.history))
