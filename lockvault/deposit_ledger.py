"""
deposit_ledger.py - Deposit record store and aggregate counters

DepositLedger is the only component that mutates vault accounting state.

Key responsibilities:
    - Receive-then-record deposits (asset pulled before the record exists)
    - Settle records exactly once, releasing their principal from the totals
    - Own the global counters (total locked, rewards paid, penalties collected)
    - Snapshot and restore its full state, so callers can make a multi-step
      operation atomic

Invariants maintained after every public call:
    total_deposited_by(u) == sum(r.live_principal for r in records(u))
    total_locked == sum(total_deposited_by(u) for every user u)
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Tuple
import logging

from .core import (
    DepositRecord, Principal,
    AlreadySettled, InvalidAddress, InvalidAmount, InvalidDepositId,
    is_null_address,
)
from .gateway import AssetGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Settlement:
    """What settle() hands back for payout computation."""
    owner: str
    index: int
    principal: Principal
    deposited_at: datetime


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    """Complete copy of DepositLedger state at a point in time."""
    records: Tuple[Tuple[str, Tuple[DepositRecord, ...]], ...]
    totals_by_user: Tuple[Tuple[str, int], ...]
    total_locked: int
    total_rewards_paid: int
    total_penalties_collected: int


class DepositLedger:
    """
    Per-user append-only deposit records plus aggregate counters.

    Records are frozen; settling replaces a record with its settled copy at
    the same index. Indices are never reused or compacted.

    Thread Safety:
        Not thread-safe. The vault serialises all state-changing calls.
    """

    def __init__(self, gateway: AssetGateway):
        if gateway is None:
            raise InvalidAddress("DepositLedger requires an asset gateway")
        self.gateway = gateway
        self._records: Dict[str, List[DepositRecord]] = {}
        self._totals_by_user: Dict[str, int] = {}
        self._total_locked: int = 0
        self._total_rewards_paid: int = 0
        self._total_penalties_collected: int = 0

    # ========================================================================
    # READS
    # ========================================================================

    @property
    def total_locked(self) -> int:
        return self._total_locked

    @property
    def total_rewards_paid(self) -> int:
        return self._total_rewards_paid

    @property
    def total_penalties_collected(self) -> int:
        return self._total_penalties_collected

    def total_deposited_by(self, user: str) -> int:
        return self._totals_by_user.get(user, 0)

    def deposit_count(self, user: str) -> int:
        return len(self._records.get(user, ()))

    def users(self) -> List[str]:
        return sorted(self._records)

    def records(self, user: str) -> List[DepositRecord]:
        return list(self._records.get(user, ()))

    def get(self, user: str, index: int) -> DepositRecord:
        """
        Return the record at `index` in `user`'s deposit sequence.

        Raises:
            InvalidDepositId: If the index is out of range for that user
        """
        user_records = self._records.get(user, ())
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidDepositId(f"Deposit id must be an int, got {index!r}")
        if not 0 <= index < len(user_records):
            raise InvalidDepositId(
                f"Deposit {index} out of range for {user} ({len(user_records)} deposits)"
            )
        return user_records[index]

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def deposit(self, user: str, principal: int, at: datetime) -> int:
        """
        Pull `principal` from `user` into the pool, then record the deposit.

        Args:
            user: Depositor address
            principal: Amount to lock (positive integer)
            at: Deposit time

        Returns:
            Index of the new record in the user's deposit sequence

        Raises:
            InvalidAmount: If principal is zero or negative
            InvalidAddress: If user is the null address
            TransferFailed: If the asset did not move (nothing is recorded)
        """
        if isinstance(principal, bool) or not isinstance(principal, int):
            raise TypeError(f"Deposit amount must be an int, got {type(principal).__name__}")
        if principal <= 0:
            raise InvalidAmount(f"Deposit amount must be positive, got {principal}")
        if is_null_address(user):
            raise InvalidAddress("Depositor cannot be the null address")

        self.gateway.pull(user, principal)

        user_records = self._records.setdefault(user, [])
        index = len(user_records)
        user_records.append(DepositRecord(
            owner=user,
            index=index,
            principal=principal,
            deposited_at=at,
        ))
        self._totals_by_user[user] = self.total_deposited_by(user) + principal
        self._total_locked += principal
        logger.debug("recorded deposit %s#%d of %d", user, index, principal)
        return index

    def settle(self, user: str, index: int, at: datetime) -> Settlement:
        """
        Mark a deposit withdrawn and release its principal from the totals.

        Raises:
            InvalidDepositId: If the index is out of range
            AlreadySettled: If the record was already settled
        """
        record = self.get(user, index)
        if record.settled:
            raise AlreadySettled(f"Deposit {user}#{index} was already withdrawn at {record.settled_at}")

        self._records[user][index] = replace(record, settled=True, settled_at=at)
        self._totals_by_user[user] -= record.principal
        self._total_locked -= record.principal
        logger.debug("settled deposit %s#%d (%d released)", user, index, record.principal)
        return Settlement(
            owner=user,
            index=index,
            principal=Principal(record.principal),
            deposited_at=record.deposited_at,
        )

    def record_reward_paid(self, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Reward paid cannot be negative, got {amount}")
        self._total_rewards_paid += amount

    def record_penalty_collected(self, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Penalty collected cannot be negative, got {amount}")
        self._total_penalties_collected += amount

    # ========================================================================
    # ATOMICITY SUPPORT
    # ========================================================================

    def snapshot(self) -> LedgerSnapshot:
        """Capture the full ledger state. Records are frozen, so copying lists suffices."""
        return LedgerSnapshot(
            records=tuple((u, tuple(rs)) for u, rs in self._records.items()),
            totals_by_user=tuple(self._totals_by_user.items()),
            total_locked=self._total_locked,
            total_rewards_paid=self._total_rewards_paid,
            total_penalties_collected=self._total_penalties_collected,
        )

    def restore(self, snapshot: LedgerSnapshot) -> None:
        """Return the ledger to exactly the state captured by `snapshot`."""
        self._records = {u: list(rs) for u, rs in snapshot.records}
        self._totals_by_user = dict(snapshot.totals_by_user)
        self._total_locked = snapshot.total_locked
        self._total_rewards_paid = snapshot.total_rewards_paid
        self._total_penalties_collected = snapshot.total_penalties_collected

    # ========================================================================
    # AUDIT
    # ========================================================================

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Verify that the aggregate counters agree with the records.

        Returns:
            Dict with keys:
            - 'valid': bool - True if every invariant holds
            - 'total_locked': int - The global counter
            - 'sum_by_user': int - Sum of the per-user counters
            - 'discrepancies': List[Dict] - One entry per violated invariant
        """
        discrepancies = []
        for user in self.users():
            expected = sum(r.live_principal for r in self._records[user])
            actual = self.total_deposited_by(user)
            if expected != actual:
                discrepancies.append({
                    'user': user,
                    'expected': expected,
                    'actual': actual,
                    'difference': actual - expected,
                })

        sum_by_user = sum(self._totals_by_user.values())
        if sum_by_user != self._total_locked:
            discrepancies.append({
                'user': None,
                'expected': sum_by_user,
                'actual': self._total_locked,
                'difference': self._total_locked - sum_by_user,
            })

        return {
            'valid': len(discrepancies) == 0,
            'total_locked': self._total_locked,
            'sum_by_user': sum_by_user,
            'discrepancies': discrepancies,
        }
