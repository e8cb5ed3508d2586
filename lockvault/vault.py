"""
vault.py - Time-Locked Savings Vault

The TimeLockedVault class is the entry point of the system. It wires the
DepositLedger, WithdrawalCoordinator and AdminOps together around one asset
gateway and one event log.

Key responsibilities:
    - Keeps the logical clock (advance_time) that deposits and withdrawals read
    - Serialises state-changing calls; a reentrant call raises ReentrantCall
    - Emits events only after an operation has fully committed
    - Exposes the read-only query surface (deposit info, counts, aggregate stats)
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from typing import Any, Dict, List, Optional
import logging

from .core import (
    DepositRecord, ElapsedTime, Principal, VaultTerms, DEFAULT_TERMS,
    InvalidAddress, InvalidAmount, LedgerError, ReentrantCall,
    is_null_address,
)
from .admin import AdminOps
from .deposit_ledger import DepositLedger
from .events import Deposited, EventLog, RewardsFunded
from .gateway import AssetGateway
from .rates import calculate_reward
from .withdrawal import WithdrawalCoordinator, WithdrawalPlan, WithdrawalReceipt, plan_withdrawal

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DepositInfo:
    """
    Query view of a deposit.

    Attributes:
        principal: Historical principal
        deposited_at: Deposit time
        settled: True once withdrawn
        current_reward: Reward a normal withdrawal would pay now (0 if immature or settled)
        can_withdraw_now: True if unsettled and matured (withdrawable without penalty)
    """
    principal: int
    deposited_at: datetime
    settled: bool
    current_reward: int
    can_withdraw_now: bool


@dataclass(frozen=True, slots=True)
class AggregateStats:
    total_locked: int
    total_rewards_paid: int
    current_pool_balance: int
    total_penalties_collected: int


def _non_reentrant(method):
    """Reject a state-changing call made while another one is in flight."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._entered:
            raise ReentrantCall(f"{method.__name__} called while another operation is in progress")
        self._entered = True
        try:
            return method(self, *args, **kwargs)
        finally:
            self._entered = False
    return wrapper


class TimeLockedVault:
    """
    Time-locked savings vault over a single fungible asset.

    Example:
        token = StandardToken("SAVE")
        vault = TimeLockedVault(SafeAssetGateway(token, "vault"), owner="admin",
                                initial_time=datetime(2025, 1, 1))

        token.mint("alice", 1000)
        token.approve("alice", "vault", 1000)
        index = vault.deposit("alice", 1000)

        vault.advance_time(datetime(2025, 3, 2))   # 60 days later
        receipt = vault.withdraw("alice", index)

    Thread Safety:
        Not thread-safe. Each thread should use its own vault.
    """

    def __init__(
        self,
        gateway: Optional[AssetGateway],
        owner: str,
        terms: VaultTerms = DEFAULT_TERMS,
        initial_time: Optional[datetime] = None,
        verbose: bool = False,
    ):
        """
        Create a vault.

        Args:
            gateway: Asset gateway bound to the vault's holder address (required)
            owner: Administrator address
            terms: Rate and lock period sheet
            initial_time: Starting time for the vault clock (default: 1970-01-01)
            verbose: Print a line per committed or rejected operation (default: False)

        Raises:
            InvalidAddress: If gateway is None or owner is the null address
        """
        if gateway is None:
            raise InvalidAddress("Vault requires an asset gateway")
        self.gateway = gateway
        self.terms = terms
        self.verbose = verbose
        self.events = EventLog()
        self.ledger = DepositLedger(gateway)
        self.coordinator = WithdrawalCoordinator(self.ledger, gateway, self.events, terms)
        self.admin = AdminOps(owner, gateway, self.events)
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self._entered = False

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the vault."""
        return self._current_time

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the vault's logical clock. Time can only move forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # STATE-CHANGING OPERATIONS
    # ========================================================================

    def _report(self, icon: str, text: str) -> None:
        if self.verbose:
            print(f"{icon} {text}")

    @_non_reentrant
    def deposit(self, user: str, amount: int) -> int:
        """
        Lock `amount` for `user`. The user must have approved the vault's holder.

        Returns:
            Index of the new deposit in the user's sequence

        Raises:
            InvalidAmount, InvalidAddress, TransferFailed
        """
        try:
            index = self.ledger.deposit(user, amount, self._current_time)
        except LedgerError as e:
            self._report("✗", f"REJECTED deposit {user} {amount}: {e}")
            raise
        self.events.emit(Deposited(user, amount, index), self._current_time)
        logger.info("deposit %s#%d: %d locked (total locked %d)", user, index, amount, self.ledger.total_locked)
        self._report("✓", f"DEPOSITED {user}#{index}: {amount}")
        return index

    @_non_reentrant
    def withdraw(self, user: str, index: int) -> WithdrawalReceipt:
        """
        Withdraw a deposit: early (penalised) before maturity, normal (rewarded) after.

        Raises:
            InvalidDepositId, AlreadySettled, InsolventPool, TransferFailed
        """
        try:
            receipt = self.coordinator.withdraw(user, index, self._current_time)
        except LedgerError as e:
            self._report("✗", f"REJECTED withdrawal {user}#{index}: {e}")
            raise
        self._report(
            "✓",
            f"WITHDRAWN {user}#{index} [{receipt.kind.value}]: payout {receipt.payout} "
            f"(reward {receipt.reward}, penalty {receipt.penalty})",
        )
        return receipt

    @_non_reentrant
    def fund_rewards(self, funder: str, amount: int) -> None:
        """
        Add `amount` to the pool to collateralise future rewards.

        No deposit record is created and total_locked is unchanged.

        Raises:
            InvalidAmount, InvalidAddress, TransferFailed
        """
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TypeError(f"Funding amount must be an int, got {type(amount).__name__}")
        try:
            if amount <= 0:
                raise InvalidAmount(f"Funding amount must be positive, got {amount}")
            if is_null_address(funder):
                raise InvalidAddress("Funder cannot be the null address")
            self.gateway.pull(funder, amount)
        except LedgerError as e:
            self._report("✗", f"REJECTED funding {funder} {amount}: {e}")
            raise
        self.events.emit(RewardsFunded(funder, amount), self._current_time)
        logger.info("rewards funded by %s: %d (pool %d)", funder, amount, self.gateway.balance())
        self._report("✓", f"FUNDED {amount} by {funder}")

    @_non_reentrant
    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        try:
            self.admin.transfer_ownership(caller, new_owner, self._current_time)
        except LedgerError as e:
            self._report("✗", f"REJECTED ownership transfer by {caller}: {e}")
            raise
        self._report("✓", f"OWNER {new_owner}")

    @_non_reentrant
    def emergency_sweep(self, caller: str) -> int:
        """Move the entire pool to the owner. Breaks every outstanding withdrawal."""
        try:
            amount = self.admin.emergency_sweep(caller, self._current_time)
        except LedgerError as e:
            self._report("✗", f"REJECTED emergency sweep by {caller}: {e}")
            raise
        self._report("⚠️", f"EMERGENCY SWEEP {amount} to {self.admin.owner}")
        return amount

    # ========================================================================
    # QUERIES (read-only)
    # ========================================================================

    @property
    def owner(self) -> str:
        return self.admin.owner

    def get_deposit(self, user: str, index: int) -> DepositRecord:
        return self.ledger.get(user, index)

    def get_user_deposits(self, user: str) -> List[DepositRecord]:
        return self.ledger.records(user)

    def get_user_deposit_count(self, user: str) -> int:
        return self.ledger.deposit_count(user)

    def get_deposit_info(self, user: str, index: int) -> DepositInfo:
        """
        Deposit fields plus what withdrawing it right now would mean.

        Raises:
            InvalidDepositId: If the index is out of range
        """
        record = self.ledger.get(user, index)
        current_reward = 0
        can_withdraw_now = False
        if not record.settled:
            elapsed = ElapsedTime.between(record.deposited_at, self._current_time)
            current_reward = calculate_reward(Principal(record.principal), elapsed, self.terms)
            can_withdraw_now = elapsed.seconds >= self.terms.min_lock_seconds
        return DepositInfo(
            principal=record.principal,
            deposited_at=record.deposited_at,
            settled=record.settled,
            current_reward=current_reward,
            can_withdraw_now=can_withdraw_now,
        )

    def preview_withdrawal(self, user: str, index: int) -> WithdrawalPlan:
        """
        The plan withdraw() would execute now, without executing it.

        Raises:
            InvalidDepositId, AlreadySettled
        """
        return plan_withdrawal(self.ledger.get(user, index), self._current_time, self.terms)

    def get_aggregate_stats(self) -> AggregateStats:
        return AggregateStats(
            total_locked=self.ledger.total_locked,
            total_rewards_paid=self.ledger.total_rewards_paid,
            current_pool_balance=self.gateway.balance(),
            total_penalties_collected=self.ledger.total_penalties_collected,
        )

    def verify_conservation(self) -> Dict[str, Any]:
        """See DepositLedger.verify_conservation()."""
        return self.ledger.verify_conservation()

    def __repr__(self) -> str:
        stats = self.get_aggregate_stats()
        return (
            f"TimeLockedVault(owner={self.owner}, locked={stats.total_locked}, "
            f"pool={stats.current_pool_balance}, t={self._current_time})"
        )
