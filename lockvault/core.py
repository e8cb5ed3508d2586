"""
Core types and constants for the time-locked savings ledger.

This module provides the foundational data structures shared by every other module:
1. Constants: basis points, default rates and lock periods, the null address
2. Configuration: VaultTerms, the immutable rate and period sheet
3. Value objects: Principal and ElapsedTime, so reward arguments cannot be swapped
4. Records: DepositRecord, the per-deposit audit record
5. Exceptions: LedgerError and the caller-visible failure taxonomy

Nothing in this module mutates ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional


# ============================================================================
# CONSTANTS
# ============================================================================

# Rate unit: 10000 basis points = 100%.
BASIS_POINTS = 10_000

# Default term sheet.
MIN_LOCK_PERIOD = timedelta(days=60)
BONUS_PERIOD = timedelta(days=30)
BASE_REWARD_RATE = 200       # 2% once the minimum lock matures
BONUS_REWARD_RATE = 100      # +1% per full bonus period after maturity
EARLY_PENALTY_RATE = 1_000   # 10% of principal on early withdrawal

# Identity that can never hold assets or own the vault.
NULL_ADDRESS = "0x0000000000000000000000000000000000000000"


def is_null_address(address: Optional[str]) -> bool:
    """True for None, empty/blank strings and the zero address."""
    if address is None:
        return True
    if not isinstance(address, str):
        return False
    stripped = address.strip()
    return not stripped or stripped == NULL_ADDRESS


def _whole_seconds(period: timedelta) -> int:
    return period // timedelta(seconds=1)


def _require_int(name: str, value: Any) -> int:
    # bool is an int subclass; a flag is never an amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    return value


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all vault ledger errors."""
    pass


class InvalidAmount(LedgerError):
    """Raised when a deposit or funding amount is zero or negative."""
    pass


class InvalidDepositId(LedgerError):
    """Raised when a deposit index is out of range for its owner."""
    pass


class AlreadySettled(LedgerError):
    """Raised when withdrawing a deposit that has already been withdrawn."""
    pass


class InsolventPool(LedgerError):
    """Raised when the pool cannot cover a promised payout."""
    pass


class TransferFailed(LedgerError):
    """Raised when the asset gateway reports or detects a failed transfer."""
    pass


class Unauthorized(LedgerError):
    """Raised when an owner-only operation is called by someone else."""
    pass


class InvalidAddress(LedgerError):
    """Raised when a null address is given where a real identity is required."""
    pass


class ReentrantCall(LedgerError):
    """Raised when a state-changing call arrives while another is in flight."""
    pass


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class VaultTerms:
    """
    Immutable term sheet for a vault - set at construction, never changes.

    Attributes:
        min_lock_period: Elapsed time after which a deposit matures (no penalty, base reward)
        bonus_period: Length of each bonus window after maturity
        base_reward_rate: Reward paid at maturity, in basis points of principal
        bonus_reward_rate: Extra reward per full bonus period, in basis points
        early_penalty_rate: Penalty on early withdrawal, in basis points of principal
        ring_fence_principal: When True, a payout may not be funded from other
                              depositors' locked principal
    """
    min_lock_period: timedelta = MIN_LOCK_PERIOD
    bonus_period: timedelta = BONUS_PERIOD
    base_reward_rate: int = BASE_REWARD_RATE
    bonus_reward_rate: int = BONUS_REWARD_RATE
    early_penalty_rate: int = EARLY_PENALTY_RATE
    ring_fence_principal: bool = False

    def __post_init__(self):
        for name in ('min_lock_period', 'bonus_period'):
            period = getattr(self, name)
            if not isinstance(period, timedelta):
                raise ValueError(f"{name} must be a timedelta, got {type(period).__name__}")
            if period % timedelta(seconds=1):
                raise ValueError(f"{name} must be a whole number of seconds, got {period}")
            if period <= timedelta(0):
                raise ValueError(f"{name} must be positive, got {period}")
        for name in ('base_reward_rate', 'bonus_reward_rate', 'early_penalty_rate'):
            rate = getattr(self, name)
            if isinstance(rate, bool) or not isinstance(rate, int):
                raise ValueError(f"{name} must be an int, got {type(rate).__name__}")
            if not 0 <= rate <= BASIS_POINTS:
                raise ValueError(f"{name} must be within [0, {BASIS_POINTS}], got {rate}")

    @property
    def min_lock_seconds(self) -> int:
        return _whole_seconds(self.min_lock_period)

    @property
    def bonus_period_seconds(self) -> int:
        return _whole_seconds(self.bonus_period)

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> 'VaultTerms':
        """
        Build terms from plain configuration values.

        Periods may be given as timedeltas, or as integers under a
        ``_seconds`` or ``_days`` suffixed key (``min_lock_period_days=60``).
        Unknown keys are rejected so that typos do not silently fall back
        to defaults.

        Example:
            terms = VaultTerms.from_mapping({
                "min_lock_period_days": 90,
                "base_reward_rate": 300,
            })
        """
        kwargs: dict = {}
        known = set(cls.__dataclass_fields__)
        for key, value in config.items():
            if key in known:
                kwargs[key] = value
                continue
            base, _, unit = key.rpartition('_')
            if base in ('min_lock_period', 'bonus_period') and unit in ('seconds', 'days'):
                if base in kwargs:
                    raise ValueError(f"{base} given more than once")
                amount = _require_int(key, value)
                kwargs[base] = timedelta(**{unit: amount})
                continue
            raise ValueError(f"Unknown vault term: {key}")
        return cls(**kwargs)


DEFAULT_TERMS = VaultTerms()


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True, slots=True, order=True)
class Principal:
    """
    A deposited asset amount, in the asset's smallest unit.

    Distinct from ElapsedTime so that reward arguments cannot be transposed.
    """
    amount: int

    def __post_init__(self):
        _require_int("Principal amount", self.amount)
        if self.amount < 0:
            raise ValueError(f"Principal amount must be non-negative, got {self.amount}")

    def __int__(self) -> int:
        return self.amount


@dataclass(frozen=True, slots=True, order=True)
class ElapsedTime:
    """Time a deposit has been locked, in whole seconds."""
    seconds: int

    def __post_init__(self):
        _require_int("ElapsedTime seconds", self.seconds)
        if self.seconds < 0:
            raise ValueError(f"ElapsedTime must be non-negative, got {self.seconds}")

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> 'ElapsedTime':
        return cls(_whole_seconds(delta))

    @classmethod
    def between(cls, start: datetime, end: datetime) -> 'ElapsedTime':
        """Elapsed time from start to end, floored to whole seconds."""
        if end < start:
            raise ValueError(f"Elapsed time cannot be negative: {end} < {start}")
        return cls.from_timedelta(end - start)

    def as_timedelta(self) -> timedelta:
        return timedelta(seconds=self.seconds)


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class DepositRecord:
    """
    Immutable audit record of a single deposit.

    A record is replaced (never mutated in place) exactly once, when it is
    settled. The historical principal is retained after settlement for
    display, but live_principal is zero from then on and every balance or
    solvency computation must use it.

    Attributes:
        owner: Address of the depositor
        index: Position in the owner's append-only deposit sequence
        principal: Amount deposited (positive integer)
        deposited_at: When the deposit was recorded
        settled: True once the deposit has been withdrawn (early or normal)
        settled_at: When the deposit was withdrawn, None while unsettled
    """
    owner: str
    index: int
    principal: int
    deposited_at: datetime
    settled: bool = False
    settled_at: Optional[datetime] = field(default=None)

    def __post_init__(self):
        _require_int("principal", self.principal)
        _require_int("index", self.index)
        if self.principal <= 0:
            raise ValueError(f"principal must be positive, got {self.principal}")
        if self.index < 0:
            raise ValueError(f"index must be non-negative, got {self.index}")
        if self.settled != (self.settled_at is not None):
            raise ValueError("settled_at must be set exactly when settled is True")

    @property
    def live_principal(self) -> int:
        """Principal still locked by this record: zero once settled."""
        return 0 if self.settled else self.principal

    def __repr__(self) -> str:
        status = f"settled@{self.settled_at}" if self.settled else "locked"
        return f"Deposit({self.owner}#{self.index}: {self.principal} since {self.deposited_at}, {status})"
