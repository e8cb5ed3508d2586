"""
lockvault - Time-Locked Savings Ledger

An in-memory accounting engine for time-locked deposits: principal accrues a
stepwise reward once a minimum lock period matures, or is returned minus a
penalty if withdrawn early. Every payout passes a solvency check and is
atomic with its settlement.

Usage:
    from datetime import datetime, timedelta
    from lockvault import TimeLockedVault, SafeAssetGateway, StandardToken

    token = StandardToken("SAVE")
    vault = TimeLockedVault(SafeAssetGateway(token, "vault"), owner="admin",
                            initial_time=datetime(2025, 1, 1))

    # Collateralise rewards, then deposit
    token.mint("treasury", 10_000)
    token.approve("treasury", "vault", 10_000)
    vault.fund_rewards("treasury", 10_000)

    token.mint("alice", 1000)
    token.approve("alice", "vault", 1000)
    index = vault.deposit("alice", 1000)

    vault.advance_time(datetime(2025, 1, 1) + timedelta(days=90))
    receipt = vault.withdraw("alice", index)   # payout 1030
"""

# Core types
from .core import (
    BASIS_POINTS,
    MIN_LOCK_PERIOD,
    BONUS_PERIOD,
    BASE_REWARD_RATE,
    BONUS_REWARD_RATE,
    EARLY_PENALTY_RATE,
    NULL_ADDRESS,
    DEFAULT_TERMS,
    VaultTerms,
    Principal,
    ElapsedTime,
    DepositRecord,
    is_null_address,
    LedgerError,
    InvalidAmount,
    InvalidDepositId,
    AlreadySettled,
    InsolventPool,
    TransferFailed,
    Unauthorized,
    InvalidAddress,
    ReentrantCall,
)

# Reward and penalty engines
from .rates import (
    calculate_reward,
    calculate_penalty,
    minimum_rewarding_principal,
    next_reward_step,
)

# Assets and gateway
from .assets import AssetToken, StandardToken, NoReturnToken, TokenRevert
from .gateway import AssetGateway, SafeAssetGateway

# Events
from .events import (
    Deposited,
    Withdrawn,
    EarlyWithdrawn,
    RewardsFunded,
    OwnershipTransferred,
    EmergencySwept,
    EventLog,
    LoggedEvent,
    event_args,
)

# Ledger, withdrawals, admin
from .deposit_ledger import DepositLedger, LedgerSnapshot, Settlement
from .withdrawal import (
    WithdrawalKind,
    WithdrawalState,
    WithdrawalPlan,
    WithdrawalReceipt,
    WithdrawalCoordinator,
    plan_withdrawal,
)
from .admin import AdminOps

# Vault
from .vault import TimeLockedVault, DepositInfo, AggregateStats

__all__ = [
    # Core
    'BASIS_POINTS', 'MIN_LOCK_PERIOD', 'BONUS_PERIOD', 'BASE_REWARD_RATE',
    'BONUS_REWARD_RATE', 'EARLY_PENALTY_RATE', 'NULL_ADDRESS', 'DEFAULT_TERMS',
    'VaultTerms', 'Principal', 'ElapsedTime', 'DepositRecord', 'is_null_address',
    'LedgerError', 'InvalidAmount', 'InvalidDepositId', 'AlreadySettled',
    'InsolventPool', 'TransferFailed', 'Unauthorized', 'InvalidAddress', 'ReentrantCall',
    # Rates
    'calculate_reward', 'calculate_penalty', 'minimum_rewarding_principal', 'next_reward_step',
    # Assets
    'AssetToken', 'StandardToken', 'NoReturnToken', 'TokenRevert',
    'AssetGateway', 'SafeAssetGateway',
    # Events
    'Deposited', 'Withdrawn', 'EarlyWithdrawn', 'RewardsFunded',
    'OwnershipTransferred', 'EmergencySwept', 'EventLog', 'LoggedEvent', 'event_args',
    # Ledger
    'DepositLedger', 'LedgerSnapshot', 'Settlement',
    'WithdrawalKind', 'WithdrawalState', 'WithdrawalPlan', 'WithdrawalReceipt',
    'WithdrawalCoordinator', 'plan_withdrawal',
    'AdminOps',
    # Vault
    'TimeLockedVault', 'DepositInfo', 'AggregateStats',
]

__version__ = '1.0.0'
