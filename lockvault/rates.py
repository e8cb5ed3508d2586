"""
rates.py - Reward and penalty engines

Pure functions with all inputs explicit:
1. calculate_reward() - time-dependent reward on a matured deposit
2. calculate_penalty() - early-withdrawal penalty
3. minimum_rewarding_principal() - smallest principal with a nonzero base reward
4. next_reward_step() - elapsed time at which the reward next increases

Key Formulas (integer floor division throughout):
    base          = principal * base_reward_rate // BASIS_POINTS
    extra_periods = (elapsed - min_lock_period) // bonus_period
    bonus         = principal * bonus_reward_rate * extra_periods // BASIS_POINTS
    reward        = base + bonus                      (0 before maturity)
    penalty       = principal * early_penalty_rate // BASIS_POINTS

The reward is a step function of elapsed time: flat within each bonus window,
jumping at every boundary. Small principals floor to a zero reward.
"""

from __future__ import annotations
from typing import Optional

from .core import (
    BASIS_POINTS, DEFAULT_TERMS,
    ElapsedTime, Principal, VaultTerms,
)


def _check_principal(principal) -> int:
    if not isinstance(principal, Principal):
        raise TypeError(
            f"principal must be a Principal, got {type(principal).__name__}"
        )
    return principal.amount


def _check_elapsed(elapsed) -> int:
    if not isinstance(elapsed, ElapsedTime):
        raise TypeError(
            f"elapsed must be an ElapsedTime, got {type(elapsed).__name__}"
        )
    return elapsed.seconds


def calculate_reward(
    principal: Principal,
    elapsed: ElapsedTime,
    terms: VaultTerms = DEFAULT_TERMS,
) -> int:
    """
    Reward earned by a deposit of `principal` locked for `elapsed`.

    Args:
        principal: Amount deposited
        elapsed: Time since the deposit was recorded
        terms: Rate and period sheet

    Returns:
        Reward in the asset's smallest unit. Zero before the minimum lock
        period matures.

    Raises:
        TypeError: If the arguments are not Principal and ElapsedTime
                   (in that order).

    Example:
        >>> calculate_reward(Principal(1000), ElapsedTime.from_timedelta(timedelta(days=90)))
        30
    """
    amount = _check_principal(principal)
    seconds = _check_elapsed(elapsed)

    min_lock = terms.min_lock_seconds
    if seconds < min_lock:
        return 0

    base = amount * terms.base_reward_rate // BASIS_POINTS
    extra_periods = (seconds - min_lock) // terms.bonus_period_seconds
    bonus = amount * terms.bonus_reward_rate * extra_periods // BASIS_POINTS
    return base + bonus


def calculate_penalty(principal: Principal, terms: VaultTerms = DEFAULT_TERMS) -> int:
    """Early-withdrawal penalty on `principal`. No time dependence."""
    amount = _check_principal(principal)
    return amount * terms.early_penalty_rate // BASIS_POINTS


def minimum_rewarding_principal(terms: VaultTerms = DEFAULT_TERMS) -> Optional[int]:
    """
    Smallest principal whose base reward floors to at least 1 unit.

    Returns None when the base reward rate is zero (no principal qualifies).
    """
    if terms.base_reward_rate == 0:
        return None
    # ceil(BASIS_POINTS / rate) without floats
    return -(-BASIS_POINTS // terms.base_reward_rate)


def next_reward_step(elapsed: ElapsedTime, terms: VaultTerms = DEFAULT_TERMS) -> ElapsedTime:
    """
    The elapsed time at which calculate_reward() next changes window.

    Before maturity this is the minimum lock period; afterwards it is the
    start of the next bonus window.
    """
    seconds = _check_elapsed(elapsed)
    min_lock = terms.min_lock_seconds
    if seconds < min_lock:
        return ElapsedTime(min_lock)
    period = terms.bonus_period_seconds
    windows_done = (seconds - min_lock) // period
    return ElapsedTime(min_lock + (windows_done + 1) * period)
