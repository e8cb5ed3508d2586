#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Savings Vault Step by Step

A walkthrough of the time-locked savings vault. Each step builds on the
previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation      - The empty vault, funding rewards, first deposit
  4-6:   Reward Curve    - Early penalty, maturity, bonus periods and cliffs
  7-9:   Safety          - Double withdrawal, solvency rollback, odd tokens
  10:    Administration  - Emergency sweep and what it breaks

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import sys

from lockvault import (
    TimeLockedVault, SafeAssetGateway, StandardToken, NoReturnToken,
    Principal, ElapsedTime, calculate_reward, minimum_rewarding_principal,
    event_args, LedgerError,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    vault_address: str = "vault"
    owner: str = "admin"

    treasury_funding: int = 1_000
    alice_savings: int = 10_000
    bob_savings: int = 10_000
    deposit_amount: int = 1_000


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def fund(token, account: str, amount: int):
    token.mint(account, amount)
    token.approve(account, CONFIG.vault_address, token.allowance(account, CONFIG.vault_address) + amount)


def show_stats(vault: TimeLockedVault):
    stats = vault.get_aggregate_stats()
    print(f"Total locked:        {stats.total_locked}")
    print(f"Rewards paid:        {stats.total_rewards_paid}")
    print(f"Penalties collected: {stats.total_penalties_collected}")
    print(f"Pool balance:        {stats.current_pool_balance}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_empty_vault():
    """Create an empty vault."""
    step_header(1, "The Empty Vault",
        "A vault holds one asset and keeps its own clock.")

    print(">>> token = StandardToken('SAVE')")
    print(">>> vault = TimeLockedVault(SafeAssetGateway(token, 'vault'), owner='admin', verbose=True)")
    token = StandardToken("SAVE")
    vault = TimeLockedVault(
        SafeAssetGateway(token, CONFIG.vault_address),
        owner=CONFIG.owner,
        initial_time=CONFIG.start_time,
        verbose=True,
    )

    section_header("Initial State")
    print(f"Owner:        {vault.owner}")
    print(f"Current time: {vault.current_time}")
    print(f"Terms:        {vault.terms}")
    show_stats(vault)

    return vault, token


def step_02_fund_rewards(vault: TimeLockedVault, token):
    """Fund the reward pool."""
    step_header(2, "Funding Rewards",
        "Rewards are paid from the pool. Somebody has to put them there.")

    fund(token, "treasury", CONFIG.treasury_funding)
    print(f">>> vault.fund_rewards('treasury', {CONFIG.treasury_funding})")
    vault.fund_rewards("treasury", CONFIG.treasury_funding)
    show_stats(vault)

    section_header("Key Insight")
    print("""
    Funding adds to the pool but creates no deposit record, so total_locked
    does not move. Only the pool balance grows.
    """)
    return vault


def step_03_first_deposit(vault: TimeLockedVault, token):
    """Lock savings."""
    step_header(3, "First Deposit",
        "Each deposit is its own record with its own clock.")

    fund(token, "alice", CONFIG.alice_savings)
    fund(token, "bob", CONFIG.bob_savings)

    for _ in range(3):
        vault.deposit("alice", CONFIG.deposit_amount)
    vault.deposit("bob", CONFIG.deposit_amount)

    section_header("Alice's Deposits")
    for record in vault.get_user_deposits("alice"):
        print(f"  {record}")
    show_stats(vault)
    print(f"\nLast event: {list(vault.events)[-1]}")
    return vault


# ============================================================================
# PHASE 2: REWARD CURVE (Steps 4-6)
# ============================================================================

def step_04_early_withdrawal(vault: TimeLockedVault, token):
    """Withdraw before maturity."""
    step_header(4, "Early Withdrawal",
        "Leaving before the minimum lock costs a flat penalty.")

    vault.advance_time(CONFIG.start_time + timedelta(days=30))
    print(f">>> vault.advance_time(+30 days)   # now {vault.current_time}")
    print(">>> vault.preview_withdrawal('alice', 0)")
    print(f"    {vault.preview_withdrawal('alice', 0)}")
    receipt = vault.withdraw("alice", 0)

    section_header("Result")
    print(f"Payout {receipt.payout}, penalty {receipt.penalty}")
    print("The penalty stays in the pool and becomes buffer for future rewards.")
    show_stats(vault)
    return vault


def step_05_maturity(vault: TimeLockedVault, token):
    """Withdraw at maturity."""
    step_header(5, "Maturity",
        "After the minimum lock a withdrawal earns the base reward.")

    vault.advance_time(CONFIG.start_time + timedelta(days=60))
    info = vault.get_deposit_info("alice", 1)
    print(f"get_deposit_info('alice', 1): reward now {info.current_reward}, "
          f"can withdraw {info.can_withdraw_now}")
    receipt = vault.withdraw("alice", 1)
    print(f"Payout {receipt.payout} = principal {receipt.plan.principal} + reward {receipt.reward}")
    return vault


def step_06_bonus_cliffs(vault: TimeLockedVault, token):
    """Show the step function."""
    step_header(6, "Bonus Periods and Cliffs",
        "Reward grows in whole bonus periods only; partial periods count for nothing.")

    principal = Principal(CONFIG.deposit_amount)
    print(f"{'Days held':>10} | {'Reward':>6}")
    print(f"{'-'*10}-+-{'-'*6}")
    for held in (59, 60, 75, 89, 90, 119, 120, 150):
        elapsed = ElapsedTime.from_timedelta(timedelta(days=held))
        print(f"{held:>10} | {calculate_reward(principal, elapsed, vault.terms):>6}")

    section_header("Small Deposits")
    threshold = minimum_rewarding_principal(vault.terms)
    print(f"Below {threshold} units the base reward floors to zero.")

    vault.advance_time(CONFIG.start_time + timedelta(days=90))
    receipt = vault.withdraw("alice", 2)
    print(f"\nAlice's third deposit at 90 days: reward {receipt.reward}")
    return vault


# ============================================================================
# PHASE 3: SAFETY (Steps 7-9)
# ============================================================================

def step_07_double_withdrawal(vault: TimeLockedVault, token):
    """Try to withdraw twice."""
    step_header(7, "Settled Means Settled",
        "A deposit pays out exactly once.")

    before = token.balance_of("alice")
    try:
        vault.withdraw("alice", 2)
    except LedgerError as e:
        print(f"Rejected: {type(e).__name__}: {e}")
    print(f"Alice's balance unchanged: {before == token.balance_of('alice')}")
    return vault


def step_08_solvency(vault: TimeLockedVault, token):
    """A reward the pool cannot pay."""
    step_header(8, "Solvency Check",
        "The vault never promises a reward it cannot pay.")

    lean = TimeLockedVault(
        SafeAssetGateway(StandardToken("LEAN"), "lean_vault"),
        owner=CONFIG.owner,
        initial_time=CONFIG.start_time,
        verbose=True,
    )
    lean_token = lean.gateway.token
    lean_token.mint("carol", 1000)
    lean_token.approve("carol", "lean_vault", 1000)
    lean.deposit("carol", 1000)
    lean.advance_time(CONFIG.start_time + timedelta(days=60))

    try:
        lean.withdraw("carol", 0)
    except LedgerError as e:
        print(f"\n{type(e).__name__}: {e}")
    print(f"Deposit still unsettled: {not lean.get_deposit('carol', 0).settled}")
    print(f"Conservation: {lean.verify_conservation()['valid']}")
    return vault


def step_09_non_conforming_token(vault: TimeLockedVault, token):
    """Tokens that revert instead of returning False."""
    step_header(9, "Non-Conforming Assets",
        "The gateway turns every token failure into TransferFailed.")

    odd = NoReturnToken("USDT")
    usdt_vault = TimeLockedVault(
        SafeAssetGateway(odd, "usdt_vault"), owner=CONFIG.owner,
        initial_time=CONFIG.start_time, verbose=True,
    )
    odd.mint("dave", 500)
    try:
        usdt_vault.deposit("dave", 500)   # never approved
    except LedgerError as e:
        print(f"\n{type(e).__name__}: {e}")
        print(f"Caused by: {type(e.__cause__).__name__}")
    odd.approve("dave", "usdt_vault", 500)
    usdt_vault.deposit("dave", 500)
    return vault


# ============================================================================
# PHASE 4: ADMINISTRATION (Step 10)
# ============================================================================

def step_10_emergency_sweep(vault: TimeLockedVault, token):
    """The last-resort escape valve."""
    step_header(10, "Emergency Sweep",
        "The owner can take the whole pool. Every open deposit becomes unpayable.")

    show_stats(vault)
    vault.emergency_sweep(CONFIG.owner)
    show_stats(vault)
    try:
        vault.withdraw("bob", 0)
    except LedgerError as e:
        print(f"\nBob: {type(e).__name__}: {e}")

    section_header("Event Log")
    for entry in vault.events:
        print(f"  {entry}")
    return vault


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       TIME-LOCKED SAVINGS VAULT - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    vault, token = step_01_empty_vault()
    wait_for_enter()

    for step in (
        step_02_fund_rewards,
        step_03_first_deposit,
        step_04_early_withdrawal,
        step_05_maturity,
        step_06_bonus_cliffs,
        step_07_double_withdrawal,
        step_08_solvency,
        step_09_non_conforming_token,
        step_10_emergency_sweep,
    ):
        vault = step(vault, token)
        wait_for_enter()

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See lockvault/rates.py for the reward curve
      - See lockvault/withdrawal.py for the withdrawal state machine
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
