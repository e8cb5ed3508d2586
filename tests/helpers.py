"""
helpers.py - Shared constants and helpers for vault tests

Plain functions and constants (fixtures live in conftest.py).
"""

from datetime import datetime, timedelta

from lockvault import TimeLockedVault


START = datetime(2025, 1, 1)
VAULT = "vault"
OWNER = "admin"
TREASURY = "treasury"


def days(n: float) -> timedelta:
    return timedelta(days=n)


def observable_state(vault: TimeLockedVault) -> dict:
    """Everything a caller can observe about the ledger, for before/after comparisons."""
    users = vault.ledger.users()
    return {
        'records': {u: vault.get_user_deposits(u) for u in users},
        'totals': {u: vault.ledger.total_deposited_by(u) for u in users},
        'stats': vault.get_aggregate_stats(),
        'events': len(vault.events),
    }
