"""
assets.py - In-memory fungible asset models

Reference implementations of the two asset variants a vault must tolerate:
- StandardToken: conforming; transfer() and transfer_from() return True/False
- NoReturnToken: non-conforming; returns None and raises TokenRevert on failure

Both keep balances and allowances in plain dicts and are intended for
simulation, demos and tests. The vault never talks to them directly; it goes
through an AssetGateway (see gateway.py) which normalises both behaviours.
"""

from __future__ import annotations
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class AssetToken(Protocol):
    """
    Transfer surface of a fungible asset.

    `sender` / `spender` identify the caller, standing in for the implicit
    message sender of an on-chain token.
    """

    def balance_of(self, account: str) -> int:
        ...

    def transfer(self, sender: str, to: str, amount: int) -> Optional[bool]:
        ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> Optional[bool]:
        ...


class TokenRevert(Exception):
    """Raised by a non-conforming token instead of returning False."""
    pass


class _InMemoryToken:
    """Shared balance/allowance bookkeeping."""

    def __init__(self, symbol: str, decimals: int = 18):
        self.symbol = symbol
        self.decimals = decimals
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}

    @property
    def total_supply(self) -> int:
        return sum(self.balances.values())

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def mint(self, account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Cannot mint a negative amount: {amount}")
        self.balances[account] = self.balance_of(account) + amount

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError(f"Cannot approve a negative amount: {amount}")
        self.allowances[(owner, spender)] = amount
        return True

    def _failure(self, sender: str, to: str, amount: int, spender: Optional[str] = None) -> Optional[str]:
        if amount < 0:
            return f"negative amount {amount}"
        if self.balance_of(sender) < amount:
            return f"{sender} balance {self.balance_of(sender)} < {amount}"
        if spender is not None and self.allowance(sender, spender) < amount:
            return f"allowance {sender}->{spender} {self.allowance(sender, spender)} < {amount}"
        return None

    def _move(self, sender: str, to: str, amount: int, spender: Optional[str] = None) -> None:
        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[to] = self.balance_of(to) + amount
        if spender is not None:
            self.allowances[(sender, spender)] = self.allowance(sender, spender) - amount

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.symbol}, supply={self.total_supply})"


class StandardToken(_InMemoryToken):
    """Conforming asset: reports success or failure through a bool return."""

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        if self._failure(sender, to, amount):
            return False
        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        if self._failure(owner, to, amount, spender):
            return False
        self._move(owner, to, amount, spender)
        return True


class NoReturnToken(_InMemoryToken):
    """Non-conforming asset: returns nothing and reverts on failure."""

    def transfer(self, sender: str, to: str, amount: int) -> None:
        reason = self._failure(sender, to, amount)
        if reason:
            raise TokenRevert(reason)
        self._move(sender, to, amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        reason = self._failure(owner, to, amount, spender)
        if reason:
            raise TokenRevert(reason)
        self._move(owner, to, amount, spender)
