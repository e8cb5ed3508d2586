"""
gateway.py - Asset gateway

Normalises every asset variant into one contract: a call either succeeds or
raises TransferFailed. The ledger core never branches on token quirks.

The holder's balance change decides the outcome of each token call, not the
token's return value:

    nothing moved                -> TransferFailed (a raised error is chained
                                    as __cause__; False, an unexpected value or
                                    a bare success explain the failure)
    push, funds left the pool    -> committed; a raise, an odd return value or
                                    a short amount after the move is logged
    pull, exactly amount arrived -> committed; oddities are logged
    pull, another amount arrived -> the received amount is sent back to the
                                    payer, then TransferFailed

A push that moved funds is never reported as failed: the caller would roll
back a settlement whose payout has already left the pool.
"""

from __future__ import annotations
import logging
from typing import Callable, NoReturn, Optional, Protocol, Tuple, runtime_checkable

from .assets import AssetToken
from .core import InvalidAddress, TransferFailed, is_null_address

logger = logging.getLogger(__name__)


@runtime_checkable
class AssetGateway(Protocol):
    """Transfer surface the vault consumes, bound to the pool's holder address."""

    holder: str

    def balance(self) -> int:
        """Asset balance held by the pool."""
        ...

    def balance_of(self, account: str) -> int:
        ...

    def push(self, to: str, amount: int) -> None:
        """Transfer `amount` from the pool to `to`. Raises TransferFailed."""
        ...

    def pull(self, from_: str, amount: int) -> None:
        """Transfer `amount` from `from_` into the pool. Raises TransferFailed."""
        ...


class SafeAssetGateway:
    """
    AssetGateway over any AssetToken, conforming or not.

    Args:
        token: The asset
        holder: Address that holds the pool's assets (the vault's address)
    """

    def __init__(self, token: Optional[AssetToken], holder: str):
        if token is None:
            raise InvalidAddress("Asset gateway requires a token")
        if is_null_address(holder):
            raise InvalidAddress("Asset gateway requires a non-null holder address")
        self.token = token
        self.holder = holder

    def balance(self) -> int:
        return self.token.balance_of(self.holder)

    def balance_of(self, account: str) -> int:
        return self.token.balance_of(account)

    def push(self, to: str, amount: int) -> None:
        if is_null_address(to):
            raise InvalidAddress("Cannot transfer to the null address")
        before = self.balance()
        result, error = self._invoke(lambda: self.token.transfer(self.holder, to, amount))
        moved = before - self.balance()
        if moved > 0:
            self._note_anomaly("transfer", amount, moved, result, error)
            return
        self._raise_failure("transfer", amount, moved, result, error)

    def pull(self, from_: str, amount: int) -> None:
        if is_null_address(from_):
            raise InvalidAddress("Cannot transfer from the null address")
        before = self.balance()
        result, error = self._invoke(
            lambda: self.token.transfer_from(self.holder, from_, self.holder, amount)
        )
        moved = self.balance() - before
        if moved == amount:
            self._note_anomaly("transfer_from", amount, moved, result, error)
            return
        if moved > 0:
            self._refund(from_, moved, amount)
        self._raise_failure("transfer_from", amount, moved, result, error)

    @staticmethod
    def _invoke(invoke: Callable[[], object]) -> Tuple[object, Optional[Exception]]:
        # The caller inspects balances before deciding what a raised error means.
        try:
            return invoke(), None
        except Exception as e:
            return None, e

    def _note_anomaly(
        self, operation: str, amount: int, moved: int,
        result: object, error: Optional[Exception],
    ) -> None:
        if error is not None:
            logger.warning("%s of %s raised after moving %s, kept as committed: %s",
                           operation, amount, moved, error)
        elif not (result is None or result is True):
            logger.warning("%s of %s returned %r after moving %s, kept as committed",
                           operation, amount, result, moved)
        if moved != amount:
            logger.error("%s of %s moved %s; short transfer kept as committed",
                         operation, amount, moved)

    def _raise_failure(
        self, operation: str, amount: int, moved: int,
        result: object, error: Optional[Exception],
    ) -> NoReturn:
        if error is not None:
            logger.warning("%s of %s reverted: %s", operation, amount, error)
            raise TransferFailed(f"{operation} of {amount} reverted: {error}") from error
        if result is False:
            raise TransferFailed(f"{operation} of {amount} returned False")
        if not (result is None or result is True):
            raise TransferFailed(f"{operation} of {amount} returned unexpected {result!r}")
        logger.warning("%s reported success but moved %s of %s", operation, moved, amount)
        raise TransferFailed(f"{operation} reported success but moved {moved} of {amount}")

    def _refund(self, to: str, received: int, amount: int) -> None:
        """Send back what a short pull delivered, so a failed pull keeps nothing."""
        before = self.balance()
        _, error = self._invoke(lambda: self.token.transfer(self.holder, to, received))
        returned = before - self.balance()
        if returned != received:
            logger.error("refund of %s to %s after short transfer_from moved %s", received, to, returned)
            raise TransferFailed(
                f"transfer_from of {amount} delivered {received} and the refund to {to} "
                f"moved {returned}"
            ) from error
        logger.warning("returned %s to %s after transfer_from of %s delivered %s",
                       received, to, amount, received)

    def __repr__(self) -> str:
        return f"SafeAssetGateway({self.token!r}, holder={self.holder})"
