"""
admin.py - Owner-gated administrative operations

Thin pass-through for ownership and the emergency sweep.

The emergency sweep moves the ENTIRE pool balance to the owner. It does not
touch deposit records: afterwards every withdrawal fails with InsolventPool
until the pool is refunded. It exists for catastrophic recovery only and is
not a way to collect penalty proceeds.
"""

from __future__ import annotations
from datetime import datetime
import logging

from .core import InvalidAddress, Unauthorized, is_null_address
from .events import EmergencySwept, EventLog, OwnershipTransferred
from .gateway import AssetGateway

logger = logging.getLogger(__name__)


class AdminOps:
    """Owner identity plus the two owner-only operations."""

    def __init__(self, owner: str, gateway: AssetGateway, events: EventLog):
        if is_null_address(owner):
            raise InvalidAddress("Owner cannot be the null address")
        self.owner = owner
        self.gateway = gateway
        self.events = events

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized(f"{caller} is not the owner")

    def transfer_ownership(self, caller: str, new_owner: str, at: datetime) -> None:
        """
        Hand ownership to `new_owner`.

        Raises:
            Unauthorized: If caller is not the current owner
            InvalidAddress: If new_owner is the null address
        """
        self._require_owner(caller)
        if is_null_address(new_owner):
            raise InvalidAddress("New owner cannot be the null address")
        previous = self.owner
        self.owner = new_owner
        self.events.emit(OwnershipTransferred(previous, new_owner), at)
        logger.info("ownership transferred %s -> %s", previous, new_owner)

    def emergency_sweep(self, caller: str, at: datetime) -> int:
        """
        Move the whole pool balance to the owner. Last resort only.

        Returns:
            Amount swept (zero if the pool was empty; no transfer is made then)

        Raises:
            Unauthorized: If caller is not the owner
            TransferFailed: If the asset did not move
        """
        self._require_owner(caller)
        amount = self.gateway.balance()
        if amount == 0:
            logger.warning("emergency sweep requested on an empty pool")
            return 0
        self.gateway.push(self.owner, amount)
        self.events.emit(EmergencySwept(self.owner, amount), at)
        logger.critical("EMERGENCY SWEEP: %d moved to owner %s", amount, self.owner)
        return amount
