"""
events.py - Vault events and the event log

Events are plain immutable data. Their field order is part of the contract
with observers and must not change:

    Deposited(user, principal, deposit_index)
    Withdrawn(user, principal, reward, deposit_index)
    EarlyWithdrawn(user, payout, penalty, deposit_index)
    RewardsFunded(funder, amount)
    OwnershipTransferred(previous_owner, new_owner)
    EmergencySwept(owner, amount)

Events are appended only after the operation that produced them has fully
committed, so the log never shows an operation that was rolled back.
"""

from __future__ import annotations
from dataclasses import astuple, dataclass
from datetime import datetime
from typing import Iterator, List, Tuple, Type, TypeVar, Union


@dataclass(frozen=True, slots=True)
class Deposited:
    user: str
    principal: int
    deposit_index: int


@dataclass(frozen=True, slots=True)
class Withdrawn:
    user: str
    principal: int
    reward: int
    deposit_index: int


@dataclass(frozen=True, slots=True)
class EarlyWithdrawn:
    user: str
    payout: int
    penalty: int
    deposit_index: int


@dataclass(frozen=True, slots=True)
class RewardsFunded:
    funder: str
    amount: int


@dataclass(frozen=True, slots=True)
class OwnershipTransferred:
    previous_owner: str
    new_owner: str


@dataclass(frozen=True, slots=True)
class EmergencySwept:
    owner: str
    amount: int


VaultEvent = Union[
    Deposited, Withdrawn, EarlyWithdrawn,
    RewardsFunded, OwnershipTransferred, EmergencySwept,
]

E = TypeVar('E')


def event_args(event: VaultEvent) -> Tuple:
    """Positional payload of an event, in emission order."""
    return astuple(event)


@dataclass(frozen=True, slots=True)
class LoggedEvent:
    """An event as recorded in the log: sequence number and vault time."""
    sequence: int
    timestamp: datetime
    event: VaultEvent

    @property
    def name(self) -> str:
        return type(self.event).__name__

    def __repr__(self) -> str:
        args = ", ".join(repr(a) for a in event_args(self.event))
        return f"[{self.sequence}] {self.timestamp} {self.name}({args})"


class EventLog:
    """
    Append-only, ordered record of emitted events.

    Observers poll with since() using the last sequence number they saw.
    """

    def __init__(self):
        self._entries: List[LoggedEvent] = []

    def emit(self, event: VaultEvent, timestamp: datetime) -> LoggedEvent:
        entry = LoggedEvent(len(self._entries), timestamp, event)
        self._entries.append(entry)
        return entry

    def since(self, sequence: int) -> List[LoggedEvent]:
        """Entries with a sequence number greater than or equal to `sequence`."""
        return self._entries[max(sequence, 0):]

    def of_type(self, event_type: Type[E]) -> List[E]:
        return [e.event for e in self._entries if isinstance(e.event, event_type)]

    def events(self) -> List[VaultEvent]:
        return [e.event for e in self._entries]

    def __iter__(self) -> Iterator[LoggedEvent]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
