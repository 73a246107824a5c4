from __future__ import annotations

from typing import List, Optional, Tuple

from .errors import IndexOutOfRange, InsufficientFee
from .events import Entered, EventBus


class EntryPool:
    """Ordered participants of the current round and their pooled stake."""

    def __init__(self, entrance_fee: int, events: Optional[EventBus] = None) -> None:
        self._entrance_fee = entrance_fee
        self._events = events or EventBus()
        self._players: List[str] = []
        self._balance = 0

    @property
    def entrance_fee(self) -> int:
        return self._entrance_fee

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def count(self) -> int:
        return len(self._players)

    def add_entry(self, participant: str, amount: int) -> None:
        if amount < self._entrance_fee:
            raise InsufficientFee(amount, self._entrance_fee)
        self._players.append(participant)
        self._balance += amount
        self._events.emit(Entered(participant))

    def player_at(self, index: int) -> str:
        if index < 0 or index >= len(self._players):
            raise IndexOutOfRange(index, len(self._players))
        return self._players[index]

    def players(self) -> Tuple[str, ...]:
        return tuple(self._players)

    def reset(self) -> None:
        self._players = []
        self._balance = 0
