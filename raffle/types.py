from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Hashable, Optional


class LotteryState(IntEnum):
    OPEN = 0
    CALCULATING = 1


@dataclass(frozen=True)
class UpkeepStatus:
    """Result of the automation eligibility check."""

    needed: bool
    state: LotteryState
    elapsed: int
    player_count: int
    balance: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "needed": self.needed,
            "state": self.state.name,
            "elapsed": self.elapsed,
            "player_count": self.player_count,
            "balance": str(self.balance),
        }


@dataclass(frozen=True)
class PendingRequest:
    request_id: Hashable
    issued_at: int


@dataclass(frozen=True)
class PayoutSnapshot:
    """Everything needed to pay a round without re-deriving its winner."""

    winner: str
    amount: int
    request_id: Hashable
    random_value: int
    player_count: int
    # Set once a transfer has been sent whose outcome is still unknown.
    transfer_ref: Optional[str] = None


@dataclass(frozen=True)
class RoundResult:
    round_id: int
    winner: str
    amount: int
    request_id: Hashable
    random_value: int
    player_count: int
    finalized_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round_id": self.round_id,
            "winner": self.winner,
            # wei amounts and 256-bit words overflow JSON numbers
            "amount": str(self.amount),
            "request_id": str(self.request_id),
            "random_value": str(self.random_value),
            "player_count": self.player_count,
            "finalized_at": self.finalized_at,
        }
