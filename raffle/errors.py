from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .types import UpkeepStatus


class RaffleError(Exception):
    """Base class for every rejection raised by the raffle core."""


class InsufficientFee(RaffleError):
    def __init__(self, amount: int, entrance_fee: int) -> None:
        super().__init__(f"entry amount {amount} is below the entrance fee {entrance_fee}")
        self.amount = amount
        self.entrance_fee = entrance_fee


class NotOpen(RaffleError):
    def __init__(self) -> None:
        super().__init__("raffle is not open for entries")


class UpkeepNotNeeded(RaffleError):
    """Raised by ``perform_upkeep`` with the diagnostics that made it ineligible."""

    def __init__(self, status: "UpkeepStatus") -> None:
        super().__init__(
            "upkeep not needed "
            f"(state={status.state.name}, elapsed={status.elapsed}, "
            f"players={status.player_count}, balance={status.balance})"
        )
        self.status = status


class RequestAlreadyPending(RaffleError):
    def __init__(self, request_id: object) -> None:
        super().__init__(f"randomness request {request_id!r} is still pending")
        self.request_id = request_id


class UnknownOrStaleRequest(RaffleError):
    def __init__(self, request_id: object, expected: Optional[object] = None) -> None:
        super().__init__(f"fulfillment for unknown or stale request {request_id!r}")
        self.request_id = request_id
        self.expected = expected


class PayoutFailed(RaffleError):
    """The prize transfer did not go through; the round stays in CALCULATING."""

    def __init__(self, winner: str, amount: int, reason: Optional[str] = None) -> None:
        message = f"payout of {amount} to {winner} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.winner = winner
        self.amount = amount


class NoFailedPayout(RaffleError):
    def __init__(self) -> None:
        super().__init__("no failed payout is waiting to be retried")


class InvalidPayment(RaffleError):
    """The transaction offered as an entry stake did not pay the raffle."""

    def __init__(self, tx_hash: str, reason: str) -> None:
        super().__init__(f"payment {tx_hash} rejected: {reason}")
        self.tx_hash = tx_hash
        self.reason = reason


class PaymentAlreadyUsed(RaffleError):
    def __init__(self, tx_hash: str) -> None:
        super().__init__(f"payment {tx_hash} has already been used for an entry")
        self.tx_hash = tx_hash


class IndexOutOfRange(RaffleError):
    def __init__(self, index: int, count: int) -> None:
        super().__init__(f"player index {index} out of range (count={count})")
        self.index = index
        self.count = count
