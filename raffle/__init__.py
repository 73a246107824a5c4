from .config import RaffleSettings, VrfSettings, load_from_environment
from .errors import (
    IndexOutOfRange,
    InsufficientFee,
    NoFailedPayout,
    NotOpen,
    PayoutFailed,
    RaffleError,
    RequestAlreadyPending,
    UnknownOrStaleRequest,
    UpkeepNotNeeded,
)
from .events import Entered, EventBus, RandomnessRequested, WinnerPicked
from .machine import LotteryStateMachine
from .payout import LedgerPayout, Payout
from .randomness import RandomnessSource
from .types import LotteryState, RoundResult, UpkeepStatus

__all__ = [
    "Entered",
    "EventBus",
    "IndexOutOfRange",
    "InsufficientFee",
    "LedgerPayout",
    "LotteryState",
    "LotteryStateMachine",
    "NoFailedPayout",
    "NotOpen",
    "Payout",
    "PayoutFailed",
    "RaffleError",
    "RaffleSettings",
    "RandomnessRequested",
    "RandomnessSource",
    "RequestAlreadyPending",
    "RoundResult",
    "UnknownOrStaleRequest",
    "UpkeepNotNeeded",
    "UpkeepStatus",
    "VrfSettings",
    "WinnerPicked",
    "load_from_environment",
]
