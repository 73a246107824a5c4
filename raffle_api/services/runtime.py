from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

from flask import current_app

from raffle.chain import (
    ChainClient,
    ChainPaymentVerifier,
    PaymentVerifier,
    VrfCoordinatorSource,
    Web3Payout,
)
from raffle.machine import LotteryStateMachine
from raffle.payout import Payout
from raffle.randomness import RandomnessSource

from ..config import ApiSettings

EXTENSION_KEY = "raffle.machine"
PAYMENTS_KEY = "raffle.payments"


def build_runtime(
    settings: ApiSettings,
    randomness: Optional[RandomnessSource] = None,
    payout: Optional[Payout] = None,
    payments: Optional[PaymentVerifier] = None,
    clock: Optional[Callable[[], float]] = None,
    rounds_completed: int = 0,
) -> Tuple[LotteryStateMachine, PaymentVerifier]:
    """Wire the state machine to its oracle and payout collaborators.

    Collaborators that are not supplied are built from the chain settings and
    share one custody account: entry payments are checked against the same
    address prizes are paid from.
    """
    if randomness is None or payout is None or payments is None:
        chain_settings = settings.raffle.chain
        if chain_settings is None:
            raise RuntimeError("RPC_URL is not configured; cannot reach the VRF coordinator.")
        client = ChainClient.from_settings(chain_settings)
        if randomness is None:
            randomness = VrfCoordinatorSource.from_settings(client)
        if payout is None:
            payout = Web3Payout(client)
        if payments is None:
            payments = ChainPaymentVerifier(client)

    machine = LotteryStateMachine(
        settings.raffle,
        randomness,
        payout,
        clock=clock,
        logger=logging.getLogger("raffle.machine"),
        rounds_completed=rounds_completed,
    )
    return machine, payments


def get_machine() -> LotteryStateMachine:
    return current_app.extensions[EXTENSION_KEY]


def get_payment_verifier() -> PaymentVerifier:
    return current_app.extensions[PAYMENTS_KEY]
