from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Hashable, Optional, Tuple

from .config import RaffleSettings
from .errors import NoFailedPayout, NotOpen, PayoutFailed, RequestAlreadyPending, UpkeepNotNeeded
from .events import EventBus, WinnerPicked
from .payout import Payout, TransferUnconfirmed
from .pool import EntryPool
from .randomness import RandomnessRequester, RandomnessSource
from .selector import select_winner
from .trigger import check_upkeep
from .types import LotteryState, PayoutSnapshot, PendingRequest, RoundResult, UpkeepStatus


class LotteryStateMachine:
    """Open/Calculating protocol of a single-winner raffle.

    Every public operation runs under one re-entrant lock and either applies
    completely or raises without touching state. The one exception is a failed
    payout: the randomness request is spent and the drawn winner is kept for
    ``retry_payout`` while the pool stays intact. A transfer whose outcome is
    unknown is looked up again before any retry sends money. Calls made back
    into the machine from inside ``Payout.transfer`` find it CALCULATING with
    no pending request and no retryable payout, so they are all rejected.
    """

    def __init__(
        self,
        settings: RaffleSettings,
        randomness: RandomnessSource,
        payout: Payout,
        events: Optional[EventBus] = None,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None,
        rounds_completed: int = 0,
    ) -> None:
        self._settings = settings
        self._events = events or EventBus()
        self._logger = logger or logging.getLogger("raffle.machine")
        self._clock = clock or time.time
        self._pool = EntryPool(settings.entrance_fee, self._events)
        self._requester = RandomnessRequester(randomness, settings.vrf, self._events)
        self._payout = payout
        self._lock = threading.RLock()

        self._state = LotteryState.OPEN
        self._last_timestamp = self._now(None)
        self._recent_winner: Optional[str] = None
        self._round_id = rounds_completed
        self._failed_payout: Optional[PayoutSnapshot] = None
        self._paying = False

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    @property
    def settings(self) -> RaffleSettings:
        return self._settings

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def entrance_fee(self) -> int:
        return self._settings.entrance_fee

    @property
    def interval(self) -> int:
        return self._settings.interval

    @property
    def state(self) -> LotteryState:
        return self._state

    @property
    def balance(self) -> int:
        return self._pool.balance

    @property
    def player_count(self) -> int:
        return self._pool.count

    @property
    def last_timestamp(self) -> int:
        return self._last_timestamp

    @property
    def recent_winner(self) -> Optional[str]:
        return self._recent_winner

    @property
    def round_id(self) -> int:
        """Number of rounds finalized so far."""
        return self._round_id

    @property
    def pending_request(self) -> Optional[PendingRequest]:
        return self._requester.pending

    @property
    def failed_payout(self) -> Optional[PayoutSnapshot]:
        if self._paying:
            return None
        return self._failed_payout

    def player_at(self, index: int) -> str:
        return self._pool.player_at(index)

    def players(self) -> Tuple[str, ...]:
        return self._pool.players()

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    def enter(self, participant: str, amount: int) -> None:
        with self._lock:
            if self._state != LotteryState.OPEN:
                raise NotOpen()
            self._pool.add_entry(participant, amount)
            self._logger.debug(
                "Entry accepted: %s (players=%s, balance=%s)",
                participant,
                self._pool.count,
                self._pool.balance,
            )

    def check_upkeep(self, now: Optional[float] = None) -> UpkeepStatus:
        with self._lock:
            return check_upkeep(
                state=self._state,
                now=self._now(now),
                last_timestamp=self._last_timestamp,
                interval=self._settings.interval,
                player_count=self._pool.count,
                balance=self._pool.balance,
            )

    def perform_upkeep(self, now: Optional[float] = None) -> Hashable:
        with self._lock:
            pending = self._requester.pending
            if pending is not None:
                raise RequestAlreadyPending(pending.request_id)

            timestamp = self._now(now)
            status = self.check_upkeep(timestamp)
            if not status.needed:
                self._logger.debug("Upkeep not needed: %s", status)
                raise UpkeepNotNeeded(status)

            # Close entry before the oracle call so nothing can join a drawn round.
            self._state = LotteryState.CALCULATING
            try:
                request_id = self._requester.request(timestamp)
            except Exception:
                self._state = LotteryState.OPEN
                raise

            self._logger.info(
                "Entry closed with %s players (balance=%s); awaiting request %s",
                status.player_count,
                status.balance,
                request_id,
            )
            return request_id

    def fulfill_randomness(
        self, request_id: Hashable, random_value: int, now: Optional[float] = None
    ) -> RoundResult:
        with self._lock:
            random_value = self._requester.fulfill(request_id, random_value)

            players = self._pool.players()
            amount = self._pool.balance
            index = select_winner(random_value, len(players))
            snapshot = PayoutSnapshot(
                winner=players[index],
                amount=amount,
                request_id=request_id,
                random_value=random_value,
                player_count=len(players),
            )
            self._logger.info(
                "Request %s picked index %s of %s: %s",
                request_id,
                index,
                len(players),
                snapshot.winner,
            )
            return self._settle(snapshot, now)

    def retry_payout(self, now: Optional[float] = None) -> RoundResult:
        """Re-attempt a failed prize transfer with the winner already drawn."""
        with self._lock:
            snapshot = self._failed_payout
            if snapshot is None or self._paying:
                raise NoFailedPayout()
            self._logger.info(
                "Retrying payout of %s to %s (request %s)",
                snapshot.amount,
                snapshot.winner,
                snapshot.request_id,
            )
            return self._settle(snapshot, now)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _now(self, now: Optional[float]) -> int:
        return int(self._clock() if now is None else now)

    def _settle(self, snapshot: PayoutSnapshot, now: Optional[float]) -> RoundResult:
        # Whatever escapes the transfer, the drawn round stays retryable until
        # the prize is known to have landed.
        self._failed_payout = snapshot
        self._paying = True
        try:
            self._send_prize(snapshot)
        finally:
            self._paying = False
        self._failed_payout = None

        finalized_at = max(self._last_timestamp, self._now(now))
        self._pool.reset()
        self._last_timestamp = finalized_at
        self._state = LotteryState.OPEN
        self._recent_winner = snapshot.winner
        self._round_id += 1

        result = RoundResult(
            round_id=self._round_id,
            winner=snapshot.winner,
            amount=snapshot.amount,
            request_id=snapshot.request_id,
            random_value=snapshot.random_value,
            player_count=snapshot.player_count,
            finalized_at=finalized_at,
        )
        self._logger.info(
            "Round %s finalized: %s won %s", result.round_id, result.winner, result.amount
        )
        self._events.emit(WinnerPicked(snapshot.winner))
        return result

    def _send_prize(self, snapshot: PayoutSnapshot) -> None:
        winner, amount = snapshot.winner, snapshot.amount
        replaces = snapshot.transfer_ref
        if replaces is not None:
            # An earlier transfer may still land; never pay twice.
            try:
                landed = self._payout.confirm(replaces)
            except Exception as exc:
                self._logger.exception("Could not look up transfer %s: %s", replaces, exc)
                raise PayoutFailed(winner, amount, str(exc)) from exc
            if landed is None:
                self._logger.warning("Transfer %s to %s is still unconfirmed", replaces, winner)
                raise PayoutFailed(winner, amount, f"transfer {replaces} is still unconfirmed")
            if landed:
                self._logger.info("Transfer %s to %s confirmed", replaces, winner)
                return
            self._logger.warning("Transfer %s to %s was dropped; sending again", replaces, winner)

        try:
            transferred = self._payout.transfer(winner, amount, replaces=replaces)
        except TransferUnconfirmed as exc:
            self._failed_payout = replace(snapshot, transfer_ref=exc.reference)
            self._logger.warning("Payout to %s unconfirmed: %s", winner, exc)
            raise PayoutFailed(winner, amount, str(exc)) from exc
        except Exception as exc:
            self._logger.exception("Payout to %s raised: %s", winner, exc)
            raise PayoutFailed(winner, amount, str(exc)) from exc
        if not transferred:
            self._failed_payout = replace(snapshot, transfer_ref=None)
            self._logger.error("Payout of %s to %s was rejected", amount, winner)
            raise PayoutFailed(winner, amount)
