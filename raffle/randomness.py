from __future__ import annotations

import logging
from typing import Hashable, Optional, Protocol

from .config import VrfSettings
from .errors import RequestAlreadyPending, UnknownOrStaleRequest
from .events import EventBus, RandomnessRequested
from .types import PendingRequest


class RandomnessSource(Protocol):
    def request_randomness(self, config: VrfSettings) -> Hashable:
        ...


class RandomnessRequester:
    """Owns the single outstanding randomness request of a raffle."""

    def __init__(
        self,
        source: RandomnessSource,
        config: Optional[VrfSettings] = None,
        events: Optional[EventBus] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._source = source
        self._config = config or VrfSettings()
        self._events = events or EventBus()
        self._pending: Optional[PendingRequest] = None
        self._logger = logger or logging.getLogger("raffle.randomness")

    @property
    def pending(self) -> Optional[PendingRequest]:
        return self._pending

    def request(self, now: int) -> Hashable:
        if self._pending is not None:
            raise RequestAlreadyPending(self._pending.request_id)

        request_id = self._source.request_randomness(self._config)
        self._pending = PendingRequest(request_id=request_id, issued_at=now)
        self._logger.info("Randomness requested: id=%s at=%s", request_id, now)
        self._events.emit(RandomnessRequested(request_id))
        return request_id

    def fulfill(self, request_id: Hashable, random_value: int) -> int:
        pending = self._pending
        if pending is None or pending.request_id != request_id:
            expected = pending.request_id if pending else None
            self._logger.warning(
                "Rejected fulfillment for request %s (pending=%s)", request_id, expected
            )
            raise UnknownOrStaleRequest(request_id, expected)
        if isinstance(random_value, bool) or not isinstance(random_value, int) or random_value < 0:
            # Leave the request pending so a well-formed fulfillment can still land.
            raise ValueError(f"random_value must be an unsigned integer, got {random_value!r}")

        self._pending = None
        self._logger.info("Randomness fulfilled: id=%s", request_id)
        return random_value
