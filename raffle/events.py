from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Hashable, List, Optional, Union


@dataclass(frozen=True)
class Entered:
    participant: str


@dataclass(frozen=True)
class RandomnessRequested:
    request_id: Hashable


@dataclass(frozen=True)
class WinnerPicked:
    winner: str


RaffleEvent = Union[Entered, RandomnessRequested, WinnerPicked]
Listener = Callable[[RaffleEvent], None]


class EventBus:
    """Synchronous fan-out of raffle notifications to observers.

    Notifications are emitted after the transition that caused them has been
    applied, so a failing observer is logged and never rolls a transition back.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._listeners: List[Listener] = []
        self._logger = logger or logging.getLogger("raffle.events")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: RaffleEvent) -> None:
        self._logger.debug("Emitting %s", event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                self._logger.exception("Listener %r failed on %s: %s", listener, event, exc)


class EventRecorder:
    """Listener that keeps every event it sees, handy for audits and tests."""

    def __init__(self) -> None:
        self.events: List[RaffleEvent] = []

    def __call__(self, event: RaffleEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> List[RaffleEvent]:
        return [event for event in self.events if isinstance(event, event_type)]
