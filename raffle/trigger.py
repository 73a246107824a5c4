from __future__ import annotations

from .types import LotteryState, UpkeepStatus


def check_upkeep(
    *,
    state: LotteryState,
    now: int,
    last_timestamp: int,
    interval: int,
    player_count: int,
    balance: int,
) -> UpkeepStatus:
    """Decide whether the keeper should call ``perform_upkeep``.

    Pure predicate over a snapshot of raffle state; calling it never mutates
    anything.
    """
    elapsed = now - last_timestamp
    needed = (
        state == LotteryState.OPEN
        and elapsed >= interval
        and player_count > 0
        and balance > 0
    )
    return UpkeepStatus(
        needed=needed,
        state=state,
        elapsed=elapsed,
        player_count=player_count,
        balance=balance,
    )
