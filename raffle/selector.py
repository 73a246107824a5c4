from __future__ import annotations


def select_winner(random_value: int, player_count: int) -> int:
    """Map a random word onto an index in ``[0, player_count)``.

    The modulo is the whole fairness argument: an unpredictable, uniformly
    distributed ``random_value`` gives every entry the same chance (up to the
    negligible bias of a 256-bit word modulo a small count).
    """
    if player_count <= 0:
        raise ValueError("cannot select a winner from an empty pool")
    if random_value < 0:
        raise ValueError("random_value must be a non-negative integer")
    return random_value % player_count
