from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Protocol, Tuple


class TransferUnconfirmed(Exception):
    """The transfer left custody but its outcome is not known yet.

    ``reference`` identifies the in-flight transfer so its fate can be looked
    up before anything is sent again.
    """

    def __init__(self, reference: str, detail: Optional[str] = None) -> None:
        message = f"transfer {reference} is unconfirmed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.reference = reference


class Payout(Protocol):
    def transfer(self, recipient: str, amount: int, replaces: Optional[str] = None) -> bool:
        """Move ``amount`` out of the raffle's custody to ``recipient``.

        Return False (or raise) when the transfer did not happen, and raise
        ``TransferUnconfirmed`` when it was sent but its outcome is unknown.
        ``replaces`` names an earlier unconfirmed transfer that ``confirm``
        reported as dropped.
        """
        ...

    def confirm(self, reference: str) -> Optional[bool]:
        """True if the referenced transfer landed, False if it failed or was
        dropped, None while it is still undecided."""
        ...


class LedgerPayout:
    """In-memory custody ledger; stands in for the chain in simulations and tests.

    Transfers settle synchronously, so nothing is ever left unconfirmed.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._balances: Dict[str, int] = defaultdict(int)
        self.transfers: List[Tuple[str, int]] = []
        self._logger = logger or logging.getLogger("raffle.payout")

    def transfer(self, recipient: str, amount: int, replaces: Optional[str] = None) -> bool:
        if amount < 0:
            raise ValueError("cannot transfer a negative amount")
        self._balances[recipient] += amount
        self.transfers.append((recipient, amount))
        self._logger.info("Credited %s with %s", recipient, amount)
        return True

    def confirm(self, reference: str) -> Optional[bool]:
        return False

    def balance_of(self, recipient: str) -> int:
        return self._balances.get(recipient, 0)
