from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from raffle.chain import Payment

from ..db import session_scope
from ..models import EntryPayment

logger = logging.getLogger(__name__)


class PaymentRepository:
    def claim(self, payment: Payment) -> bool:
        """Mark ``payment`` as spent; False if an entry already used it."""
        try:
            with session_scope() as session:
                session.add(
                    EntryPayment(
                        tx_hash=payment.tx_hash,
                        participant=payment.sender,
                        amount=str(payment.value),
                    )
                )
        except IntegrityError:
            logger.warning("Payment %s was already used for an entry", payment.tx_hash)
            return False
        return True

    def release(self, tx_hash: str) -> None:
        """Make a claimed payment usable again after its entry was refused."""
        with session_scope() as session:
            record = session.get(EntryPayment, tx_hash)
            if record is not None:
                session.delete(record)
