from __future__ import annotations

import datetime as dt

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class RoundRecord(Base):
    """A finalized raffle round, written once its prize has been paid."""

    __tablename__ = "rounds"

    round_id = Column(Integer, primary_key=True)
    winner = Column(String(128), nullable=False)
    # uint256 values are kept as decimal strings; SQL integers are too narrow.
    amount = Column(String(80), nullable=False)
    request_id = Column(String(80), nullable=False)
    random_value = Column(String(80), nullable=False)
    player_count = Column(Integer, nullable=False)
    finalized_at = Column(Integer, nullable=False)
    recorded_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "round_id": self.round_id,
            "winner": self.winner,
            "amount": self.amount,
            "request_id": self.request_id,
            "random_value": self.random_value,
            "player_count": self.player_count,
            "finalized_at": self.finalized_at,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }


class EntryPayment(Base):
    """An on-chain payment already spent on an entry; each one buys a single entry."""

    __tablename__ = "entry_payments"

    tx_hash = Column(String(66), primary_key=True)
    participant = Column(String(128), nullable=False)
    amount = Column(String(80), nullable=False)
    recorded_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)
