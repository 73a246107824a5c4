from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func

from raffle.types import RoundResult

from ..db import session_scope
from ..models import RoundRecord


class RoundRepository:
    def record(self, result: RoundResult) -> RoundRecord:
        with session_scope() as session:
            record = session.get(RoundRecord, result.round_id)
            if record is None:
                record = RoundRecord(round_id=result.round_id)
                session.add(record)
            record.winner = result.winner
            record.amount = str(result.amount)
            record.request_id = str(result.request_id)
            record.random_value = str(result.random_value)
            record.player_count = result.player_count
            record.finalized_at = result.finalized_at
            session.flush()
            session.refresh(record)
            session.expunge(record)
            return record

    def get_round(self, round_id: int) -> Optional[RoundRecord]:
        with session_scope() as session:
            record = session.get(RoundRecord, round_id)
            if record:
                session.expunge(record)
            return record

    def latest_round_id(self) -> int:
        with session_scope() as session:
            latest = session.query(func.max(RoundRecord.round_id)).scalar()
            return int(latest) if latest is not None else 0

    def list_rounds(self, limit: Optional[int] = None) -> List[RoundRecord]:
        with session_scope() as session:
            query = session.query(RoundRecord).order_by(RoundRecord.round_id.desc())
            if limit:
                query = query.limit(limit)
            records = query.all()
            for record in records:
                session.expunge(record)
            return records
