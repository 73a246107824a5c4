from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from raffle.chain import normalize_participant


class EntryRequest(BaseModel):
    tx_hash: str = Field(
        ...,
        pattern=r"^0x[0-9a-fA-F]{64}$",
        description="Hash of the transaction that paid the stake to the raffle account.",
    )
    participant: Optional[str] = Field(
        None, min_length=1, max_length=128, description="Expected payer; defaults to the sender."
    )

    @field_validator("tx_hash")
    @classmethod
    def lower_hash(cls, value: str) -> str:
        return value.lower()

    @field_validator("participant")
    @classmethod
    def normalize(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = normalize_participant(value)
        if not value:
            raise ValueError("participant must not be blank")
        return value


class EntryResponse(BaseModel):
    participant: str
    tx_hash: str
    amount: str
    player_count: int
    balance: str


class FulfillRequest(BaseModel):
    request_id: int = Field(..., ge=0)
    random_value: int = Field(..., ge=0)


class RaffleStatusResponse(BaseModel):
    state: str
    entrance_fee: str
    interval: int
    balance: str
    player_count: int
    last_timestamp: int
    recent_winner: Optional[str] = None
    rounds_completed: int
    pending_request_id: Optional[str] = None
    payout_failed: bool = False


class PlayersResponse(BaseModel):
    players: List[str]
    count: int


class UpkeepResponse(BaseModel):
    needed: bool
    state: str
    elapsed: int
    player_count: int
    balance: str


class RoundResponse(BaseModel):
    round_id: int
    winner: str
    amount: str
    request_id: str
    random_value: str
    player_count: int
    finalized_at: int
    warnings: List[str] = Field(default_factory=list)
