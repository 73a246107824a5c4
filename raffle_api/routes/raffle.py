from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from raffle.errors import InvalidPayment, PaymentAlreadyUsed, RaffleError

from ..schemas import EntryRequest, EntryResponse, PlayersResponse, RaffleStatusResponse
from ..services.payments import PaymentRepository
from ..services.runtime import get_machine, get_payment_verifier

bp = Blueprint("raffle", __name__)


@bp.get("")
def get_status():
    machine = get_machine()
    pending = machine.pending_request
    response = RaffleStatusResponse(
        state=machine.state.name,
        entrance_fee=str(machine.entrance_fee),
        interval=machine.interval,
        balance=str(machine.balance),
        player_count=machine.player_count,
        last_timestamp=machine.last_timestamp,
        recent_winner=machine.recent_winner,
        rounds_completed=machine.round_id,
        pending_request_id=str(pending.request_id) if pending else None,
        payout_failed=machine.failed_payout is not None,
    )
    return jsonify(response.model_dump())


@bp.get("/players")
def list_players():
    players = list(get_machine().players())
    return jsonify(PlayersResponse(players=players, count=len(players)).model_dump())


@bp.get("/players/<int:index>")
def get_player(index: int):
    participant = get_machine().player_at(index)
    return jsonify({"index": index, "participant": participant})


@bp.post("/entries")
def enter():
    payload = request.get_json(force=True, silent=True) or {}
    data = EntryRequest(**payload)

    # The stake is whatever the transaction actually moved into custody.
    payment = get_payment_verifier().verify(data.tx_hash)
    if data.participant is not None and data.participant != payment.sender:
        raise InvalidPayment(data.tx_hash, f"sent by {payment.sender}, not {data.participant}")

    payments = PaymentRepository()
    if not payments.claim(payment):
        raise PaymentAlreadyUsed(payment.tx_hash)

    machine = get_machine()
    try:
        machine.enter(payment.sender, payment.value)
    except RaffleError:
        payments.release(payment.tx_hash)
        raise
    current_app.logger.info(
        "%s entered with %s (tx %s)", payment.sender, payment.value, payment.tx_hash
    )

    response = EntryResponse(
        participant=payment.sender,
        tx_hash=payment.tx_hash,
        amount=str(payment.value),
        player_count=machine.player_count,
        balance=str(machine.balance),
    )
    return jsonify(response.model_dump()), 201
