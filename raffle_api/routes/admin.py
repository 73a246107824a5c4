from __future__ import annotations

import hmac

from flask import Blueprint, current_app, jsonify, request

from ..config import load_settings
from ..services.rounds import RoundRepository
from ..services.runtime import get_machine
from .oracle import record_round

bp = Blueprint("admin", __name__)
round_repo = RoundRepository()


def _require_admin() -> bool:
    api_key = load_settings().admin_api_key
    if api_key:
        provided = request.headers.get("X-Admin-Token", "")
        return hmac.compare_digest(provided, api_key)
    return True


@bp.before_request
def verify_admin():
    if not _require_admin():
        return jsonify({"error": "unauthorized"}), 401
    return None


@bp.get("/rounds")
def list_rounds():
    limit = request.args.get("limit", type=int)
    rounds = round_repo.list_rounds(limit=limit)
    return jsonify([record.to_dict() for record in rounds])


@bp.get("/rounds/<int:round_id>")
def get_round(round_id: int):
    record = round_repo.get_round(round_id)
    if record is None:
        return jsonify({"error": "round not found"}), 404
    return jsonify(record.to_dict())


@bp.post("/payout/retry")
def retry_payout():
    machine = get_machine()
    snapshot = machine.failed_payout
    if snapshot is not None:
        current_app.logger.warning(
            "Manual payout retry for %s (amount=%s)", snapshot.winner, snapshot.amount
        )
    result = machine.retry_payout()
    return jsonify(record_round(result).model_dump())
