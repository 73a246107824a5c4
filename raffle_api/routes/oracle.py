from __future__ import annotations

import hmac

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from raffle.types import RoundResult

from ..config import load_settings
from ..schemas import FulfillRequest, RoundResponse
from ..services.rounds import RoundRepository
from ..services.runtime import get_machine

bp = Blueprint("oracle", __name__)
round_repo = RoundRepository()


def _require_oracle() -> bool:
    api_key = load_settings().oracle_api_key
    if api_key:
        provided = request.headers.get("X-Oracle-Token", "")
        return hmac.compare_digest(provided, api_key)
    return True


def record_round(result: RoundResult) -> RoundResponse:
    """Persist a finalized round; the prize is already paid, so storage errors only warn."""
    warnings = []
    try:
        round_repo.record(result)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to record round %s: %s", result.round_id, exc)
        warnings.append("round finalized but not recorded in history")
    return RoundResponse(**result.to_dict(), warnings=warnings)


@bp.before_request
def verify_oracle():
    if not _require_oracle():
        return jsonify({"error": "unauthorized"}), 401
    return None


@bp.post("/fulfill")
def fulfill():
    payload = request.get_json(force=True, silent=True) or {}
    data = FulfillRequest(**payload)

    result = get_machine().fulfill_randomness(data.request_id, data.random_value)
    return jsonify(record_round(result).model_dump())
