from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..schemas import UpkeepResponse
from ..services.runtime import get_machine

bp = Blueprint("upkeep", __name__)


@bp.get("")
def check_upkeep():
    status = get_machine().check_upkeep()
    return jsonify(UpkeepResponse(**status.to_dict()).model_dump())


@bp.post("")
def perform_upkeep():
    request_id = get_machine().perform_upkeep()
    current_app.logger.info("Upkeep performed; randomness request %s issued", request_id)
    return jsonify({"request_id": str(request_id), "state": get_machine().state.name}), 202
