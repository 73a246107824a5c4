from __future__ import annotations

from typing import Callable, Optional

from flask import Flask, jsonify
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from raffle.errors import (
    IndexOutOfRange,
    InsufficientFee,
    InvalidPayment,
    PayoutFailed,
    RaffleError,
    UpkeepNotNeeded,
)
from raffle.chain import PaymentVerifier
from raffle.payout import Payout
from raffle.randomness import RandomnessSource

from .config import load_settings
from .db import engine
from .models import Base
from .routes.admin import bp as admin_bp
from .routes.health import bp as health_bp
from .routes.oracle import bp as oracle_bp
from .routes.raffle import bp as raffle_bp
from .routes.upkeep import bp as upkeep_bp
from .services.rounds import RoundRepository
from .services.runtime import EXTENSION_KEY, PAYMENTS_KEY, build_runtime

ERROR_STATUS = {
    InsufficientFee: 400,
    InvalidPayment: 400,
    IndexOutOfRange: 404,
    PayoutFailed: 502,
}


def create_app(
    randomness: Optional[RandomnessSource] = None,
    payout: Optional[Payout] = None,
    payments: Optional[PaymentVerifier] = None,
    clock: Optional[Callable[[], float]] = None,
) -> Flask:
    settings = load_settings()
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.flask.secret_key
    Base.metadata.create_all(engine)

    machine, verifier = build_runtime(
        settings,
        randomness=randomness,
        payout=payout,
        payments=payments,
        clock=clock,
        rounds_completed=RoundRepository().latest_round_id(),
    )
    app.extensions[EXTENSION_KEY] = machine
    app.extensions[PAYMENTS_KEY] = verifier

    app.register_blueprint(health_bp)
    app.register_blueprint(raffle_bp, url_prefix="/raffle")
    app.register_blueprint(upkeep_bp, url_prefix="/upkeep")
    app.register_blueprint(oracle_bp, url_prefix="/oracle")
    app.register_blueprint(admin_bp, url_prefix="/admin/api")

    @app.errorhandler(RaffleError)
    def handle_raffle_error(exc: RaffleError):
        status = ERROR_STATUS.get(type(exc), 409)
        body = {"error": type(exc).__name__, "detail": str(exc)}
        if isinstance(exc, UpkeepNotNeeded):
            body["diagnostics"] = exc.status.to_dict()
        if isinstance(exc, PayoutFailed):
            app.logger.error("Round stuck awaiting payout: %s", exc)
        return jsonify(body), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        errors = exc.errors(include_url=False, include_context=False, include_input=False)
        return jsonify({"error": "ValidationError", "detail": errors}), 422

    @app.errorhandler(Exception)
    def handle_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        app.logger.exception("Unhandled error: %s", exc)
        return jsonify({"error": str(exc)}), 500

    return app
