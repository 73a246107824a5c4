from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from raffle.config import RaffleSettings, load_from_environment


@dataclass(frozen=True)
class FlaskSettings:
    secret_key: str = "raffle-dev-secret"
    debug: bool = False


@dataclass(frozen=True)
class ApiSettings:
    flask: FlaskSettings
    raffle: RaffleSettings
    database_url: str
    admin_api_key: Optional[str]
    oracle_api_key: Optional[str]


@lru_cache(maxsize=1)
def load_settings(dotenv_path: Optional[str] = None) -> ApiSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        load_dotenv()

    flask_settings = FlaskSettings(
        secret_key=os.getenv("FLASK_SECRET_KEY", "raffle-dev-secret"),
        debug=os.getenv("FLASK_DEBUG", "0") == "1",
    )

    return ApiSettings(
        flask=flask_settings,
        raffle=load_from_environment(),
        database_url=os.getenv("DATABASE_URL", "sqlite:///raffle.db"),
        admin_api_key=os.getenv("ADMIN_API_KEY") or None,
        oracle_api_key=os.getenv("ORACLE_API_KEY") or None,
    )
