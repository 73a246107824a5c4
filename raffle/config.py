from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Optional

DEFAULT_ABI_PATH = "artifacts/contracts/VRFCoordinatorV2.sol/VRFCoordinatorV2.json"
_WEI_UNITS = ("ether", "gwei", "wei")


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    return int(value)


def _require_env(key: str) -> str:
    value = os.getenv(key)
    if value is None or value == "":
        raise RuntimeError(f"Missing required environment variable: {key}")
    return value


def parse_wei(raw: str) -> int:
    """Parse ``"10000000000000000"``, ``"0.01 ether"`` or ``"5 gwei"`` into wei."""
    text = raw.strip().lower()
    for unit in _WEI_UNITS:
        if text.endswith(unit):
            number = text[: -len(unit)].strip()
            break
    else:
        unit, number = "wei", text
    try:
        amount = Decimal(number)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {raw!r}") from exc
    if unit == "wei":
        if amount != amount.to_integral_value():
            raise ValueError(f"Wei amounts must be whole numbers: {raw!r}")
        return int(amount)

    from web3 import Web3

    return int(Web3.to_wei(amount, unit))


@dataclass(frozen=True)
class VrfSettings:
    """Randomness request parameters; opaque to the raffle core."""

    key_hash: str = "0x" + "0" * 64
    subscription_id: int = 0
    callback_gas_limit: int = 500000
    request_confirmations: int = 3
    num_words: int = 1


@dataclass(frozen=True)
class ChainSettings:
    rpc_url: str
    coordinator_address: str
    abi_path: str = DEFAULT_ABI_PATH
    signer_key: Optional[str] = None
    chain_id: Optional[int] = None
    gas_limit: int = 250000


@dataclass(frozen=True)
class RaffleSettings:
    entrance_fee: int
    interval: int
    vrf: VrfSettings = field(default_factory=VrfSettings)
    chain: Optional[ChainSettings] = None

    def __post_init__(self) -> None:
        if self.entrance_fee <= 0:
            raise ValueError("entrance_fee must be positive")
        if self.interval <= 0:
            raise ValueError("interval must be positive")

    def copy(self, **updates) -> "RaffleSettings":
        return replace(self, **updates)


def load_from_environment() -> RaffleSettings:
    entrance_fee = parse_wei(_require_env("RAFFLE_ENTRANCE_FEE"))
    interval = int(_require_env("RAFFLE_INTERVAL"))

    vrf = VrfSettings(
        key_hash=os.getenv("VRF__KEY_HASH", "0x" + "0" * 64),
        subscription_id=_int_from_env(os.getenv("VRF__SUBSCRIPTION_ID"), 0),
        callback_gas_limit=_int_from_env(os.getenv("VRF__CALLBACK_GAS_LIMIT"), 500000),
        request_confirmations=_int_from_env(os.getenv("VRF__REQUEST_CONFIRMATIONS"), 3),
        num_words=_int_from_env(os.getenv("VRF__NUM_WORDS"), 1),
    )

    chain: Optional[ChainSettings] = None
    rpc_url = os.getenv("RPC_URL")
    if rpc_url:
        chain_id = os.getenv("CHAIN_ID")
        chain = ChainSettings(
            rpc_url=rpc_url,
            coordinator_address=_require_env("VRF__COORDINATOR_ADDRESS"),
            abi_path=os.getenv("VRF__COORDINATOR_ABI_PATH", DEFAULT_ABI_PATH),
            signer_key=os.getenv("RAFFLE_SIGNER_KEY") or None,
            chain_id=int(chain_id) if chain_id else None,
            gas_limit=_int_from_env(os.getenv("CHAIN__GAS_LIMIT"), 250000),
        )

    return RaffleSettings(entrance_fee=entrance_fee, interval=interval, vrf=vrf, chain=chain)
