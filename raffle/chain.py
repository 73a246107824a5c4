from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol

from web3 import Web3
from web3.exceptions import TimeExhausted, TransactionNotFound

from .config import ChainSettings, VrfSettings
from .errors import InvalidPayment
from .payout import TransferUnconfirmed

if TYPE_CHECKING:  # pragma: no cover
    from web3.contract import Contract


def normalize_participant(participant: str) -> str:
    """Checksum anything that parses as an address; other identifiers pass through."""
    value = participant.strip()
    if Web3.is_address(value):
        return Web3.to_checksum_address(value)
    return value


class TransactionUnconfirmed(Exception):
    """Broadcast, but no receipt arrived before the wait gave up."""

    def __init__(self, tx_hash: str, nonce: int) -> None:
        super().__init__(f"no receipt for {tx_hash} (nonce {nonce})")
        self.tx_hash = tx_hash
        self.nonce = nonce


@dataclass(frozen=True)
class Payment:
    tx_hash: str
    sender: str
    value: int


class PaymentVerifier(Protocol):
    def verify(self, tx_hash: str) -> Payment:
        """Return the payment ``tx_hash`` made to the raffle, or raise ``InvalidPayment``."""
        ...


class ChainClient:
    """Signs and broadcasts transactions for the raffle's custody account."""

    def __init__(
        self, web3: "Web3", settings: ChainSettings, logger: Optional[logging.Logger] = None
    ) -> None:
        self._web3 = web3
        self._settings = settings
        self._account = web3.eth.account.from_key(settings.signer_key) if settings.signer_key else None
        self._logger = logger or logging.getLogger("raffle.chain")

    @classmethod
    def from_settings(cls, settings: ChainSettings) -> "ChainClient":
        from web3.middleware import ExtraDataToPOAMiddleware

        web3 = Web3(Web3.HTTPProvider(settings.rpc_url))
        if not web3.is_connected():
            raise ConnectionError(f"Cannot connect to RPC endpoint: {settings.rpc_url}")

        # PoA networks (Hardhat, Polygon, Sepolia forks) need the extra-data middleware.
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        return cls(web3, settings)

    @property
    def web3(self) -> "Web3":
        return self._web3

    @property
    def settings(self) -> ChainSettings:
        return self._settings

    @property
    def address(self) -> str:
        """Checksummed custody account that holds entry stakes."""
        return Web3.to_checksum_address(self._ensure_account().address)

    @property
    def chain_id(self) -> Optional[int]:
        if self._settings.chain_id is not None:
            return self._settings.chain_id
        try:
            return int(self._web3.eth.chain_id)
        except Exception:  # pragma: no cover - leave chainId unset if the node cannot say
            return None

    def load_contract(self, address: str, artifact_path: str) -> "Contract":
        artifact = _load_artifact(artifact_path)
        abi = artifact.get("abi")
        if not isinstance(abi, list):
            raise ValueError(f"ABI not found in artifact: {artifact_path}")
        return self._web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def transact(self, fn, tx_params: Optional[Dict[str, Any]] = None) -> Any:
        account = self._ensure_account()
        params = dict(tx_params or {})
        params.setdefault("from", account.address)
        try:
            gas_estimate = fn.estimate_gas(params)
        except Exception as exc:
            self._logger.warning("Gas estimation failed, using configured limit: %s", exc)
            gas_estimate = self._settings.gas_limit
        params["gas"] = max(int(math.ceil(gas_estimate * 1.2)), self._settings.gas_limit)
        return self._sign_and_send(fn.build_transaction(self._with_fees(params)))

    def send_value(self, recipient: str, amount: int, nonce: Optional[int] = None) -> Any:
        """Send ``amount`` wei and wait for the receipt.

        Passing ``nonce`` replaces whatever else was sent with it, so at most
        one of them can ever be mined.
        """
        account = self._ensure_account()
        tx: Dict[str, Any] = {
            "from": account.address,
            "to": Web3.to_checksum_address(recipient),
            "value": int(amount),
        }
        try:
            tx["gas"] = int(self._web3.eth.estimate_gas(tx))
        except Exception as exc:
            self._logger.warning("Gas estimation failed, using configured limit: %s", exc)
            tx["gas"] = self._settings.gas_limit
        return self._sign_and_send(self._with_fees(tx, nonce))

    # --------------------------------------------------------------------- #
    # Internal helpers
    # --------------------------------------------------------------------- #

    def _ensure_account(self):
        if self._account is None:
            raise RuntimeError("Raffle signer not configured; set RAFFLE_SIGNER_KEY in .env")
        return self._account

    def _with_fees(self, tx: Dict[str, Any], nonce: Optional[int] = None) -> Dict[str, Any]:
        account = self._ensure_account()
        tx = dict(tx)
        if nonce is None:
            nonce = self._web3.eth.get_transaction_count(account.address)
        tx["nonce"] = nonce
        tx["gasPrice"] = self._web3.eth.gas_price
        chain_id = self.chain_id
        if chain_id is not None:
            tx["chainId"] = chain_id
        return tx

    def _sign_and_send(self, tx: Dict[str, Any]) -> Any:
        account = self._ensure_account()
        signed = account.sign_transaction(tx)
        tx_hash = self._web3.eth.send_raw_transaction(signed.raw_transaction)
        reference = Web3.to_hex(tx_hash)
        self._logger.info("Broadcast transaction %s (nonce %s)", reference, tx["nonce"])
        try:
            return self._web3.eth.wait_for_transaction_receipt(tx_hash, timeout=180, poll_latency=2)
        except TimeExhausted as exc:
            raise TransactionUnconfirmed(reference, tx["nonce"]) from exc


class VrfCoordinatorSource:
    """``RandomnessSource`` backed by a VRF coordinator contract.

    The coordinator answers later by calling back with the random words; the
    relay that forwards that callback to ``fulfill_randomness`` lives outside
    the core.
    """

    def __init__(self, client: ChainClient, coordinator: "Contract") -> None:
        self._client = client
        self._coordinator = coordinator

    @classmethod
    def from_settings(cls, client: ChainClient) -> "VrfCoordinatorSource":
        settings = client.settings
        coordinator = client.load_contract(settings.coordinator_address, settings.abi_path)
        return cls(client, coordinator)

    def request_randomness(self, config: VrfSettings) -> int:
        fn = self._coordinator.functions.requestRandomWords(
            Web3.to_bytes(hexstr=config.key_hash),
            int(config.subscription_id),
            int(config.request_confirmations),
            int(config.callback_gas_limit),
            int(config.num_words),
        )
        receipt = self._client.transact(fn)
        if receipt["status"] != 1:
            raise RuntimeError(f"requestRandomWords reverted: tx={receipt['transactionHash'].hex()}")

        events = self._coordinator.events.RandomWordsRequested().process_receipt(receipt)
        if not events:
            raise RuntimeError("RandomWordsRequested event missing from receipt")
        return int(events[0]["args"]["requestId"])


class Web3Payout:
    """``Payout`` that sends the prize as a plain value transfer.

    Transfers that time out are remembered by hash together with their nonce,
    so a resend after a drop reuses that nonce and cannot land next to the
    original.
    """

    def __init__(self, client: ChainClient, logger: Optional[logging.Logger] = None) -> None:
        self._client = client
        self._logger = logger or logging.getLogger("raffle.chain")
        self._unconfirmed: Dict[str, int] = {}

    def transfer(self, recipient: str, amount: int, replaces: Optional[str] = None) -> bool:
        nonce = self._unconfirmed.get(replaces) if replaces else None
        try:
            receipt = self._client.send_value(recipient, amount, nonce=nonce)
        except TransactionUnconfirmed as exc:
            if replaces:
                self._unconfirmed.pop(replaces, None)
            self._unconfirmed[exc.tx_hash] = exc.nonce
            raise TransferUnconfirmed(exc.tx_hash, str(exc)) from exc
        if replaces:
            self._unconfirmed.pop(replaces, None)
        if receipt["status"] != 1:
            self._logger.error(
                "Prize transfer to %s reverted: tx=%s", recipient, receipt["transactionHash"].hex()
            )
            return False
        return True

    def confirm(self, reference: str) -> Optional[bool]:
        eth = self._client.web3.eth
        try:
            receipt = eth.get_transaction_receipt(reference)
        except TransactionNotFound:
            receipt = None
        if receipt is not None:
            # Mined either way, so its nonce is spent.
            self._unconfirmed.pop(reference, None)
            return receipt["status"] == 1
        try:
            eth.get_transaction(reference)
        except TransactionNotFound:
            self._logger.warning("Transfer %s is no longer known to the node", reference)
            return False
        return None


class ChainPaymentVerifier:
    """Looks up the transaction a participant paid their entry with."""

    def __init__(self, client: ChainClient, logger: Optional[logging.Logger] = None) -> None:
        self._client = client
        self._logger = logger or logging.getLogger("raffle.chain")

    def verify(self, tx_hash: str) -> Payment:
        eth = self._client.web3.eth
        try:
            receipt = eth.get_transaction_receipt(tx_hash)
            tx = eth.get_transaction(tx_hash)
        except TransactionNotFound as exc:
            raise InvalidPayment(tx_hash, "transaction not found or not mined yet") from exc
        if receipt["status"] != 1:
            raise InvalidPayment(tx_hash, "transaction reverted")

        recipient = tx.get("to")
        if not recipient or Web3.to_checksum_address(recipient) != self._client.address:
            raise InvalidPayment(tx_hash, "transaction did not pay the raffle")

        payment = Payment(
            tx_hash=tx_hash.lower(),
            sender=Web3.to_checksum_address(tx["from"]),
            value=int(tx["value"]),
        )
        self._logger.debug("Verified payment %s from %s of %s", tx_hash, payment.sender, payment.value)
        return payment


def _load_artifact(path: str) -> Dict[str, Any]:
    artifact_path = Path(path)
    if not artifact_path.exists():
        raise FileNotFoundError(f"Contract artifact not found: {artifact_path}")
    with artifact_path.open("r", encoding="utf-8") as fh:
        return json.load(fh)
