import dataclasses
import os
import unittest
from unittest import mock

from raffle.config import RaffleSettings, load_from_environment, parse_wei

BASE_ENV = {
    "RAFFLE_ENTRANCE_FEE": "0.01 ether",
    "RAFFLE_INTERVAL": "30",
}


class ParseWeiTests(unittest.TestCase):
    def test_units(self) -> None:
        self.assertEqual(parse_wei("10000000000000000"), 10**16)
        self.assertEqual(parse_wei("0.01 ether"), 10**16)
        self.assertEqual(parse_wei("5gwei"), 5 * 10**9)
        self.assertEqual(parse_wei(" 42 wei "), 42)

    def test_invalid_amounts(self) -> None:
        for raw in ("1.5", "lots", "1.5 wei"):
            with self.subTest(raw=raw):
                with self.assertRaises(ValueError):
                    parse_wei(raw)


class LoadFromEnvironmentTests(unittest.TestCase):
    def test_minimal_environment(self) -> None:
        with mock.patch.dict(os.environ, BASE_ENV, clear=True):
            settings = load_from_environment()

        self.assertEqual(settings.entrance_fee, 10**16)
        self.assertEqual(settings.interval, 30)
        self.assertIsNone(settings.chain)
        self.assertEqual(settings.vrf.num_words, 1)
        self.assertEqual(settings.vrf.request_confirmations, 3)

    def test_vrf_and_chain_settings(self) -> None:
        env = dict(
            BASE_ENV,
            RPC_URL="http://localhost:8545",
            VRF__COORDINATOR_ADDRESS="0x" + "1" * 40,
            VRF__SUBSCRIPTION_ID="588",
            VRF__CALLBACK_GAS_LIMIT="500000",
            RAFFLE_SIGNER_KEY="0x" + "2" * 64,
            CHAIN_ID="31337",
        )
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_from_environment()

        self.assertEqual(settings.vrf.subscription_id, 588)
        self.assertEqual(settings.chain.rpc_url, "http://localhost:8545")
        self.assertEqual(settings.chain.chain_id, 31337)
        self.assertEqual(settings.chain.signer_key, "0x" + "2" * 64)

    def test_rpc_without_coordinator_fails(self) -> None:
        env = dict(BASE_ENV, RPC_URL="http://localhost:8545")
        with mock.patch.dict(os.environ, env, clear=True):
            with self.assertRaises(RuntimeError):
                load_from_environment()

    def test_missing_entrance_fee_fails(self) -> None:
        with mock.patch.dict(os.environ, {"RAFFLE_INTERVAL": "30"}, clear=True):
            with self.assertRaises(RuntimeError):
                load_from_environment()


class RaffleSettingsTests(unittest.TestCase):
    def test_rejects_non_positive_values(self) -> None:
        with self.assertRaises(ValueError):
            RaffleSettings(entrance_fee=0, interval=30)
        with self.assertRaises(ValueError):
            RaffleSettings(entrance_fee=1, interval=0)

    def test_settings_are_immutable(self) -> None:
        settings = RaffleSettings(entrance_fee=1, interval=30)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            settings.entrance_fee = 2
        self.assertEqual(settings.copy(interval=60).interval, 60)
        self.assertEqual(settings.interval, 30)


if __name__ == "__main__":
    unittest.main()
