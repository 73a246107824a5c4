import unittest

from raffle.config import VrfSettings
from raffle.errors import IndexOutOfRange, InsufficientFee, RequestAlreadyPending, UnknownOrStaleRequest
from raffle.events import Entered, EventBus, EventRecorder, RandomnessRequested
from raffle.payout import LedgerPayout
from raffle.pool import EntryPool
from raffle.randomness import RandomnessRequester
from raffle.selector import select_winner
from raffle.trigger import check_upkeep
from raffle.types import LotteryState


class StaticSource:
    def __init__(self, *request_ids) -> None:
        self._ids = list(request_ids)
        self.configs = []

    def request_randomness(self, config):
        self.configs.append(config)
        return self._ids.pop(0)


class EntryPoolTests(unittest.TestCase):
    def setUp(self) -> None:
        self.recorder = EventRecorder()
        events = EventBus()
        events.subscribe(self.recorder)
        self.pool = EntryPool(100, events)

    def test_add_entry_tracks_players_and_balance(self) -> None:
        self.pool.add_entry("alice", 100)
        self.pool.add_entry("bob", 150)
        self.pool.add_entry("alice", 100)

        self.assertEqual(self.pool.count, 3)
        self.assertEqual(self.pool.balance, 350)
        self.assertEqual(self.pool.players(), ("alice", "bob", "alice"))
        self.assertEqual(self.pool.player_at(1), "bob")
        self.assertEqual(len(self.recorder.of_type(Entered)), 3)

    def test_add_entry_rejects_small_stake(self) -> None:
        with self.assertRaises(InsufficientFee) as ctx:
            self.pool.add_entry("alice", 99)
        self.assertEqual(ctx.exception.entrance_fee, 100)
        self.assertEqual(self.pool.count, 0)
        self.assertEqual(self.recorder.events, [])

    def test_reset_clears_pool_but_not_snapshots(self) -> None:
        self.pool.add_entry("alice", 100)
        snapshot = self.pool.players()
        self.pool.reset()

        self.assertEqual(self.pool.count, 0)
        self.assertEqual(self.pool.balance, 0)
        self.assertEqual(snapshot, ("alice",))
        with self.assertRaises(IndexOutOfRange):
            self.pool.player_at(0)


class SelectWinnerTests(unittest.TestCase):
    def test_modulo_selection(self) -> None:
        self.assertEqual(select_winner(7, 3), 1)
        self.assertEqual(select_winner(0, 5), 0)
        self.assertEqual(select_winner(2**256 - 1, 1), 0)

    def test_every_index_reachable(self) -> None:
        self.assertEqual({select_winner(value, 4) for value in range(8)}, {0, 1, 2, 3})

    def test_empty_pool_is_an_error(self) -> None:
        with self.assertRaises(ValueError):
            select_winner(7, 0)

    def test_negative_value_is_an_error(self) -> None:
        with self.assertRaises(ValueError):
            select_winner(-1, 3)


class CheckUpkeepTests(unittest.TestCase):
    def _status(self, **overrides):
        params = dict(
            state=LotteryState.OPEN,
            now=1_000,
            last_timestamp=900,
            interval=100,
            player_count=2,
            balance=200,
        )
        params.update(overrides)
        return check_upkeep(**params)

    def test_needed_when_all_conditions_hold(self) -> None:
        status = self._status()
        self.assertTrue(status.needed)
        self.assertEqual(status.elapsed, 100)

    def test_each_condition_blocks_upkeep(self) -> None:
        for overrides in (
            {"state": LotteryState.CALCULATING},
            {"now": 999},
            {"player_count": 0},
            {"balance": 0},
        ):
            with self.subTest(**{k: str(v) for k, v in overrides.items()}):
                self.assertFalse(self._status(**overrides).needed)

    def test_to_dict_stringifies_balance(self) -> None:
        payload = self._status(balance=10**30).to_dict()
        self.assertEqual(payload["balance"], str(10**30))
        self.assertEqual(payload["state"], "OPEN")


class RandomnessRequesterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.source = StaticSource(11, 12)
        self.recorder = EventRecorder()
        events = EventBus()
        events.subscribe(self.recorder)
        self.config = VrfSettings(key_hash="0x" + "ab" * 32, subscription_id=3)
        self.requester = RandomnessRequester(self.source, self.config, events)

    def test_request_records_pending_and_notifies(self) -> None:
        request_id = self.requester.request(now=50)

        self.assertEqual(request_id, 11)
        self.assertEqual(self.requester.pending.request_id, 11)
        self.assertEqual(self.requester.pending.issued_at, 50)
        self.assertEqual(self.source.configs, [self.config])
        self.assertEqual(self.recorder.events, [RandomnessRequested(11)])

    def test_only_one_request_at_a_time(self) -> None:
        self.requester.request(now=50)
        with self.assertRaises(RequestAlreadyPending):
            self.requester.request(now=51)
        self.assertEqual(len(self.source.configs), 1)

    def test_fulfill_clears_pending_once(self) -> None:
        self.requester.request(now=50)
        self.assertEqual(self.requester.fulfill(11, 99), 99)
        self.assertIsNone(self.requester.pending)

        with self.assertRaises(UnknownOrStaleRequest):
            self.requester.fulfill(11, 99)
        self.assertEqual(self.requester.request(now=60), 12)

    def test_spoofed_id_keeps_request_pending(self) -> None:
        self.requester.request(now=50)
        with self.assertRaises(UnknownOrStaleRequest) as ctx:
            self.requester.fulfill(12, 1)
        self.assertEqual(ctx.exception.expected, 11)
        self.assertEqual(self.requester.pending.request_id, 11)

    def test_rejects_non_integer_values(self) -> None:
        self.requester.request(now=50)
        for value in (-5, 1.5, True):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    self.requester.fulfill(11, value)
        self.assertIsNotNone(self.requester.pending)


class EventBusTests(unittest.TestCase):
    def test_unsubscribe_stops_delivery(self) -> None:
        bus = EventBus()
        recorder = EventRecorder()
        unsubscribe = bus.subscribe(recorder)
        bus.emit(Entered("alice"))
        unsubscribe()
        bus.emit(Entered("bob"))
        self.assertEqual(recorder.events, [Entered("alice")])


class LedgerPayoutTests(unittest.TestCase):
    def test_transfers_credit_recipient(self) -> None:
        ledger = LedgerPayout()
        self.assertTrue(ledger.transfer("alice", 30))
        self.assertTrue(ledger.transfer("alice", 12))
        self.assertEqual(ledger.balance_of("alice"), 42)
        self.assertEqual(ledger.balance_of("bob"), 0)
        self.assertEqual(ledger.transfers, [("alice", 30), ("alice", 12)])

    def test_negative_amount_rejected(self) -> None:
        with self.assertRaises(ValueError):
            LedgerPayout().transfer("alice", -1)


if __name__ == "__main__":
    unittest.main()
