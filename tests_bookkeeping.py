#!/usr/bin/env python3
"""
PROBABILITY GAMES — Bookkeeping Tests

Run: python tests_bookkeeping.py
     python tests_bookkeeping.py -v
     python tests_bookkeeping.py TestStats

Test categories:
  TestStorage       — memory / SQLite backends, write-failure shadow copy
  TestWallet        — defaults, clamping, corruption, formatting
  TestEvents        — tagged-union validation
  TestStats         — merge, per-game increments, single write per record
  TestAchievements  — unlock-once, batched persistence, missing sections
"""

import json
import os
import sys
import tempfile
import threading
import unittest
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import ValidationError

from core.achievements import ACHIEVEMENTS_KEY, AchievementEngine
from core.errors import StorageError
from core.events import CrashEvent, DiceEvent, MinesEvent, parse_event
from core.stats import STATS_KEY, StatsStore, calculate_level, default_stats
from core.storage import MemoryStorage, PersistedState, SQLiteStorage
from core.wallet import BALANCE_KEY, WalletStore, format_coins


class CountingStorage(MemoryStorage):
    """Memory storage that counts writes per key."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.writes: dict[str, int] = {}

    def set_item(self, key, value):
        self.writes[key] = self.writes.get(key, 0) + 1
        super().set_item(key, value)


class FailingStorage(MemoryStorage):
    """Storage whose writes always fail (quota exceeded / disabled)."""

    def set_item(self, key, value):
        raise StorageError("quota exceeded")


def make_ledger(storage=None, notify=None):
    state = PersistedState(storage if storage is not None else MemoryStorage())
    achievements = AchievementEngine(state, notify=notify or (lambda ach: None))
    return state, StatsStore(state, achievements=achievements), achievements


# ============================================================
# Storage
# ============================================================

class TestStorage(unittest.TestCase):

    def test_memory_roundtrip(self):
        s = MemoryStorage()
        self.assertIsNone(s.get_item("k"))
        s.set_item("k", "v")
        self.assertEqual(s.get_item("k"), "v")
        s.remove_item("k")
        self.assertIsNone(s.get_item("k"))

    def test_sqlite_upsert_and_remove(self):
        with tempfile.TemporaryDirectory() as tmp:
            db = os.path.join(tmp, "nested", "games.db")
            s = SQLiteStorage(db)
            s.set_item("k", "1")
            s.set_item("k", "2")
            self.assertEqual(s.get_item("k"), "2")
            # A second handle on the same file sees the committed value
            self.assertEqual(SQLiteStorage(db).get_item("k"), "2")
            s.remove_item("k")
            self.assertIsNone(s.get_item("k"))

    def test_write_failure_keeps_session_copy(self):
        state = PersistedState(FailingStorage())
        self.assertFalse(state.write("k", "v"))
        self.assertEqual(state.read("k"), "v")

    def test_successful_write_clears_shadow(self):
        backing = FailingStorage()
        state = PersistedState(backing)
        state.write("k", "stale")
        state.storage = MemoryStorage()
        self.assertTrue(state.write("k", "fresh"))
        self.assertEqual(state.read("k"), "fresh")


# ============================================================
# Wallet
# ============================================================

class TestWallet(unittest.TestCase):

    def setUp(self):
        self.storage = MemoryStorage()
        self.wallet = WalletStore(PersistedState(self.storage))

    def test_default_balance(self):
        self.assertEqual(self.wallet.get_balance(), 1000.0)

    def test_invalid_stored_values_read_as_default(self):
        for raw in ("abc", "-3", "nan", "inf", ""):
            self.storage.set_item(BALANCE_KEY, raw)
            self.assertEqual(self.wallet.get_balance(), 1000.0, raw)

    def test_set_balance_clamps_negative(self):
        self.assertEqual(self.wallet.set_balance(-50), 0.0)
        self.assertEqual(self.wallet.get_balance(), 0.0)

    def test_change_balance(self):
        self.assertEqual(self.wallet.change_balance(-100), 900.0)
        self.assertEqual(self.wallet.change_balance(250.5), 1150.5)
        self.assertEqual(self.wallet.change_balance(-5000), 0.0)

    def test_reset(self):
        self.wallet.set_balance(3)
        self.assertEqual(self.wallet.reset_balance(), 1000.0)

    def test_survives_write_failure_for_session(self):
        wallet = WalletStore(PersistedState(FailingStorage()))
        wallet.change_balance(-100)
        self.assertEqual(wallet.get_balance(), 900.0)

    def test_format_coins(self):
        self.assertEqual(format_coins(1234.5), "1,234.5")
        self.assertEqual(format_coins(1000), "1,000")
        self.assertEqual(format_coins(1234.567), "1,234.57")


# ============================================================
# Events
# ============================================================

class TestEvents(unittest.TestCase):

    def test_parse_dispatches_on_game(self):
        event = parse_event({"game": "dice", "bet": 100, "profit": 86, "roll": 51, "risk": 50})
        self.assertIsInstance(event, DiceEvent)
        self.assertEqual(event.roll, 51)

    def test_bet_must_be_positive(self):
        with self.assertRaises(ValidationError):
            DiceEvent(bet=0, profit=0)

    def test_non_finite_rejected(self):
        with self.assertRaises(ValidationError):
            DiceEvent(bet=float("inf"), profit=0)

    def test_unknown_game_rejected(self):
        with self.assertRaises(ValidationError):
            parse_event({"game": "roulette", "bet": 1, "profit": 0})

    def test_outcome_literal(self):
        with self.assertRaises(ValidationError):
            MinesEvent(bet=1, profit=0, outcome="win")


# ============================================================
# Stats
# ============================================================

class TestStats(unittest.TestCase):

    def setUp(self):
        self.storage = CountingStorage()
        self.state, self.stats, self.achievements = make_ledger(self.storage)

    def test_defaults(self):
        self.assertEqual(self.stats.get_stats(), default_stats())

    def test_corrupt_record_falls_back(self):
        self.storage.set_item(STATS_KEY, "{not json")
        self.assertEqual(self.stats.get_stats(), default_stats())

    def test_merge_backfills_and_preserves_unknown(self):
        self.storage.set_item(STATS_KEY, json.dumps({
            "dice": {"rolls": 3, "custom": 7},
            "legacy": {"x": 1},
        }))
        merged = self.stats.get_stats()
        self.assertEqual(merged["dice"]["rolls"], 3)
        self.assertEqual(merged["dice"]["custom"], 7)
        self.assertEqual(merged["dice"]["wins"], 0)
        self.assertEqual(merged["legacy"], {"x": 1})
        self.assertEqual(merged["global"]["totalGames"], 0)
        self.assertIn("crash", merged)

    def test_non_numeric_counters_reset(self):
        self.storage.set_item(STATS_KEY, json.dumps({
            "dice": {"wins": None, "rolls": "x", "totalBet": True, "note": "keep"},
        }))
        merged = self.stats.get_stats()
        self.assertEqual(merged["dice"]["wins"], 0)
        self.assertEqual(merged["dice"]["rolls"], 0)
        self.assertEqual(merged["dice"]["totalBet"], 0)
        self.assertEqual(merged["dice"]["note"], "keep")
        s = self.stats.record_dice(bet=100, profit=86, roll=51, risk=50)
        self.assertEqual(s["dice"]["wins"], 1)
        self.assertEqual(s["dice"]["rolls"], 1)

    def test_dice_win(self):
        s = self.stats.record_dice(bet=100, profit=86, roll=51, risk=50)
        self.assertEqual(s["dice"]["rolls"], 1)
        self.assertEqual(s["dice"]["wins"], 1)
        self.assertEqual(s["dice"]["losses"], 0)
        self.assertEqual(s["global"]["totalBets"], 100)
        self.assertEqual(s["global"]["totalProfit"], 86)
        self.assertEqual(s["global"]["totalWins"], 1)

    def test_zero_profit_is_neither_win_nor_loss_for_plinko(self):
        s = self.stats.record_plinko(bet=10, profit=0, bin_index=4, multiplier=1.0)
        self.assertEqual(s["plinko"]["wins"], 0)
        self.assertEqual(s["plinko"]["losses"], 0)
        self.assertEqual(s["global"]["totalWins"], 0)

    def test_mines_cashout_and_bust(self):
        self.stats.record_mines(bet=100, profit=72.8, outcome="cashout", mines=5, reveals=3)
        s = self.stats.record_mines(bet=100, profit=-100, outcome="bust", mines=5, reveals=1)
        self.assertEqual(s["mines"]["rounds"], 2)
        self.assertEqual(s["mines"]["cashouts"], 1)
        self.assertEqual(s["mines"]["busts"], 1)

    def test_blackjack_counters(self):
        self.stats.record_blackjack(bet=50, profit=75, outcome="win", is_blackjack=True)
        self.stats.record_blackjack(bet=50, profit=0, outcome="push", is_blackjack=True)
        s = self.stats.record_blackjack(bet=50, profit=-50, outcome="loss")
        self.assertEqual(s["blackjack"]["hands"], 3)
        self.assertEqual(s["blackjack"]["wins"], 1)
        self.assertEqual(s["blackjack"]["pushes"], 1)
        self.assertEqual(s["blackjack"]["losses"], 1)
        self.assertEqual(s["blackjack"]["blackjacks"], 2)

    def test_crash_max_multiplier_only_from_wins(self):
        self.stats.record_crash(bet=10, profit=15, outcome="win", multiplier=2.5)
        s = self.stats.record_crash(bet=10, profit=-10, outcome="loss", multiplier=40.0)
        self.assertEqual(s["crash"]["maxMultiplier"], 2.5)
        self.assertEqual(s["crash"]["wins"], 1)
        self.assertEqual(s["crash"]["losses"], 1)

    def test_market_volume(self):
        s = self.stats.record_market(bet=25, profit=-25, outcome="loss", side="long",
                                     leverage=10, liquidated=True)
        self.assertEqual(s["market"]["trades"], 1)
        self.assertEqual(s["market"]["totalVolume"], 25)
        self.assertEqual(s["market"]["losses"], 1)

    def test_coinflip_sides(self):
        self.stats.record_coinflip(bet=10, profit=9.6, pick="heads", landed="heads")
        s = self.stats.record_coinflip(bet=10, profit=-10, pick="heads", landed="tails")
        self.assertEqual(s["coinflip"]["flips"], 2)
        self.assertEqual(s["coinflip"]["heads"], 1)
        self.assertEqual(s["coinflip"]["tails"], 1)
        self.assertEqual(s["coinflip"]["wins"], 1)
        self.assertEqual(s["coinflip"]["losses"], 1)

    def test_one_write_per_record(self):
        self.stats.record_event(CrashEvent(bet=5, profit=-5, outcome="loss"))
        self.stats.record_dice(bet=5, profit=-5)
        self.assertEqual(self.storage.writes[STATS_KEY], 2)

    def test_reset_unlocks_nothing(self):
        self.stats.reset_stats()
        self.assertEqual(self.achievements.unlocked_ids(), [])
        self.assertEqual(self.stats.get_stats(), default_stats())

    def test_interleaved_records_do_not_lose_updates(self):
        def worker():
            for _ in range(25):
                self.stats.record_dice(bet=1, profit=-1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        s = self.stats.get_stats()
        self.assertEqual(s["global"]["totalGames"], 200)
        self.assertEqual(s["dice"]["rolls"], 200)

    def test_summary_and_level(self):
        self.stats.record_dice(bet=300, profit=-300)
        self.stats.record_crash(bet=900, profit=900, outcome="win", multiplier=2.0)
        summary = self.stats.summary()
        self.assertEqual(summary["total_games"], 2)
        self.assertAlmostEqual(summary["win_rate"], 50.0)
        self.assertEqual(summary["top_game"], "Crash")
        self.assertEqual(summary["level"]["title"], "Grinder")

    def test_calculate_level_bands(self):
        self.assertEqual(calculate_level(0)["title"], "Rookie")
        self.assertEqual(calculate_level(999.99)["level"], 1)
        self.assertEqual(calculate_level(1000)["title"], "Grinder")
        self.assertEqual(calculate_level(99_999)["title"], "Pro")
        whale = calculate_level(2_000_000)
        self.assertEqual(whale["title"], "Whale")
        self.assertIsNone(whale["next"])


# ============================================================
# Achievements
# ============================================================

class TestAchievements(unittest.TestCase):

    def setUp(self):
        self.notified = []
        self.storage = CountingStorage()
        self.state, self.stats, self.achievements = make_ledger(
            self.storage, notify=self.notified.append,
        )

    def test_first_blood_unlocks_exactly_once(self):
        self.stats.record_mines(bet=10, profit=-10, outcome="bust", mines=3)
        self.assertEqual([a.id for a in self.notified], ["first_blood"])
        self.stats.record_dice(bet=10, profit=-10)
        self.stats.record_coinflip(bet=10, profit=9.6)
        self.assertEqual([a.id for a in self.notified], ["first_blood"])
        self.assertEqual(self.achievements.unlocked_ids(), ["first_blood"])

    def test_batched_persistence(self):
        self.stats.record_dice(bet=10_000, profit=-10_000)
        self.assertEqual({a.id for a in self.notified}, {"first_blood", "high_roller"})
        self.assertEqual(self.storage.writes[ACHIEVEMENTS_KEY], 1)

    def test_missing_sections_are_not_met(self):
        newly = self.achievements.check_achievements({"global": {"totalGames": 0}})
        self.assertEqual(newly, [])
        newly = self.achievements.check_achievements({"crash": "garbage"})
        self.assertEqual(newly, [])

    def test_sniper_from_crash_cashout(self):
        self.stats.record_crash(bet=10, profit=90, outcome="win", multiplier=10.0)
        self.assertIn("sniper", self.achievements.unlocked_ids())

    def test_unlock_survives_stats_reset(self):
        self.stats.record_dice(bet=1, profit=-1)
        self.stats.reset_stats()
        self.assertEqual(self.achievements.unlocked_ids(), ["first_blood"])

    def test_explicit_reset(self):
        self.stats.record_dice(bet=1, profit=-1)
        self.achievements.reset()
        self.assertEqual(self.achievements.unlocked_ids(), [])
        status = self.achievements.get_status()
        self.assertEqual(len(status), 7)
        self.assertFalse(any(a["unlocked"] for a in status))

    def test_corrupt_set_treated_as_empty(self):
        self.storage.set_item(ACHIEVEMENTS_KEY, "not-json")
        self.assertEqual(self.achievements.unlocked_ids(), [])


if __name__ == "__main__":
    # Configure logging to suppress noise during tests
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
