#!/usr/bin/env python3
"""
PROBABILITY GAMES — Round Controller Tests

Run: python tests_controllers.py
     python tests_controllers.py -v
     python tests_controllers.py TestBlackjackController

Test categories:
  TestBetValidation       — rejected bets leave wallet, stats and RNG untouched
  TestInstantControllers  — coin flip, dice, plinko settlement
  TestMinesController     — scripted boards, cash-out, bust
  TestBlackjackController — naturals, doubling, auto-played hands
  TestCrashController     — auto-eject, manual eject, instant crash
  TestMarketController    — open / close, liquidation
  TestAutoPlay            — stop conditions, async pacing
  TestSession             — persistence across sessions, streak tallies
"""

import asyncio
import os
import sys
import tempfile
import unittest
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from controllers.base import AutoPlayer, GameSession, StreakTracker, validate_bet
from controllers.blackjack import BlackjackController
from controllers.crash import CrashController
from controllers.instant import CoinflipController, DiceController, PlinkoController
from controllers.market import MarketController
from controllers.mines import MinesController
from core.errors import InvalidBetError
from core.rng import SeededRandom, SequenceRandom
from core.storage import SQLiteStorage
from engines.blackjack import Deck, Move, Phase
from engines.market import PriceFeed
from engines.plinko import FixedTrajectory


def session_with(values=None, balance=None, notify=None):
    rng = SequenceRandom(values) if values is not None else SeededRandom(7)
    return GameSession.in_memory(rng=rng, notify=notify or (lambda ach: None), balance=balance)


# ============================================================
# Bet validation
# ============================================================

class TestBetValidation(unittest.TestCase):

    def test_validate_bet(self):
        self.assertEqual(validate_bet("25", 100), 25.0)
        self.assertEqual(validate_bet(100, 100), 100.0)
        for bad in (0, -5, "abc", None, float("inf"), float("nan"), 100.01):
            with self.assertRaises(InvalidBetError):
                validate_bet(bad, 100)

    def test_rejected_bet_mutates_nothing(self):
        session = session_with([0.505])
        ctrl = DiceController(session)
        for bad in (0, -10, "ten", 5000):
            with self.assertRaises(InvalidBetError):
                ctrl.play(bad, 50)
        self.assertEqual(ctrl.balance, 1000)
        self.assertEqual(session.stats.get_stats()["global"]["totalGames"], 0)
        self.assertEqual(session.rng.remaining, 1)

    def test_bad_risk_rejected_before_debit(self):
        session = session_with([0.505])
        with self.assertRaises(ValueError):
            DiceController(session).play(100, 0)
        self.assertEqual(session.wallet.get_balance(), 1000)

    def test_fractional_risk_rejected_before_debit(self):
        session = session_with([0.9])
        with self.assertRaises(ValueError):
            DiceController(session).play(100, 50.5)
        self.assertEqual(session.wallet.get_balance(), 1000)
        self.assertEqual(session.stats.get_stats()["dice"]["rolls"], 0)
        self.assertEqual(session.rng.remaining, 1)

    def test_error_carries_context(self):
        with self.assertRaises(InvalidBetError) as ctx:
            validate_bet(500, 100)
        self.assertEqual(ctx.exception.bet, 500)
        self.assertEqual(ctx.exception.balance, 100)


# ============================================================
# Instant games
# ============================================================

class TestInstantControllers(unittest.TestCase):

    def test_dice_scripted_win(self):
        session = session_with([0.505])
        result = DiceController(session).play(100, 50)
        self.assertEqual(result.roll, 51)
        self.assertAlmostEqual(result.profit, 86.0)
        self.assertAlmostEqual(session.wallet.get_balance(), 1086.0)
        stats = session.stats.get_stats()
        self.assertEqual(stats["dice"]["wins"], 1)
        self.assertEqual(stats["dice"]["rolls"], 1)
        self.assertEqual(stats["global"]["totalWins"], 1)

    def test_dice_loss(self):
        session = session_with([0.2])
        result = DiceController(session).play(100, 50)
        self.assertFalse(result.won)
        self.assertEqual(session.wallet.get_balance(), 900)
        self.assertEqual(session.stats.get_stats()["dice"]["losses"], 1)

    def test_coinflip(self):
        session = session_with([0.3, 0.8])
        ctrl = CoinflipController(session)
        ctrl.play(100, "heads")
        ctrl.play(100, "heads")
        self.assertAlmostEqual(ctrl.balance, 996.0)
        section = session.stats.get_stats()["coinflip"]
        self.assertEqual((section["flips"], section["wins"], section["losses"]), (2, 1, 1))
        self.assertEqual((section["heads"], section["tails"]), (1, 1))

    def test_coinflip_bad_pick_before_debit(self):
        session = session_with([0.3])
        with self.assertRaises(ValueError):
            CoinflipController(session).play(100, "edge")
        self.assertEqual(session.wallet.get_balance(), 1000)

    def test_plinko_drop(self):
        session = session_with()
        ctrl = PlinkoController(session, "low", 8, trajectory=FixedTrajectory([0.0]))
        drop = ctrl.drop(10)
        self.assertEqual(drop.bin_index, 0)
        self.assertEqual(drop.multiplier, 4.0)
        self.assertAlmostEqual(ctrl.balance, 1030.0)
        self.assertEqual(session.stats.get_stats()["plinko"]["wins"], 1)

    def test_plinko_configure_clamps(self):
        ctrl = PlinkoController(session_with(), "medium", 12)
        table = ctrl.configure("HIGH", 30)
        self.assertEqual(ctrl.rows, 16)
        self.assertEqual(ctrl.risk, "high")
        self.assertEqual(len(table), 17)


# ============================================================
# Mines
# ============================================================

class TestMinesController(unittest.TestCase):

    def setUp(self):
        self.session = session_with()
        self.ctrl = MinesController(self.session)

    def test_three_reveals_then_cash_out(self):
        self.ctrl.start(100, 5, mine_cells=frozenset({20, 21, 22, 23, 24}))
        self.assertEqual(self.ctrl.balance, 900)
        for cell in (0, 1, 2):
            self.assertEqual(self.ctrl.reveal(cell), "safe")
        payout = self.ctrl.cash_out()
        self.assertAlmostEqual(payout, 172.8)
        self.assertAlmostEqual(self.ctrl.balance, 1072.8)
        section = self.session.stats.get_stats()["mines"]
        self.assertEqual(section["cashouts"], 1)
        self.assertAlmostEqual(section["totalProfit"], 72.8)

    def test_bust(self):
        self.ctrl.start(100, 5, mine_cells=frozenset({20, 21, 22, 23, 24}))
        self.assertEqual(self.ctrl.reveal(20), "mine")
        self.assertFalse(self.ctrl.active)
        self.assertEqual(self.ctrl.balance, 900)
        self.assertEqual(self.session.stats.get_stats()["mines"]["busts"], 1)
        self.assertIsNone(self.ctrl.cash_out())
        self.assertIsNone(self.ctrl.reveal(0))

    def test_clearing_board_pays_out(self):
        self.ctrl.start(10, 24, mine_cells=frozenset(range(1, 25)))
        self.assertEqual(self.ctrl.reveal(0), "safe")
        self.assertAlmostEqual(self.ctrl.balance, 990 + 10 * 1.96)
        self.assertEqual(self.session.stats.get_stats()["mines"]["cashouts"], 1)

    def test_start_while_active_is_noop(self):
        self.ctrl.start(100, 3, mine_cells=frozenset({0, 1, 2}))
        self.assertIsNone(self.ctrl.start(100, 3))
        self.assertEqual(self.ctrl.balance, 900)

    def test_bad_layout_rejected_before_debit(self):
        with self.assertRaises(ValueError):
            self.ctrl.start(100, 3, mine_cells=frozenset({0, 1}))
        self.assertEqual(self.ctrl.balance, 1000)
        self.assertFalse(self.ctrl.active)
        self.assertIsNone(self.ctrl.round)

    def test_finished_board_kept_until_next_start(self):
        first = self.ctrl.start(100, 3, mine_cells=frozenset({0, 1, 2}))
        self.ctrl.reveal(0)
        self.assertIs(self.ctrl.round, first)
        self.assertIsNone(self.ctrl.reveal(5))
        self.assertIsNone(self.ctrl.cash_out())
        second = self.ctrl.start(100, 3, mine_cells=frozenset({0, 1, 2}))
        self.assertIsNot(second, first)
        self.assertEqual(self.ctrl.balance, 800)

    def test_invalid_mine_count_before_debit(self):
        with self.assertRaises(ValueError):
            self.ctrl.start(100, 25)
        self.assertEqual(self.ctrl.balance, 1000)


# ============================================================
# Blackjack
# ============================================================

class TestBlackjackController(unittest.TestCase):

    def test_natural_pays_three_to_two(self):
        session = session_with()
        ctrl = BlackjackController(session, deck=Deck.stacked(["A", "9", "K", "7"]))
        ctrl.start(50)
        self.assertEqual(ctrl.balance, 950)
        self.assertTrue(ctrl.next_step())
        self.assertEqual(ctrl.round.outcome, "blackjack")
        self.assertAlmostEqual(ctrl.balance, 1075.0)
        section = session.stats.get_stats()["blackjack"]
        self.assertEqual(section["wins"], 1)
        self.assertEqual(section["blackjacks"], 1)
        self.assertAlmostEqual(section["totalProfit"], 75.0)
        self.assertFalse(ctrl.next_step())

    def test_double_debits_second_stake(self):
        session = session_with()
        ctrl = BlackjackController(session, deck=Deck.stacked(["5", "10", "6", "7", "10"]))
        ctrl.start(100)
        ctrl.next_step()
        self.assertEqual(ctrl.advice(), Move.DOUBLE)
        ctrl.double()
        self.assertEqual(ctrl.balance, 800)
        ctrl.finish_dealer()
        self.assertEqual(ctrl.round.outcome, "win")
        self.assertEqual(ctrl.balance, 1200)
        self.assertEqual(session.stats.get_stats()["blackjack"]["totalBet"], 200)

    def test_double_refused_without_funds(self):
        session = session_with(balance=150)
        ctrl = BlackjackController(session, deck=Deck.stacked(["5", "10", "6", "7", "10"]))
        ctrl.start(100)
        ctrl.next_step()
        self.assertIsNone(ctrl.double())
        self.assertEqual(ctrl.balance, 50)
        self.assertEqual(ctrl.round.phase, Phase.PLAYER_ACTING)

    def test_play_round_follows_advisor(self):
        session = session_with()
        ctrl = BlackjackController(session, deck=Deck.stacked(["10", "9", "Q", "7", "5"]))
        rnd = ctrl.play_round(100)
        self.assertEqual(rnd.outcome, "loss")
        self.assertEqual(len(rnd.dealer), 3)
        self.assertEqual(ctrl.balance, 900)
        self.assertEqual(session.stats.get_stats()["blackjack"]["losses"], 1)

    def test_play_round_refuses_when_hand_open(self):
        ctrl = BlackjackController(session_with(), deck=Deck.stacked(["10", "9", "Q", "7", "5", "2"]))
        ctrl.start(10)
        ctrl.next_step()
        with self.assertRaises(RuntimeError):
            ctrl.play_round(10)

    def test_push_returns_stake(self):
        session = session_with()
        ctrl = BlackjackController(session, deck=Deck.stacked(["10", "10", "8", "8"]))
        rnd = ctrl.play_round(100)
        self.assertEqual(rnd.outcome, "push")
        self.assertEqual(ctrl.balance, 1000)
        self.assertEqual(session.stats.get_stats()["blackjack"]["pushes"], 1)

    def test_settled_hand_ignores_actions(self):
        session = session_with()
        ctrl = BlackjackController(session, deck=Deck.stacked(["A", "9", "K", "7", "2"]))
        ctrl.start(50)
        ctrl.next_step()
        self.assertEqual(ctrl.round.outcome, "blackjack")
        self.assertIsNone(ctrl.hit())
        self.assertFalse(ctrl.stand())
        self.assertIsNone(ctrl.double())
        self.assertAlmostEqual(ctrl.balance, 1075.0)
        self.assertEqual(session.stats.get_stats()["blackjack"]["hands"], 1)

    def test_seeded_hands_settle(self):
        session = session_with()
        ctrl = BlackjackController(session)
        for _ in range(20):
            rnd = ctrl.play_round(10)
            self.assertTrue(rnd.settled)
        self.assertEqual(session.stats.get_stats()["blackjack"]["hands"], 20)


# ============================================================
# Crash
# ============================================================

class TestCrashController(unittest.TestCase):

    def test_auto_eject(self):
        session = session_with([0.5])
        ctrl = CrashController(session)
        ctrl.start(100, auto_eject=1.5)
        rnd = ctrl.run()
        self.assertEqual(rnd.status, "ejected")
        self.assertAlmostEqual(ctrl.balance, 1050.0)
        section = session.stats.get_stats()["crash"]
        self.assertEqual(section["wins"], 1)
        self.assertEqual(section["maxMultiplier"], 1.5)
        self.assertAlmostEqual(ctrl.history[0], 1.92)

    def test_instant_crash(self):
        session = session_with([0.01])
        ctrl = CrashController(session)
        ctrl.start(100, auto_eject=1.1)
        self.assertFalse(ctrl.next_step())
        self.assertEqual(ctrl.round.status, "crashed")
        self.assertEqual(ctrl.balance, 900)
        section = session.stats.get_stats()["crash"]
        self.assertEqual(section["losses"], 1)
        self.assertEqual(section["maxMultiplier"], 0)

    def test_instant_crash_settles_at_start(self):
        session = session_with([0.01])
        ctrl = CrashController(session)
        rnd = ctrl.start(100)
        self.assertEqual(rnd.status, "crashed")
        self.assertIsNone(ctrl.eject())
        self.assertEqual(ctrl.balance, 900)
        self.assertEqual(session.stats.get_stats()["crash"]["losses"], 1)
        self.assertEqual(ctrl.history, [1.0])

    def test_manual_eject(self):
        session = session_with([0.9])
        ctrl = CrashController(session)
        ctrl.start(100)
        for _ in range(50):
            ctrl.next_step(0.2)
        at = ctrl.eject()
        self.assertGreater(at, 1.0)
        self.assertLess(at, 9.6)
        self.assertAlmostEqual(ctrl.balance, 900 + 100 * at)
        self.assertIsNone(ctrl.eject())

    def test_bad_auto_eject_before_debit(self):
        ctrl = CrashController(session_with([0.5]))
        with self.assertRaises(ValueError):
            ctrl.start(100, auto_eject=0.9)
        self.assertEqual(ctrl.balance, 1000)


# ============================================================
# Market
# ============================================================

class TestMarketController(unittest.TestCase):

    def test_close_in_profit(self):
        session = session_with()
        ctrl = MarketController(session, feed=PriceFeed(SequenceRandom([0.9999])))
        ctrl.open("long", 100, leverage=10)
        self.assertEqual(ctrl.balance, 900)
        ctrl.next_step()
        pnl = ctrl.unrealized_pnl()
        self.assertGreater(pnl, 0)
        returned = ctrl.close()
        self.assertAlmostEqual(returned, 100 + pnl)
        self.assertAlmostEqual(ctrl.balance, 1000 + pnl)
        section = session.stats.get_stats()["market"]
        self.assertEqual((section["trades"], section["wins"]), (1, 1))
        self.assertEqual(section["totalVolume"], 100)
        self.assertFalse(ctrl.last_close["liquidated"])

    def test_liquidation(self):
        session = session_with()
        ctrl = MarketController(session, feed=PriceFeed(SequenceRandom([0.0, 0.0])))
        ctrl.open("long", 100, leverage=600)
        ctrl.next_step()
        self.assertIsNotNone(ctrl.position)
        ctrl.next_step()
        self.assertIsNone(ctrl.position)
        self.assertTrue(ctrl.last_close["liquidated"])
        self.assertEqual(ctrl.balance, 900)
        section = session.stats.get_stats()["market"]
        self.assertEqual(section["losses"], 1)
        self.assertAlmostEqual(section["totalProfit"], -100)

    def test_single_position(self):
        ctrl = MarketController(session_with())
        self.assertIsNotNone(ctrl.open("short", 100, leverage=5))
        self.assertIsNone(ctrl.open("long", 100))
        self.assertEqual(ctrl.balance, 900)

    def test_bad_leverage_before_debit(self):
        ctrl = MarketController(session_with())
        with self.assertRaises(ValueError):
            ctrl.open("long", 100, leverage=0)
        self.assertEqual(ctrl.balance, 1000)
        self.assertIsNone(ctrl.close())


# ============================================================
# Auto-play
# ============================================================

class TestAutoPlay(unittest.TestCase):

    def test_count_reached(self):
        ctrl = CoinflipController(session_with())
        auto = ctrl.autoplay(10, count=3)
        results = auto.run()
        self.assertEqual(len(results), 3)
        self.assertEqual(auto.stop_reason, "count reached")
        self.assertIsNone(auto.next_step())

    def test_insufficient_balance(self):
        session = session_with([0.1] * 10, balance=25)
        auto = DiceController(session).autoplay(10, risk=50)
        auto.run()
        self.assertEqual(auto.played, 2)
        self.assertEqual(auto.stop_reason, "insufficient balance")
        self.assertEqual(session.wallet.get_balance(), 5)

    def test_manual_stop(self):
        ctrl = CoinflipController(session_with())
        auto = ctrl.autoplay(10)
        self.assertIsNotNone(auto.next_step())
        auto.stop("user")
        self.assertIsNone(auto.next_step())
        self.assertEqual(auto.stop_reason, "user")
        self.assertEqual(auto.played, 1)

    def test_plinko_autoplay_async(self):
        ctrl = PlinkoController(session_with(), "medium", 8)
        auto = ctrl.autoplay(5, count=4)
        results = asyncio.run(auto.run_async(delay=0))
        self.assertEqual(len(results), 4)
        self.assertEqual(ctrl.session.stats.get_stats()["plinko"]["drops"], 4)

    def test_generic_autoplayer(self):
        ctrl = CrashController(session_with())
        auto = AutoPlayer(ctrl, lambda: ctrl.start(10, auto_eject=1.01) and ctrl.run(), 10, count=5)
        auto.run()
        self.assertEqual(auto.played, 5)
        self.assertEqual(len(ctrl.history), 5)


# ============================================================
# Session
# ============================================================

class TestSession(unittest.TestCase):

    def test_sqlite_persistence(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "games.db")
            first = GameSession.create(SQLiteStorage(path), rng=SequenceRandom([0.505]),
                                       notify=lambda ach: None)
            DiceController(first).play(100, 50)

            second = GameSession.create(SQLiteStorage(path), notify=lambda ach: None)
            self.assertAlmostEqual(second.wallet.get_balance(), 1086.0)
            self.assertEqual(second.stats.get_stats()["dice"]["wins"], 1)
            self.assertIn("first_blood", second.achievements.unlocked_ids())

    def test_achievement_notification(self):
        unlocked = []
        session = session_with([0.505], notify=unlocked.append)
        DiceController(session).play(100, 50)
        self.assertEqual([a.id for a in unlocked], ["first_blood"])

    def test_streaks(self):
        tracker = StreakTracker()
        for profit in (5, 3, -1, -2, -4, 0, 7):
            tracker.record(profit)
        self.assertEqual(tracker.best_win_streak, 2)
        self.assertEqual(tracker.best_loss_streak, 3)
        self.assertEqual(tracker.current, 1)
        self.assertEqual(tracker.rounds, 7)
        self.assertAlmostEqual(tracker.win_rate, 3 / 7 * 100)
        self.assertEqual(tracker.history[0], 7)

    def test_controller_streaks(self):
        ctrl = CoinflipController(session_with([0.3, 0.3, 0.8]))
        for _ in range(3):
            ctrl.play(10, "heads")
        self.assertEqual(ctrl.streaks.best_win_streak, 2)
        self.assertEqual(ctrl.streaks.current, -1)


if __name__ == "__main__":
    # Configure logging to suppress noise during tests
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
