#!/usr/bin/env python3
"""
PROBABILITY GAMES — Monte Carlo & CLI Tests

Run: python tests_montecarlo.py
     python tests_montecarlo.py -v

Test categories:
  TestSimulators  — plinko / coin flip / crash bulk runs
  TestValidation  — measured vs theoretical house edge report
  TestCLI         — argparse entry point
"""

import contextlib
import io
import json
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import GameConfig
from core.rng import SeededRandom
from engines import crash
from tools import cli, montecarlo


class TestSimulators(unittest.TestCase):

    def test_crash_instant_rate_and_ev(self):
        sim = montecarlo.simulate_crash(eject_at=2.0, rounds=100_000, rng=SeededRandom(1))
        self.assertLess(abs(sim.instant_crash_rate - crash.HOUSE_EDGE), 0.005)
        self.assertAlmostEqual(sim.theoretical_ev, -0.04)
        self.assertLess(sim.ev_delta, 0.02)
        self.assertLess(abs(sim.survival_measured - 0.48), 0.01)
        self.assertIn("Crash", sim.summary())

    def test_plinko(self):
        sim = montecarlo.simulate_plinko(bet=2, risk="high", rows=10, count=2000, rng=SeededRandom(2))
        self.assertEqual(sum(sim.bin_hits), 2000)
        self.assertEqual(len(sim.bin_hits), 11)
        self.assertLess(sim.expected_payout_ratio, 1.0)
        self.assertGreaterEqual(sim.most_common_hits, 2000 // 11)
        self.assertTrue(0.0 <= sim.win_rate <= 1.0)

    def test_coinflip(self):
        sim = montecarlo.simulate_coinflip(bet=10, count=500, rng=SeededRandom(3))
        losses = 500 - sim.wins
        self.assertAlmostEqual(sim.net_profit, sim.wins * 9.6 - losses * 10)
        self.assertGreaterEqual(sim.max_drawdown, 0)
        self.assertGreaterEqual(sim.longest_win_streak, 1)
        self.assertGreaterEqual(sim.longest_loss_streak, 1)

    def test_empty_runs(self):
        self.assertEqual(montecarlo.simulate_crash(rounds=0).measured_ev, 0.0)
        self.assertEqual(montecarlo.simulate_coinflip(count=0).net_profit, 0.0)

    def test_to_dict(self):
        sim = montecarlo.simulate_coinflip(count=10, rng=SeededRandom(4))
        self.assertEqual(montecarlo.to_dict(sim)["flips"], 10)


class TestValidation(unittest.TestCase):

    def test_report_covers_every_engine(self):
        report = montecarlo.validate_all(rounds=300, seed=5)
        self.assertEqual(len(report.results), 7)
        self.assertEqual(report.total_rounds, 7 * 300)
        payload = json.loads(report.to_json())
        self.assertEqual(len(payload["games"]), 7)
        self.assertIn("VALIDATION", report.summary())

    def test_fixed_edge_games_converge(self):
        report = montecarlo.validate_all(rounds=50_000, seed=11,
                                         games=["coinflip", "dice", "crash"])
        for result in report.results:
            self.assertTrue(report.passed(result), result.to_dict())
        self.assertTrue(report.overall_pass)


class TestCLI(unittest.TestCase):

    def run_cli(self, *argv) -> str:
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            cli.main(list(argv))
        return out.getvalue()

    def test_simulate_json(self):
        payload = json.loads(self.run_cli("simulate", "crash", "--rounds", "2000", "--seed", "1", "--json"))
        self.assertEqual(payload["rounds"], 2000)
        self.assertEqual(payload["eject_at"], 2.0)

    def test_tables_render(self):
        self.assertIn("Plinko", self.run_cli("table", "plinko", "--risk", "low", "--rows", "8"))
        self.assertIn("Dice", self.run_cli("table", "dice"))
        self.assertIn("strategy", self.run_cli("strategy"))

    def test_stats_and_reset_in_memory(self):
        with patch.object(GameConfig, "STORAGE_BACKEND", "memory"):
            self.assertIn("Balance", self.run_cli("stats"))
            self.assertIn("Reset", self.run_cli("reset", "wallet"))

    def test_unknown_command(self):
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                cli.main(["roulette"])


if __name__ == "__main__":
    # Configure logging to suppress noise during tests
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
