"""
PROBABILITY GAMES — Monte Carlo Tools

Bulk simulations behind the "pro" panels and the engine validation report:
  • Plinko: net profit, win rate, most-hit multiplier, per-bin hits
  • Coin flip: net profit, max drawdown, longest win / loss streaks
  • Crash: instant-crash share, measured EV vs closed-form EV
  • validate_all: every engine's measured vs theoretical house edge

Usage:
    from tools.montecarlo import simulate_crash, validate_all
    print(simulate_crash(eject_at=2.0, rounds=100_000).summary())
    report = validate_all(rounds=50_000)
    print(report.to_json())
"""

from __future__ import annotations

import json
import logging
import time
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from core.rng import RandomSource, SeededRandom
from engines import GAME_ENGINES, get_game_engine
from engines import coinflip, crash, plinko
from engines.base import SimResult

logger = logging.getLogger("probgames.montecarlo")


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass
class PlinkoSimulation:
    risk: str
    rows: int
    drops: int
    bet: float
    net_profit: float
    win_rate: float               # share of drops paying more than 1x
    most_common_multiplier: float
    most_common_hits: int
    bin_hits: list[int] = field(default_factory=list)
    expected_payout_ratio: float = 0.0

    def summary(self) -> str:
        return "\n".join([
            f"═══ Plinko: {self.risk} / {self.rows} rows ═══",
            f"  Drops:        {self.drops:,}",
            f"  Net profit:   {self.net_profit:+,.2f}",
            f"  Win rate:     {self.win_rate * 100:.1f}%",
            f"  Most hit:     {self.most_common_multiplier}x ({self.most_common_hits:,} times)",
            f"  Theory RTP:   {self.expected_payout_ratio * 100:.2f}%",
        ])


@dataclass
class CoinflipSimulation:
    flips: int
    bet: float
    net_profit: float
    wins: int
    max_drawdown: float
    longest_win_streak: int
    longest_loss_streak: int

    def summary(self) -> str:
        return "\n".join([
            f"═══ Coin Flip: {self.flips:,} flips ═══",
            f"  Net profit:   {self.net_profit:+,.2f}",
            f"  Wins:         {self.wins:,} ({self.wins / self.flips * 100:.1f}%)" if self.flips else "  Wins: 0",
            f"  Max drawdown: {self.max_drawdown:,.2f}",
            f"  Win streak:   {self.longest_win_streak}",
            f"  Loss streak:  {self.longest_loss_streak}",
        ])


@dataclass
class CrashSimulation:
    eject_at: float
    rounds: int
    instant_crash_rate: float
    measured_ev: float
    theoretical_ev: float
    survival_measured: float
    survival_theoretical: float

    @property
    def ev_delta(self) -> float:
        return abs(self.measured_ev - self.theoretical_ev)

    def summary(self) -> str:
        return "\n".join([
            f"═══ Crash: eject at {self.eject_at:.2f}x ═══",
            f"  Rounds:        {self.rounds:,}",
            f"  Instant crash: {self.instant_crash_rate * 100:.2f}% (edge {crash.HOUSE_EDGE * 100:.0f}%)",
            f"  Survival:      {self.survival_measured * 100:.2f}% vs {self.survival_theoretical * 100:.2f}%",
            f"  EV / unit:     {self.measured_ev:+.4f} vs {self.theoretical_ev:+.4f}",
        ])


@dataclass
class ValidationReport:
    """Measured vs theoretical house edge for every engine."""
    results: list[SimResult] = field(default_factory=list)
    tolerance: float = 0.02
    generated_at: str = ""
    total_rounds: int = 0
    total_duration: float = 0.0

    def __post_init__(self):
        self.generated_at = datetime.now(timezone.utc).isoformat()

    def passed(self, result: SimResult) -> bool:
        return abs(result.house_edge_measured - result.house_edge_theoretical) <= self.tolerance

    @property
    def overall_pass(self) -> bool:
        return all(self.passed(r) for r in self.results)

    def add(self, result: SimResult, duration: float = 0.0):
        self.results.append(result)
        self.total_rounds += result.rounds
        self.total_duration += duration

    def summary(self) -> str:
        lines = [
            "═══════════════════════════════════════════════════",
            "    MONTE CARLO VALIDATION REPORT",
            "═══════════════════════════════════════════════════",
            f"  Generated: {self.generated_at}",
            f"  Total Rounds: {self.total_rounds:,}",
            f"  Total Time: {self.total_duration:.1f}s",
            f"  Overall: {'✅ ALL PASS' if self.overall_pass else '❌ SOME FAILED'}",
            "",
        ]
        for r in self.results:
            status = "✅" if self.passed(r) else "❌"
            lines.append(
                f"  {status} {r.game_type:9s} | "
                f"theory={r.house_edge_theoretical * 100:.2f}% "
                f"measured={r.house_edge_measured * 100:.2f}% "
                f"hit={r.hit_rate * 100:.1f}%"
            )
        return "\n".join(lines)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps({
            "report_type": "Monte Carlo Validation",
            "generated_at": self.generated_at,
            "overall_pass": self.overall_pass,
            "tolerance": self.tolerance,
            "total_rounds": self.total_rounds,
            "total_duration_s": round(self.total_duration, 2),
            "games": [r.to_dict() for r in self.results],
        }, indent=indent)


# ═══════════════════════════════════════════════════════════════
# Simulators
# ═══════════════════════════════════════════════════════════════

def simulate_plinko(bet: float = 1.0, risk: str = "medium", rows: int = plinko.DEFAULT_ROWS,
                    count: int = 1000, rng: RandomSource = None) -> PlinkoSimulation:
    rng = rng or SeededRandom()
    table = plinko.generate_multipliers(risk, rows)
    trajectory = plinko.BinomialTrajectory(rng)
    hits = [0] * len(table)
    net = 0.0
    wins = 0
    for _ in range(count):
        drop = plinko.resolve_drop(bet, risk, rows, trajectory)
        hits[drop.bin_index] += 1
        net += drop.profit
        if drop.multiplier > 1:
            wins += 1

    by_mult: Counter = Counter()
    for i, n in enumerate(hits):
        by_mult[table[i]] += n
    common, common_hits = by_mult.most_common(1)[0] if count else (0.0, 0)

    return PlinkoSimulation(
        risk=risk.lower(), rows=plinko.clamp_rows(rows), drops=count, bet=bet,
        net_profit=net, win_rate=wins / count if count else 0.0,
        most_common_multiplier=common, most_common_hits=common_hits,
        bin_hits=hits, expected_payout_ratio=plinko.expected_payout_ratio(table),
    )


def simulate_coinflip(bet: float = 1.0, count: int = 1000, pick: str = "heads",
                      rng: RandomSource = None) -> CoinflipSimulation:
    rng = rng or SeededRandom()
    equity = peak = 0.0
    max_dd = 0.0
    wins = cur_win = cur_loss = best_win = best_loss = 0
    for _ in range(count):
        result = coinflip.play(bet, pick, rng)
        equity += result.profit
        if result.won:
            wins += 1
            cur_win, cur_loss = cur_win + 1, 0
            best_win = max(best_win, cur_win)
        else:
            cur_win, cur_loss = 0, cur_loss + 1
            best_loss = max(best_loss, cur_loss)
        peak = max(peak, equity)
        max_dd = max(max_dd, peak - equity)
    return CoinflipSimulation(
        flips=count, bet=bet, net_profit=equity, wins=wins, max_drawdown=max_dd,
        longest_win_streak=best_win, longest_loss_streak=best_loss,
    )


def simulate_crash(eject_at: float = 2.0, rounds: int = 100_000,
                   rng: RandomSource = None) -> CrashSimulation:
    rng = rng or SeededRandom()
    instant = survived = 0
    net = 0.0
    for _ in range(rounds):
        point = crash.generate_crash_point(rng)
        if point == 1.0:
            instant += 1
        if point >= eject_at:
            survived += 1
            net += eject_at - 1
        else:
            net -= 1
    return CrashSimulation(
        eject_at=eject_at,
        rounds=rounds,
        instant_crash_rate=instant / rounds if rounds else 0.0,
        measured_ev=net / rounds if rounds else 0.0,
        theoretical_ev=crash.expected_profit(eject_at),
        survival_measured=survived / rounds if rounds else 0.0,
        survival_theoretical=crash.survival_probability(eject_at),
    )


DEFAULT_CONFIGS = {
    "coinflip": {},
    "dice": {"risk": 50},
    "mines": {"mines": 3, "reveals": 3},
    "plinko": {"risk": "medium", "rows": 12},
    "blackjack": {},
    "crash": {"eject_at": 2.0},
    "market": {"side": "long", "leverage": 10, "hold_ticks": 20},
}


def validate_all(rounds: int = 50_000, seed: int = 42, tolerance: float = 0.02,
                 games: list[str] = None) -> ValidationReport:
    """Run every engine's simulate() on its default configuration."""
    report = ValidationReport(tolerance=tolerance)
    for game in games or list(GAME_ENGINES):
        engine = get_game_engine(game)
        config = engine.generate_config(**DEFAULT_CONFIGS.get(game, {}))
        t0 = time.time()
        result = engine.simulate(config, rounds=rounds, seed=seed)
        duration = time.time() - t0
        report.add(result, duration)
        logger.info(f"{game}: measured edge {result.house_edge_measured:.4f} "
                    f"(theory {result.house_edge_theoretical:.4f}) in {duration:.2f}s")
    return report


def to_dict(sim) -> dict:
    return asdict(sim)
