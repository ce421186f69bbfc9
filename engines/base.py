"""
PROBABILITY GAMES — Base Outcome Engine

Shared interface for every game's math model. Each engine exposes
generate_config(), compute_house_edge(), simulate_round() and simulate().
All randomness goes through an injected RandomSource.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from core.rng import RandomSource, SeededRandom


@dataclass
class SimResult:
    """Monte Carlo results for one engine configuration."""
    game_type: str
    rounds: int
    house_edge_theoretical: float
    house_edge_measured: float
    avg_multiplier: float
    max_multiplier_hit: float
    hit_rate: float  # share of rounds that returned more than the stake
    total_wagered: float
    total_returned: float
    rtp: float  # 1 - house_edge_measured
    confidence_95: tuple = (0.0, 0.0)
    distribution: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "game_type": self.game_type,
            "rounds": self.rounds,
            "house_edge_theoretical": round(self.house_edge_theoretical, 6),
            "house_edge_measured": round(self.house_edge_measured, 6),
            "rtp": round(self.rtp, 4),
            "avg_multiplier": round(self.avg_multiplier, 4),
            "max_multiplier_hit": round(self.max_multiplier_hit, 2),
            "hit_rate": round(self.hit_rate, 4),
            "total_wagered": round(self.total_wagered, 2),
            "total_returned": round(self.total_returned, 2),
            "confidence_95": [round(x, 6) for x in self.confidence_95],
            "distribution": self.distribution,
        }


def _bucket(mult: float) -> str:
    if mult == 0:
        return "0x"
    if mult < 1:
        return "<1x"
    if mult < 2:
        return "1-2x"
    if mult < 5:
        return "2-5x"
    if mult < 10:
        return "5-10x"
    if mult < 50:
        return "10-50x"
    return "50x+"


class BaseGameEngine(ABC):
    """Abstract base for all game outcome engines."""

    game_type: str = "base"
    display_name: str = "Base Game"

    @abstractmethod
    def generate_config(self, **kwargs) -> dict:
        """Build a validated configuration dict from parameters."""
        ...

    @abstractmethod
    def compute_house_edge(self, config: dict) -> float:
        """Theoretical house edge (1 - expected return per unit staked)."""
        ...

    @abstractmethod
    def simulate_round(self, config: dict, rng: RandomSource) -> float:
        """Play one round for a unit bet. Returns the amount paid back (0 = loss)."""
        ...

    def simulate_stake(self, config: dict, rng: RandomSource) -> tuple[float, float]:
        """(wagered, returned) for one round. Override when the stake can grow mid-round."""
        return 1.0, self.simulate_round(config, rng)

    def simulate(self, config: dict, rounds: int = 100_000, seed: int = 42,
                 rng: RandomSource = None) -> SimResult:
        """Run a Monte Carlo simulation."""
        rng = rng or SeededRandom(seed)

        total_wagered = 0.0
        total_returned = 0.0
        sum_sq = 0.0
        hits = 0
        max_mult = 0.0
        buckets: dict[str, int] = {}

        for _ in range(rounds):
            wagered, returned = self.simulate_stake(config, rng)
            total_wagered += wagered
            total_returned += returned
            ratio = returned / wagered if wagered else 0.0
            sum_sq += (returned - wagered) ** 2
            if returned > wagered:
                hits += 1
            max_mult = max(max_mult, ratio)
            key = _bucket(ratio)
            buckets[key] = buckets.get(key, 0) + 1

        rtp = total_returned / total_wagered if total_wagered > 0 else 0.0
        he_measured = 1 - rtp
        avg_mult = total_returned / rounds if rounds else 0.0

        # 95% interval on the per-round net result, scaled to the stake
        if rounds > 1 and total_wagered > 0:
            mean_net = (total_returned - total_wagered) / rounds
            variance = max(0.0, sum_sq / rounds - mean_net ** 2)
            std_err = math.sqrt(variance / rounds) * rounds / total_wagered
        else:
            std_err = 0.0
        ci = (he_measured - 1.96 * std_err, he_measured + 1.96 * std_err)

        return SimResult(
            game_type=self.game_type,
            rounds=rounds,
            house_edge_theoretical=self.compute_house_edge(config),
            house_edge_measured=he_measured,
            avg_multiplier=avg_mult,
            max_multiplier_hit=max_mult,
            hit_rate=hits / rounds if rounds else 0.0,
            total_wagered=total_wagered,
            total_returned=total_returned,
            rtp=rtp,
            confidence_95=ci,
            distribution={k: round(v / rounds, 4) for k, v in sorted(buckets.items())},
        )

    def get_metadata(self) -> dict:
        return {
            "game_type": self.game_type,
            "display_name": self.display_name,
        }


def settle(bet: float, multiplier: float, won: bool) -> tuple[float, float]:
    """(payout, profit) for a stake settled at multiplier, or lost."""
    if won:
        payout = bet * multiplier
        return payout, payout - bet
    return 0.0, -bet
