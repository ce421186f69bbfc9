"""
Crash — one crash point per round, multiplier grows as e^(k·t).

Crash point: with probability HOUSE_EDGE exactly 1.00, otherwise
(1 - edge) / (1 - u) floored at 1.00, from the same uniform draw u.
So P(crash ≥ m) = (1 - edge) / m for every m > 1, and any fixed eject
threshold has EV = -edge per unit bet.
"""

from __future__ import annotations

import math
from typing import Optional

from core.rng import RandomSource
from engines.base import BaseGameEngine

HOUSE_EDGE = 0.04
GROWTH_RATE = 0.05  # k, per second


def generate_crash_point(rng: RandomSource, house_edge: float = HOUSE_EDGE) -> float:
    u = rng.random()
    if u < house_edge:
        return 1.0
    return max(1.0, (1 - house_edge) / (1 - u))


def multiplier_at(t: float, k: float = GROWTH_RATE) -> float:
    return math.exp(k * max(0.0, t))


def time_to_reach(multiplier: float, k: float = GROWTH_RATE) -> float:
    return math.log(max(1.0, multiplier)) / k


def survival_probability(threshold: float, house_edge: float = HOUSE_EDGE) -> float:
    """P(crash point ≥ threshold)."""
    if threshold <= 1.0:
        return 1.0
    return (1 - house_edge) / threshold


def expected_profit(threshold: float, house_edge: float = HOUSE_EDGE) -> float:
    """Closed-form EV per unit bet when always ejecting at ``threshold``."""
    p = survival_probability(threshold, house_edge)
    return p * (threshold - 1) - (1 - p)


def crash_probability(multiplier: float) -> float:
    """Live risk meter: chance the round has crashed by ``multiplier`` (ignores the instant-crash mass)."""
    if multiplier <= 1.0:
        return 0.0
    return 1 - 1 / multiplier


class CrashRound:
    """Flight of one round, advanced by elapsed time.

    A crash point of 1.00 is an instant crash: the round is created crashed.

    When the auto-eject threshold and the crash point are both reached in the
    same tick, the lower one wins; an exact tie goes to the eject.
    """

    def __init__(self, bet: float, crash_point: float, auto_eject: Optional[float] = None,
                 k: float = GROWTH_RATE):
        if auto_eject is not None and auto_eject < 1.0:
            raise ValueError(f"Auto-eject must be at least 1.00x, got {auto_eject}")
        self.bet = bet
        self.crash_point = crash_point
        self.auto_eject = auto_eject
        self.k = k
        self.elapsed = 0.0
        self.multiplier = 1.0
        self.status = "flying"  # flying | ejected | crashed
        self.cashed_at: Optional[float] = None
        if crash_point <= 1.0:
            self.status = "crashed"

    @property
    def active(self) -> bool:
        return self.status == "flying"

    def tick(self, elapsed: float) -> str:
        """Move the clock to ``elapsed`` seconds and apply any trigger reached."""
        if not self.active:
            return self.status
        self.elapsed = max(self.elapsed, elapsed)
        current = multiplier_at(self.elapsed, self.k)

        eject_hit = self.auto_eject is not None and current >= self.auto_eject
        crash_hit = current >= self.crash_point
        if eject_hit and (not crash_hit or self.auto_eject <= self.crash_point):
            self.multiplier = self.auto_eject
            self._cash(self.auto_eject)
        elif crash_hit:
            self.multiplier = self.crash_point
            self.status = "crashed"
        else:
            self.multiplier = current
        return self.status

    def next_step(self, dt: float = 0.1) -> bool:
        """Advance by dt. Returns True while the round is still flying."""
        self.tick(self.elapsed + dt)
        return self.active

    def eject(self) -> Optional[float]:
        """Cash out at the current multiplier. None once the round is over."""
        if not self.active:
            return None
        self._cash(self.multiplier)
        return self.multiplier

    def _cash(self, at: float) -> None:
        self.cashed_at = at
        self.status = "ejected"

    def run_to_end(self, dt: float = 0.1) -> str:
        while self.next_step(dt):
            pass
        return self.status

    @property
    def payout(self) -> float:
        return self.bet * self.cashed_at if self.status == "ejected" else 0.0

    @property
    def profit(self) -> float:
        if self.status == "ejected":
            return self.bet * (self.cashed_at - 1)
        if self.status == "crashed":
            return -self.bet
        return 0.0


class CrashEngine(BaseGameEngine):
    game_type = "crash"
    display_name = "Crash"

    def generate_config(self, eject_at: float = 2.0, **kw) -> dict:
        return {
            "game_type": "crash",
            "house_edge": HOUSE_EDGE,
            "eject_at": max(1.01, float(eject_at)),
        }

    def compute_house_edge(self, config: dict) -> float:
        return -expected_profit(config.get("eject_at", 2.0), config.get("house_edge", HOUSE_EDGE))

    def simulate_round(self, config: dict, rng: RandomSource) -> float:
        target = config.get("eject_at", 2.0)
        crash_point = generate_crash_point(rng, config.get("house_edge", HOUSE_EDGE))
        return target if crash_point >= target else 0.0
