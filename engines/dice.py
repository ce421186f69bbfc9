"""Dice — roll 1..100 against a player-chosen risk; edge grows with risk."""

from __future__ import annotations

from dataclasses import dataclass

from core.rng import RandomSource
from engines.base import BaseGameEngine, settle

MIN_RISK = 1
MAX_RISK = 99
BASE_EDGE = 0.02
EDGE_SLOPE = 0.10


@dataclass(frozen=True)
class RollResult:
    roll: int
    risk: int
    won: bool
    multiplier: float
    payout: float
    profit: float


def _check_risk(risk: int) -> None:
    if isinstance(risk, bool) or not isinstance(risk, int):
        raise ValueError(f"Risk must be a whole percentage, got {risk!r}")
    if not MIN_RISK <= risk <= MAX_RISK:
        raise ValueError(f"Risk must be in [{MIN_RISK}, {MAX_RISK}], got {risk}")


def house_edge(risk: int) -> float:
    """2% at the safe end, approaching 12% as risk → 100."""
    _check_risk(risk)
    return BASE_EDGE + EDGE_SLOPE * (risk / 100)


def multiplier(risk: int) -> float:
    edge = house_edge(risk)
    return (1 / (1 - risk / 100)) * (1 - edge)


def win_probability(risk: int) -> float:
    _check_risk(risk)
    return 1 - risk / 100


def expected_value(risk: int) -> float:
    """EV per unit bet; equals -house_edge(risk)."""
    return win_probability(risk) * multiplier(risk) - 1


def roll(rng: RandomSource) -> int:
    return rng.randint(1, 100)


def play(bet: float, risk: int, rng: RandomSource) -> RollResult:
    """A roll at or below risk loses."""
    mult = multiplier(risk)
    value = roll(rng)
    won = value > risk
    payout, profit = settle(bet, mult, won)
    return RollResult(value, risk, won, mult, payout, profit)


class DiceEngine(BaseGameEngine):
    game_type = "dice"
    display_name = "Dice"

    def generate_config(self, risk: int = 50, **kw) -> dict:
        risk = max(MIN_RISK, min(MAX_RISK, int(risk)))
        return {
            "game_type": "dice",
            "risk": risk,
            "multiplier": multiplier(risk),
            "house_edge": house_edge(risk),
        }

    def compute_house_edge(self, config: dict) -> float:
        return -expected_value(config.get("risk", 50))

    def simulate_round(self, config: dict, rng: RandomSource) -> float:
        return play(1.0, config.get("risk", 50), rng).payout
