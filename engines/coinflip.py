"""Coin Flip — fair coin, fixed 2% edge baked into the win multiplier."""

from __future__ import annotations

from dataclasses import dataclass

from core.rng import RandomSource
from engines.base import BaseGameEngine, settle

WIN_PROBABILITY = 0.5
HOUSE_EDGE = 0.02
MULTIPLIER = (1 / WIN_PROBABILITY) * (1 - HOUSE_EDGE)  # 1.96
SIDES = ("heads", "tails")


@dataclass(frozen=True)
class FlipResult:
    pick: str
    landed: str
    won: bool
    multiplier: float
    payout: float
    profit: float


def expected_value() -> float:
    """EV per unit bet: p * multiplier - 1."""
    return WIN_PROBABILITY * MULTIPLIER - 1


def flip(rng: RandomSource) -> str:
    return "heads" if rng.random() < WIN_PROBABILITY else "tails"


def play(bet: float, pick: str, rng: RandomSource) -> FlipResult:
    if pick not in SIDES:
        raise ValueError(f"Unknown side: {pick}. Available: {list(SIDES)}")
    landed = flip(rng)
    won = landed == pick
    payout, profit = settle(bet, MULTIPLIER, won)
    return FlipResult(pick, landed, won, MULTIPLIER, payout, profit)


class CoinflipEngine(BaseGameEngine):
    game_type = "coinflip"
    display_name = "Coin Flip"

    def generate_config(self, pick: str = "heads", **kw) -> dict:
        return {
            "game_type": "coinflip",
            "pick": pick if pick in SIDES else "heads",
            "multiplier": MULTIPLIER,
            "house_edge": HOUSE_EDGE,
        }

    def compute_house_edge(self, config: dict) -> float:
        return -expected_value()

    def simulate_round(self, config: dict, rng: RandomSource) -> float:
        return play(1.0, config.get("pick", "heads"), rng).payout
