"""
Market — zero-drift multiplicative random walk and leveraged positions.

    price' = price · (1 + (U − 0.5) · VOLATILITY / 100), floored at 0.01

A position locks entry, margin and leverage; size = margin · leverage.
Unrealized PnL = ±(price − entry) / entry · size. Once PnL ≤ −margin the
position is liquidated and the margin is gone; otherwise closing returns
margin + PnL.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.rng import RandomSource
from engines.base import BaseGameEngine

VOLATILITY = 0.2
PRICE_FLOOR = 0.01
START_PRICE = 100.0
MAX_HISTORY = 200
SMA_FAST = 10
SMA_SLOW = 50
SIDES = ("long", "short")


def next_price(price: float, rng: RandomSource, volatility: float = VOLATILITY) -> float:
    change = (rng.random() - 0.5) * volatility
    return max(PRICE_FLOOR, price * (1 + change / 100))


def simple_moving_average(history: list[float], period: int) -> list[Optional[float]]:
    """SMA aligned with history; None until ``period`` points exist."""
    if period < 1:
        raise ValueError(f"SMA period must be positive, got {period}")
    out: list[Optional[float]] = []
    window = 0.0
    for i, p in enumerate(history):
        window += p
        if i >= period:
            window -= history[i - period]
        out.append(window / period if i >= period - 1 else None)
    return out


class PriceFeed:
    """Rolling price history driven by the random walk."""

    def __init__(self, rng: RandomSource, start: float = START_PRICE, max_history: int = MAX_HISTORY):
        self.rng = rng
        self.price = start
        self.max_history = max_history
        self.history: list[float] = [start] * max_history

    def tick(self) -> float:
        self.price = next_price(self.price, self.rng)
        self.history.append(self.price)
        if len(self.history) > self.max_history:
            del self.history[0]
        return self.price

    def indicators(self) -> dict:
        return {
            "sma_fast": simple_moving_average(self.history, SMA_FAST)[-1],
            "sma_slow": simple_moving_average(self.history, SMA_SLOW)[-1],
        }


@dataclass
class Position:
    side: str
    entry: float
    margin: float
    leverage: float

    def __post_init__(self):
        if self.side not in SIDES:
            raise ValueError(f"Unknown side: {self.side}. Available: {list(SIDES)}")
        if self.leverage < 1:
            raise ValueError(f"Leverage must be at least 1, got {self.leverage}")
        if self.margin <= 0:
            raise ValueError(f"Margin must be positive, got {self.margin}")

    @property
    def size(self) -> float:
        return self.margin * self.leverage

    @property
    def liquidation_price(self) -> float:
        if self.side == "long":
            return self.entry * (1 - 1 / self.leverage)
        return self.entry * (1 + 1 / self.leverage)

    def pnl(self, price: float) -> float:
        pct = (price - self.entry) / self.entry
        return pct * self.size if self.side == "long" else -pct * self.size

    def is_liquidated(self, price: float) -> bool:
        return self.pnl(price) <= -self.margin

    def close_value(self, price: float) -> float:
        """Amount returned to the wallet when closing at ``price``."""
        if self.is_liquidated(price):
            return 0.0
        return self.margin + self.pnl(price)


class MarketEngine(BaseGameEngine):
    game_type = "market"
    display_name = "Market"

    def generate_config(self, side: str = "long", leverage: float = 10, hold_ticks: int = 50, **kw) -> dict:
        return {
            "game_type": "market",
            "side": side if side in SIDES else "long",
            "leverage": max(1.0, float(leverage)),
            "hold_ticks": max(1, int(hold_ticks)),
        }

    def compute_house_edge(self, config: dict) -> float:
        # Zero-drift walk: holding for a fixed number of ticks is a fair bet
        return 0.0

    def simulate_round(self, config: dict, rng: RandomSource) -> float:
        price = START_PRICE
        pos = Position(config["side"], price, 1.0, config["leverage"])
        for _ in range(config["hold_ticks"]):
            price = next_price(price, rng)
            if pos.is_liquidated(price):
                return 0.0
        return pos.close_value(price)
