"""
Plinko — symmetric exponential multiplier table over a binomial landing model.

The paid bin comes from the ball's final x-position on the board. Where that
position comes from is delegated to a TrajectoryProvider: a physics engine in
an interactive front end, or BinomialTrajectory (``rows`` fair left/right
bounces) for simulation and tests.

Usage:
    from engines.plinko import generate_multipliers, resolve_drop, BinomialTrajectory
    table = generate_multipliers("medium", 12)
    drop = resolve_drop(10, "medium", 12, BinomialTrajectory(rng))
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache

from core.rng import RandomSource
from engines.base import BaseGameEngine

MIN_ROWS = 8
MAX_ROWS = 16
DEFAULT_ROWS = 12

# (centerLow, edgeHigh) per tier; binomial expected payout < 1 for rows 8..16
RISK_TIERS = {
    "low": (0.4, 4.0),
    "medium": (0.2, 10.0),
    "high": (0.05, 20.0),
}


def clamp_rows(rows: int) -> int:
    return max(MIN_ROWS, min(MAX_ROWS, int(rows)))


def _tier(risk: str) -> tuple[float, float]:
    try:
        return RISK_TIERS[risk.lower()]
    except KeyError:
        raise ValueError(f"Unknown risk tier: {risk}. Available: {list(RISK_TIERS)}") from None


@lru_cache(maxsize=64)
def _table(risk: str, rows: int) -> tuple[float, ...]:
    center_low, edge_high = _tier(risk)
    center = rows / 2
    alpha = math.log(edge_high / center_low) / center
    return tuple(
        round(center_low * math.exp(alpha * abs(i - center)), 2)
        for i in range(rows + 1)
    )


def generate_multipliers(risk: str, rows: int) -> list[float]:
    """``rows + 1`` bin multipliers, symmetric about the centre bin."""
    return list(_table(risk.lower(), clamp_rows(rows)))


def bin_probabilities(rows: int) -> list[float]:
    return [math.comb(rows, k) / 2 ** rows for k in range(rows + 1)]


def expected_payout_ratio(multipliers: list[float]) -> float:
    """Expected return per unit bet under fair binomial landing."""
    rows = len(multipliers) - 1
    return sum(m * p for m, p in zip(multipliers, bin_probabilities(rows)))


# ═══════════════════════════════════════════════════════════════
# Board geometry
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BoardGeometry:
    width: float = 520.0
    height: float = 620.0
    top_offset: float = 60.0
    bin_height: float = 100.0
    side_margin: float = 55.0
    bottom_gap: float = 32.0

    def bin_width(self, bins: int) -> float:
        return self.width / bins

    def bin_index(self, x: float, bins: int) -> int:
        """Final x-position → paid bin, with x clamped into [0, width)."""
        x = min(max(x, 0.0), math.nextafter(self.width, 0.0))
        return min(int(x // self.bin_width(bins)), bins - 1)

    def bin_center(self, index: int, bins: int) -> float:
        return (index + 0.5) * self.bin_width(bins)

    def peg_positions(self, rows: int) -> list[list[tuple[float, float]]]:
        """Triangle of pegs: one at the top centre, ``rows`` on the last row."""
        bottom = self.height - self.bin_height - self.bottom_gap
        gap_y = (bottom - self.top_offset) / (rows - 1) if rows > 1 else 0.0
        gap_x = (self.width - 2 * self.side_margin) / (rows - 1) if rows > 1 else self.width / 2
        layout = []
        for row in range(rows):
            count = row + 1
            start_x = (self.width - (count - 1) * gap_x) / 2
            y = self.top_offset + row * gap_y
            layout.append([(start_x + i * gap_x, y) for i in range(count)])
        return layout


DEFAULT_BOARD = BoardGeometry()


class TrajectoryProvider(ABC):
    """Supplies the final x-position of a dropped ball."""

    @abstractmethod
    def final_x(self, rows: int, board: BoardGeometry) -> float:
        ...


class BinomialTrajectory(TrajectoryProvider):
    """``rows`` fair bounces; lands in the centre of bin ``sum(bounces)``."""

    def __init__(self, rng: RandomSource):
        self.rng = rng

    def final_x(self, rows: int, board: BoardGeometry) -> float:
        index = sum(self.rng.bit() for _ in range(rows))
        return board.bin_center(index, rows + 1)


class FixedTrajectory(TrajectoryProvider):
    """Replays recorded landing positions (e.g. from a physics run)."""

    def __init__(self, positions):
        self._positions = iter(positions)

    def final_x(self, rows: int, board: BoardGeometry) -> float:
        return next(self._positions)


@dataclass(frozen=True)
class DropResult:
    x: float
    bin_index: int
    multiplier: float
    payout: float
    profit: float


def resolve_drop(bet: float, risk: str, rows: int, trajectory: TrajectoryProvider,
                 board: BoardGeometry = DEFAULT_BOARD) -> DropResult:
    rows = clamp_rows(rows)
    table = generate_multipliers(risk, rows)
    x = trajectory.final_x(rows, board)
    index = board.bin_index(x, len(table))
    mult = table[index]
    payout = bet * mult
    return DropResult(x, index, mult, payout, payout - bet)


class PlinkoEngine(BaseGameEngine):
    game_type = "plinko"
    display_name = "Plinko"

    def generate_config(self, rows: int = DEFAULT_ROWS, risk: str = "medium", **kw) -> dict:
        rows = clamp_rows(rows)
        risk = risk.lower() if risk.lower() in RISK_TIERS else "medium"
        return {
            "game_type": "plinko",
            "rows": rows,
            "risk": risk,
            "multipliers": generate_multipliers(risk, rows),
        }

    def compute_house_edge(self, config: dict) -> float:
        return 1.0 - expected_payout_ratio(config["multipliers"])

    def simulate_round(self, config: dict, rng: RandomSource) -> float:
        index = sum(rng.bit() for _ in range(config["rows"]))
        return config["multipliers"][index]
