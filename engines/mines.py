"""
Mines — 5×5 board, uniform mine placement, compounding multiplier.

Each safe reveal multiplies the running multiplier by ``1 + mines/25``.
Hitting a mine loses the stake; cashing out (or clearing every safe cell)
pays ``bet * multiplier``.
"""

from __future__ import annotations

from typing import Optional

from core.rng import RandomSource
from engines.base import BaseGameEngine

GRID_SIZE = 5
TOTAL_CELLS = GRID_SIZE * GRID_SIZE
MIN_MINES = 1
MAX_MINES = TOTAL_CELLS - 1


def check_mine_count(mines: int) -> None:
    if not MIN_MINES <= mines <= MAX_MINES:
        raise ValueError(f"Mine count must be in [{MIN_MINES}, {MAX_MINES}], got {mines}")


def check_mine_cells(mines: int, mine_cells) -> frozenset[int]:
    """Validate an explicit layout: exactly ``mines`` distinct cells on the board."""
    check_mine_count(mines)
    cells = frozenset(mine_cells)
    if len(cells) != mines:
        raise ValueError(f"Expected {mines} mine cells, got {len(cells)}")
    if any(not 0 <= c < TOTAL_CELLS for c in cells):
        raise ValueError(f"Mine cells must be in [0, {TOTAL_CELLS - 1}], got {sorted(cells)}")
    return cells


def growth_factor(mines: int) -> float:
    check_mine_count(mines)
    return 1 + mines / TOTAL_CELLS


def multiplier_after(mines: int, reveals: int) -> float:
    return growth_factor(mines) ** reveals


def survival_probability(mines: int, reveals: int) -> float:
    """Chance that the first ``reveals`` picks are all safe."""
    check_mine_count(mines)
    safe = TOTAL_CELLS - mines
    if reveals > safe:
        return 0.0
    prob = 1.0
    for i in range(reveals):
        prob *= (safe - i) / (TOTAL_CELLS - i)
    return prob


def expected_value(mines: int, reveals: int) -> float:
    """EV per unit bet for a fixed cash-out-after-k-reveals plan."""
    return survival_probability(mines, reveals) * multiplier_after(mines, reveals) - 1


def place_mines(mines: int, rng: RandomSource) -> frozenset[int]:
    """Fisher-Yates shuffle of cell indices; the first ``mines`` are mined."""
    check_mine_count(mines)
    cells = list(range(TOTAL_CELLS))
    rng.shuffle(cells)
    return frozenset(cells[:mines])


class MinesRound:
    """One round's board. Acting on a finished round is a no-op."""

    def __init__(self, mines: int, rng: RandomSource = None,
                 mine_cells: Optional[frozenset[int]] = None):
        check_mine_count(mines)
        if mine_cells is None:
            if rng is None:
                raise ValueError("MinesRound needs a random source or explicit mine_cells")
            mine_cells = place_mines(mines, rng)
        else:
            mine_cells = check_mine_cells(mines, mine_cells)
        self.mines = mines
        self.mine_cells = frozenset(mine_cells)
        self.revealed: list[int] = []
        self.multiplier = 1.0
        self.status = "active"  # active | bust | cashout

    @property
    def active(self) -> bool:
        return self.status == "active"

    @property
    def safe_reveals(self) -> int:
        return sum(1 for c in self.revealed if c not in self.mine_cells)

    @property
    def safe_cells_left(self) -> int:
        return TOTAL_CELLS - self.mines - self.safe_reveals

    def mine_probability(self) -> float:
        """Chance the next revealed cell is a mine: remaining mines / unrevealed cells."""
        unrevealed = TOTAL_CELLS - len(self.revealed)
        if unrevealed <= 0:
            return 0.0
        remaining_mines = self.mines - sum(1 for c in self.revealed if c in self.mine_cells)
        return remaining_mines / unrevealed

    def reveal(self, cell: int) -> Optional[str]:
        """Open a cell. Returns "safe", "mine", or None when the move is not allowed."""
        if not self.active or not 0 <= cell < TOTAL_CELLS or cell in self.revealed:
            return None
        self.revealed.append(cell)
        if cell in self.mine_cells:
            self.status = "bust"
            self.multiplier = 0.0
            return "mine"
        self.multiplier *= growth_factor(self.mines)
        if self.safe_cells_left == 0:
            self.status = "cashout"
        return "safe"

    def cash_out(self) -> Optional[float]:
        """Lock in the current multiplier. None if the round already ended."""
        if not self.active:
            return None
        self.status = "cashout"
        return self.multiplier

    def payout(self, bet: float) -> float:
        return bet * self.multiplier if self.status == "cashout" else 0.0

    def unrevealed_safe_cells(self) -> list[int]:
        return [c for c in range(TOTAL_CELLS) if c not in self.mine_cells and c not in self.revealed]


class MinesEngine(BaseGameEngine):
    game_type = "mines"
    display_name = "Mines"

    def generate_config(self, mines: int = 3, reveals: int = 3, **kw) -> dict:
        mines = max(MIN_MINES, min(MAX_MINES, int(mines)))
        reveals = max(1, min(TOTAL_CELLS - mines, int(reveals)))
        return {
            "game_type": "mines",
            "mines": mines,
            "reveals": reveals,
            "growth_factor": growth_factor(mines),
        }

    def compute_house_edge(self, config: dict) -> float:
        return -expected_value(config["mines"], config["reveals"])

    def simulate_round(self, config: dict, rng: RandomSource) -> float:
        rnd = MinesRound(config["mines"], rng)
        for _ in range(config["reveals"]):
            # Cells are shuffled already, so opening them in index order is a uniform pick
            cell = next(c for c in range(TOTAL_CELLS) if c not in rnd.revealed)
            if rnd.reveal(cell) == "mine":
                return 0.0
        rnd.cash_out()
        return rnd.payout(1.0)
