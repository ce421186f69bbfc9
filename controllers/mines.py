"""
PROBABILITY GAMES — Mines Controller
"""

from __future__ import annotations

from typing import Optional

from controllers.base import RoundController
from engines.mines import MinesRound, check_mine_cells, check_mine_count


class MinesController(RoundController):
    """A finished board stays on ``round`` until the next ``start()``; reveals
    and cash-outs on it are no-ops.
    """

    game = "mines"

    def __init__(self, session):
        super().__init__(session)
        self.round: Optional[MinesRound] = None
        self.bet = 0.0

    @property
    def active(self) -> bool:
        return self.round is not None and self.round.active

    def start(self, bet, mines: int = 3, mine_cells=None) -> Optional[MinesRound]:
        """Debit and lay out a new board. No-op while a round is running."""
        if self.active:
            return None
        check_mine_count(mines)
        if mine_cells is not None:
            mine_cells = check_mine_cells(mines, mine_cells)
        amount = self.debit(bet)
        self.bet = amount
        self.round = MinesRound(mines, self.rng, mine_cells=mine_cells)
        return self.round

    def reveal(self, cell: int) -> Optional[str]:
        if not self.active:
            return None
        result = self.round.reveal(cell)
        if result == "mine":
            self._settle("bust")
        elif result == "safe" and not self.round.active:
            # every safe cell opened: paid as a cash-out
            self._settle("cashout")
        return result

    def cash_out(self) -> Optional[float]:
        """Pay bet × multiplier. None when no round is running."""
        if not self.active:
            return None
        self.round.cash_out()
        return self._settle("cashout")

    def _settle(self, outcome: str) -> float:
        payout = self.round.payout(self.bet)
        self.credit(payout)
        profit = payout - self.bet
        self.stats.record_mines(bet=self.bet, profit=profit, outcome=outcome,
                                mines=self.round.mines, reveals=self.round.safe_reveals)
        self.finish(self.bet, profit)
        return payout
