"""
PROBABILITY GAMES — Instant-Result Controllers

Coin flip, dice and plinko settle in a single step: debit, draw, credit,
record. Each supports auto-play through AutoPlayer.
"""

from __future__ import annotations

from typing import Optional

from controllers.base import AutoPlayer, RoundController
from engines import coinflip, dice, plinko
from engines.plinko import BinomialTrajectory, DropResult, TrajectoryProvider


class CoinflipController(RoundController):
    game = "coinflip"

    def play(self, bet, pick: str = "heads") -> coinflip.FlipResult:
        if pick not in coinflip.SIDES:
            raise ValueError(f"Unknown side: {pick}. Available: {list(coinflip.SIDES)}")
        amount = self.debit(bet)
        result = coinflip.play(amount, pick, self.rng)
        self.credit(result.payout)
        self.stats.record_coinflip(bet=amount, profit=result.profit, pick=pick, landed=result.landed)
        self.finish(amount, result.profit)
        return result

    def autoplay(self, bet: float, pick: str = "heads", count: Optional[int] = None) -> AutoPlayer:
        return AutoPlayer(self, lambda: self.play(bet, pick), bet, count)


class DiceController(RoundController):
    game = "dice"

    def play(self, bet, risk: int = 50) -> dice.RollResult:
        dice.house_edge(risk)  # rejects a bad risk before any debit
        amount = self.debit(bet)
        result = dice.play(amount, risk, self.rng)
        self.credit(result.payout)
        self.stats.record_dice(bet=amount, profit=result.profit, roll=result.roll, risk=risk)
        self.finish(amount, result.profit)
        return result

    def autoplay(self, bet: float, risk: int = 50, count: Optional[int] = None) -> AutoPlayer:
        return AutoPlayer(self, lambda: self.play(bet, risk), bet, count)


class PlinkoController(RoundController):
    game = "plinko"

    def __init__(self, session, risk: str = "medium", rows: int = plinko.DEFAULT_ROWS,
                 trajectory: TrajectoryProvider = None):
        super().__init__(session)
        self.trajectory = trajectory or BinomialTrajectory(session.rng)
        self.configure(risk, rows)

    def configure(self, risk: str, rows: int) -> list[float]:
        """Change tier/rows; regenerates the multiplier table."""
        self.multipliers = plinko.generate_multipliers(risk, rows)
        self.risk = risk.lower()
        self.rows = plinko.clamp_rows(rows)
        return self.multipliers

    def drop(self, bet) -> DropResult:
        amount = self.debit(bet)
        result = plinko.resolve_drop(amount, self.risk, self.rows, self.trajectory)
        self.credit(result.payout)
        self.stats.record_plinko(bet=amount, profit=result.profit,
                                 bin_index=result.bin_index, multiplier=result.multiplier)
        self.finish(amount, result.profit)
        return result

    def autoplay(self, bet: float, count: Optional[int] = None) -> AutoPlayer:
        return AutoPlayer(self, lambda: self.drop(bet), bet, count)
