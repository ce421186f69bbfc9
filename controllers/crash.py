"""
PROBABILITY GAMES — Crash Controller

The crash point is drawn at round start, after the stake is taken. The
caller advances the flight with ``next_step(dt)`` and may ``eject()`` at any
point; an optional auto-eject threshold settles on its own.
"""

from __future__ import annotations

from typing import Optional

from controllers.base import RoundController
from engines.crash import CrashRound, generate_crash_point


class CrashController(RoundController):
    """The settled round stays on ``round`` for inspection until the next
    ``start()`` replaces it; actions on it are no-ops.
    """

    game = "crash"

    def __init__(self, session):
        super().__init__(session)
        self.round: Optional[CrashRound] = None
        self.history: list[float] = []
        self._recorded = True

    @property
    def active(self) -> bool:
        return self.round is not None and self.round.active

    def start(self, bet, auto_eject: Optional[float] = None) -> Optional[CrashRound]:
        if self.active:
            return None
        if auto_eject is not None and auto_eject < 1.0:
            raise ValueError(f"Auto-eject must be at least 1.00x, got {auto_eject}")
        amount = self.debit(bet)
        self.round = CrashRound(amount, generate_crash_point(self.rng), auto_eject=auto_eject)
        self._recorded = False
        self._settle_if_done()
        return self.round

    def next_step(self, dt: float = 0.1) -> bool:
        """Advance the flight. Returns True while it is still in the air."""
        if not self.active:
            return False
        flying = self.round.next_step(dt)
        self._settle_if_done()
        return flying

    def eject(self) -> Optional[float]:
        if not self.active:
            return None
        at = self.round.eject()
        self._settle_if_done()
        return at

    def run(self, dt: float = 0.1) -> CrashRound:
        while self.next_step(dt):
            pass
        return self.round

    def _settle_if_done(self) -> None:
        rnd = self.round
        if rnd is None or rnd.active or self._recorded:
            return
        self._recorded = True
        self.history.insert(0, rnd.crash_point)
        del self.history[20:]
        self.credit(rnd.payout)
        if rnd.status == "ejected":
            outcome = "win" if rnd.profit > 0 else "loss"
            self.stats.record_crash(bet=rnd.bet, profit=rnd.profit, outcome=outcome,
                                    multiplier=rnd.cashed_at)
        else:
            self.stats.record_crash(bet=rnd.bet, profit=rnd.profit, outcome="loss",
                                    multiplier=rnd.crash_point)
        self.finish(rnd.bet, rnd.profit)
