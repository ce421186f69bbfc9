"""
PROBABILITY GAMES — Market Controller

One open position at a time over a live price feed. Margin is debited on
open; each ``next_step()`` ticks the price and liquidates the position once
its loss reaches the margin.
"""

from __future__ import annotations

from typing import Optional

from controllers.base import RoundController
from engines.market import Position, PriceFeed


class MarketController(RoundController):
    game = "market"

    def __init__(self, session, feed: PriceFeed = None):
        super().__init__(session)
        self.feed = feed or PriceFeed(session.rng)
        self.position: Optional[Position] = None
        self.last_close: Optional[dict] = None

    @property
    def price(self) -> float:
        return self.feed.price

    def open(self, side: str, margin, leverage: float = 10) -> Optional[Position]:
        if self.position is not None:
            return None
        Position(side, self.price, 1.0, leverage)  # rejects bad side/leverage before the debit
        amount = self.debit(margin)
        self.position = Position(side, self.price, amount, leverage)
        return self.position

    def unrealized_pnl(self) -> float:
        return self.position.pnl(self.price) if self.position else 0.0

    def next_step(self) -> float:
        """Tick the price; liquidate if the position's loss has reached its margin."""
        price = self.feed.tick()
        if self.position is not None and self.position.is_liquidated(price):
            self._settle(liquidated=True)
        return price

    def close(self) -> Optional[float]:
        """Close at the current price; returns the amount credited."""
        if self.position is None:
            return None
        if self.position.is_liquidated(self.price):
            return self._settle(liquidated=True)
        return self._settle(liquidated=False)

    def _settle(self, liquidated: bool) -> float:
        pos = self.position
        self.position = None
        if liquidated:
            returned, pnl = 0.0, -pos.margin
        else:
            pnl = pos.pnl(self.price)
            returned = pos.margin + pnl
        self.credit(returned)
        outcome = "win" if pnl > 0 else "loss"
        self.stats.record_market(bet=pos.margin, profit=pnl, outcome=outcome, side=pos.side,
                                 leverage=pos.leverage, liquidated=liquidated)
        self.last_close = {"side": pos.side, "entry": pos.entry, "exit": self.price,
                           "pnl": pnl, "liquidated": liquidated}
        self.finish(pos.margin, pnl)
        return returned
