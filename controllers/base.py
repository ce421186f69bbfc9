"""
PROBABILITY GAMES — Round Controller Base

Shared plumbing for every game's round controller: the session bundle
(wallet, stats, random source), bet validation, debit-before-reveal, a
per-session streak tally, and the auto-play step scheduler.

Usage:
    from controllers.base import GameSession
    session = GameSession.in_memory(rng=SeededRandom(7))
    dice = DiceController(session)
    dice.play(bet=100, risk=50)
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from core.achievements import AchievementEngine
from core.errors import InvalidBetError
from core.rng import RandomSource, SeededRandom
from core.stats import StatsStore
from core.storage import KeyValueStorage, MemoryStorage, PersistedState
from core.wallet import DEFAULT_BALANCE, WalletStore

logger = logging.getLogger("probgames.rounds")


# ═══════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════

@dataclass
class GameSession:
    wallet: WalletStore
    stats: StatsStore
    achievements: AchievementEngine
    rng: RandomSource

    @classmethod
    def create(cls, storage: KeyValueStorage, rng: RandomSource = None,
               notify: Callable = None, default_balance: float = DEFAULT_BALANCE) -> "GameSession":
        state = PersistedState(storage)
        achievements = AchievementEngine(state, notify=notify)
        return cls(
            wallet=WalletStore(state, default_balance=default_balance),
            stats=StatsStore(state, achievements=achievements),
            achievements=achievements,
            rng=rng or SeededRandom(),
        )

    @classmethod
    def in_memory(cls, rng: RandomSource = None, notify: Callable = None,
                  balance: float = None) -> "GameSession":
        session = cls.create(MemoryStorage(), rng=rng, notify=notify)
        if balance is not None:
            session.wallet.set_balance(balance)
        return session

    @classmethod
    def from_settings(cls, notify: Callable = None) -> "GameSession":
        from config.settings import GameConfig, build_rng, build_storage
        return cls.create(build_storage(), rng=build_rng(), notify=notify,
                          default_balance=GameConfig.DEFAULT_BALANCE)


def validate_bet(bet, balance: float) -> float:
    """Bet must be a positive finite number no larger than the balance."""
    try:
        value = float(bet)
    except (TypeError, ValueError):
        raise InvalidBetError(f"Bet must be a number, got {bet!r}", bet=bet, balance=balance) from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidBetError("Bet must be a positive amount", bet=bet, balance=balance)
    if value > balance:
        raise InvalidBetError(
            f"Bet {value:,.2f} exceeds balance {balance:,.2f}", bet=bet, balance=balance,
        )
    return value


class RoundController:
    """Wallet-facing half of a game: debit, credit, record."""

    game: str = "base"

    def __init__(self, session: GameSession):
        self.session = session
        self.streaks = StreakTracker()

    @property
    def wallet(self) -> WalletStore:
        return self.session.wallet

    @property
    def stats(self) -> StatsStore:
        return self.session.stats

    @property
    def rng(self) -> RandomSource:
        return self.session.rng

    @property
    def balance(self) -> float:
        return self.wallet.get_balance()

    def debit(self, bet) -> float:
        """Validate and take the stake before any outcome is revealed."""
        amount = validate_bet(bet, self.balance)
        self.wallet.change_balance(-amount)
        return amount

    def credit(self, amount: float) -> float:
        if amount > 0:
            return self.wallet.change_balance(amount)
        return self.balance

    def finish(self, bet: float, profit: float) -> None:
        self.streaks.record(profit)
        logger.info(f"{self.game}: bet={bet:,.2f} profit={profit:+,.2f} balance={self.balance:,.2f}")


# ═══════════════════════════════════════════════════════════════
# Session tallies
# ═══════════════════════════════════════════════════════════════

@dataclass
class StreakTracker:
    rounds: int = 0
    wins: int = 0
    losses: int = 0
    net_profit: float = 0.0
    current: int = 0  # >0 win streak, <0 loss streak
    best_win_streak: int = 0
    best_loss_streak: int = 0
    history: list = field(default_factory=list)
    max_history: int = 20

    def record(self, profit: float) -> None:
        self.rounds += 1
        self.net_profit += profit
        if profit > 0:
            self.wins += 1
            self.current = self.current + 1 if self.current > 0 else 1
            self.best_win_streak = max(self.best_win_streak, self.current)
        elif profit < 0:
            self.losses += 1
            self.current = self.current - 1 if self.current < 0 else -1
            self.best_loss_streak = max(self.best_loss_streak, -self.current)
        else:
            self.current = 0
        self.history.insert(0, profit)
        del self.history[self.max_history:]

    @property
    def win_rate(self) -> float:
        return self.wins / self.rounds * 100 if self.rounds else 0.0


# ═══════════════════════════════════════════════════════════════
# Auto-play
# ═══════════════════════════════════════════════════════════════

class AutoPlayer:
    """Step scheduler for repeated rounds.

    ``next_step()`` plays one round unless the stop flag is set, the round
    count is used up, or the balance no longer covers the bet. Pacing is the
    caller's business; ``run_async`` sleeps between steps.
    """

    def __init__(self, controller: RoundController, play: Callable[[], Any],
                 bet: float, count: Optional[int] = None):
        self.controller = controller
        self.play = play
        self.bet = bet
        self.count = count
        self.played = 0
        self.stopped = False
        self.stop_reason: Optional[str] = None
        self.results: list = []

    def stop(self, reason: str = "stopped") -> None:
        if not self.stopped:
            self.stopped = True
            self.stop_reason = reason

    def can_continue(self) -> bool:
        if self.stopped:
            return False
        if self.count is not None and self.played >= self.count:
            self.stop("count reached")
            return False
        if self.bet > self.controller.balance:
            self.stop("insufficient balance")
            return False
        return True

    def next_step(self):
        """Play one round. Returns its result, or None once auto-play has ended."""
        if not self.can_continue():
            return None
        result = self.play()
        self.played += 1
        self.results.append(result)
        return result

    def run(self) -> list:
        while self.next_step() is not None:
            pass
        return self.results

    async def run_async(self, delay: float = None) -> list:
        if delay is None:
            from config.settings import GameConfig
            delay = GameConfig.AUTOPLAY_DELAY
        while self.next_step() is not None:
            await asyncio.sleep(delay)
        return self.results
