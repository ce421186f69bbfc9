"""
PROBABILITY GAMES — Stats Ledger

Per-game and global counters, persisted as one JSON record. Every settlement
updates exactly one game section plus the global section in a single write,
then hands the written snapshot to the achievement engine.

Usage:
    from core.stats import StatsStore
    stats = StatsStore(state, achievements=engine)
    stats.record_dice(bet=100, profit=86, roll=51, risk=50)
    stats.get_stats()["dice"]["wins"]   # → 1
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Optional

from core.achievements import AchievementEngine
from core.events import (
    BlackjackEvent, CoinflipEvent, CrashEvent, DiceEvent, GameEvent,
    MarketEvent, MinesEvent, PlinkoEvent,
)
from core.storage import PersistedState

logger = logging.getLogger("probgames.stats")

STATS_KEY = "pgv2_stats_v1"

DEFAULT_STATS: dict = {
    "global": {"totalBets": 0, "totalProfit": 0, "totalGames": 0, "totalWins": 0},
    "coinflip": {"flips": 0, "totalBet": 0, "totalProfit": 0, "wins": 0, "losses": 0,
                 "heads": 0, "tails": 0},
    "dice": {"rolls": 0, "totalBet": 0, "totalProfit": 0, "wins": 0, "losses": 0},
    "mines": {"rounds": 0, "totalBet": 0, "totalProfit": 0, "cashouts": 0, "busts": 0},
    "plinko": {"drops": 0, "totalBet": 0, "totalProfit": 0, "wins": 0, "losses": 0},
    "blackjack": {"hands": 0, "totalBet": 0, "totalProfit": 0, "wins": 0, "losses": 0,
                  "pushes": 0, "blackjacks": 0},
    "crash": {"rounds": 0, "totalBet": 0, "totalProfit": 0, "wins": 0, "losses": 0,
              "maxMultiplier": 0},
    "market": {"trades": 0, "totalVolume": 0, "totalProfit": 0, "wins": 0, "losses": 0},
}

GAME_LABELS = {
    "coinflip": "Coin Flip",
    "dice": "Dice",
    "mines": "Mines",
    "plinko": "Plinko",
    "blackjack": "Blackjack",
    "crash": "Crash",
    "market": "Market",
}

# Level thresholds on total wagered: (upper bound, level, title)
LEVELS = [
    (1_000, 1, "Rookie"),
    (5_000, 2, "Grinder"),
    (20_000, 3, "Strategist"),
    (100_000, 4, "Pro"),
    (1_000_000, 5, "High Roller"),
]


def default_stats() -> dict:
    return copy.deepcopy(DEFAULT_STATS)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def merge_stats(stored: dict) -> dict:
    """Backfill defaults under a stored (possibly partial) record.

    Known sections are merged field by field, and a known counter holding a
    non-numeric value keeps its default. Unknown sections and fields are
    carried over untouched.
    """
    merged = default_stats()
    for section, values in stored.items():
        if section in merged and isinstance(values, dict):
            block = merged[section]
            for name, value in values.items():
                if name in block and not _is_number(value):
                    logger.debug(f"Ignoring non-numeric {section}.{name}={value!r}")
                    continue
                block[name] = value
        elif section not in merged:
            merged[section] = values
    return merged


def calculate_level(total_wagered: float) -> dict:
    for upper, level, title in LEVELS:
        if total_wagered < upper:
            return {"level": level, "title": title, "next": upper}
    return {"level": 6, "title": "Whale", "next": None}


class StatsStore:
    """Stats ledger over injected storage with achievement hook."""

    def __init__(self, state: PersistedState,
                 achievements: Optional[AchievementEngine] = None,
                 key: str = STATS_KEY):
        self.state = state
        self.achievements = achievements
        self.key = key

    # ── Load / save ──────────────────────────────────────────

    def get_stats(self) -> dict:
        raw = self.state.read(self.key)
        if not raw:
            return default_stats()
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Corrupt stats record, falling back to defaults")
            return default_stats()
        if not isinstance(parsed, dict):
            return default_stats()
        return merge_stats(parsed)

    def _save(self, stats: dict) -> None:
        self.state.write(self.key, json.dumps(stats))
        if self.achievements is not None:
            self.achievements.check_achievements(stats)

    def reset_stats(self) -> dict:
        fresh = default_stats()
        with self.state.locked(self.key):
            self._save(fresh)
        logger.info("Stats reset")
        return fresh

    # ── Recording ────────────────────────────────────────────

    def record_event(self, event: GameEvent) -> dict:
        """Apply one settled round to the ledger as a single write."""
        with self.state.locked(self.key):
            stats = self.get_stats()
            g = stats["global"]
            g["totalBets"] += event.bet
            g["totalProfit"] += event.profit
            g["totalGames"] += 1
            if event.profit > 0:
                g["totalWins"] += 1

            section = stats[event.game]
            _APPLIERS[event.game](section, event)
            self._save(stats)

        logger.debug(f"Recorded {event.game}: bet={event.bet:.2f} profit={event.profit:+.2f}")
        return stats

    def record_coinflip(self, bet: float, profit: float, pick: str = "heads",
                        landed: str = "heads") -> dict:
        return self.record_event(CoinflipEvent(bet=bet, profit=profit, pick=pick, landed=landed))

    def record_dice(self, bet: float, profit: float, roll: int = None,
                    risk: int = None) -> dict:
        return self.record_event(DiceEvent(bet=bet, profit=profit, roll=roll, risk=risk))

    def record_mines(self, bet: float, profit: float, outcome: str,
                     mines: int = None, reveals: int = 0) -> dict:
        return self.record_event(MinesEvent(bet=bet, profit=profit, outcome=outcome,
                                            mines=mines, reveals=reveals))

    def record_plinko(self, bet: float, profit: float, bin_index: int = None,
                      multiplier: float = None) -> dict:
        return self.record_event(PlinkoEvent(bet=bet, profit=profit, bin_index=bin_index,
                                             multiplier=multiplier))

    def record_blackjack(self, bet: float, profit: float, outcome: str,
                         is_blackjack: bool = False) -> dict:
        return self.record_event(BlackjackEvent(bet=bet, profit=profit, outcome=outcome,
                                                is_blackjack=is_blackjack))

    def record_crash(self, bet: float, profit: float, outcome: str,
                     multiplier: float = 1.0) -> dict:
        return self.record_event(CrashEvent(bet=bet, profit=profit, outcome=outcome,
                                            multiplier=multiplier))

    def record_market(self, bet: float, profit: float, outcome: str, side: str = None,
                      leverage: float = None, liquidated: bool = False) -> dict:
        return self.record_event(MarketEvent(bet=bet, profit=profit, outcome=outcome,
                                             side=side, leverage=leverage,
                                             liquidated=liquidated))

    # ── Reporting ────────────────────────────────────────────

    def summary(self) -> dict:
        """Hub overview: totals, win rate, level and most-wagered game."""
        stats = self.get_stats()
        g = stats["global"]
        games = g["totalGames"]
        top_key, top_bet = None, 0
        for key in GAME_LABELS:
            block = stats.get(key, {})
            wagered = block.get("totalBet", block.get("totalVolume", 0))
            if wagered > top_bet:
                top_key, top_bet = key, wagered
        return {
            "total_bets": g["totalBets"],
            "total_profit": g["totalProfit"],
            "total_games": games,
            "win_rate": (g["totalWins"] / games * 100) if games else 0.0,
            "top_game": GAME_LABELS[top_key] if top_key else None,
            "level": calculate_level(g["totalBets"]),
        }


# ═══════════════════════════════════════════════════════════════
# Per-game section updates
# ═══════════════════════════════════════════════════════════════

def _apply_coinflip(s: dict, e: CoinflipEvent) -> None:
    s["flips"] += 1
    s["totalBet"] += e.bet
    s["totalProfit"] += e.profit
    if e.profit > 0:
        s["wins"] += 1
    elif e.profit < 0:
        s["losses"] += 1
    s[e.landed] += 1


def _apply_dice(s: dict, e: DiceEvent) -> None:
    s["rolls"] += 1
    s["totalBet"] += e.bet
    s["totalProfit"] += e.profit
    if e.profit > 0:
        s["wins"] += 1
    if e.profit < 0:
        s["losses"] += 1


def _apply_mines(s: dict, e: MinesEvent) -> None:
    s["rounds"] += 1
    s["totalBet"] += e.bet
    s["totalProfit"] += e.profit
    if e.outcome == "cashout":
        s["cashouts"] += 1
    else:
        s["busts"] += 1


def _apply_plinko(s: dict, e: PlinkoEvent) -> None:
    s["drops"] += 1
    s["totalBet"] += e.bet
    s["totalProfit"] += e.profit
    if e.profit > 0:
        s["wins"] += 1
    if e.profit < 0:
        s["losses"] += 1


def _apply_blackjack(s: dict, e: BlackjackEvent) -> None:
    s["hands"] += 1
    s["totalBet"] += e.bet
    s["totalProfit"] += e.profit
    s[{"win": "wins", "loss": "losses", "push": "pushes"}[e.outcome]] += 1
    if e.is_blackjack:
        s["blackjacks"] += 1


def _apply_crash(s: dict, e: CrashEvent) -> None:
    s["rounds"] += 1
    s["totalBet"] += e.bet
    s["totalProfit"] += e.profit
    if e.outcome == "win":
        s["wins"] += 1
        if e.multiplier > s["maxMultiplier"]:
            s["maxMultiplier"] = e.multiplier
    else:
        s["losses"] += 1


def _apply_market(s: dict, e: MarketEvent) -> None:
    s["trades"] += 1
    s["totalVolume"] += e.bet
    s["totalProfit"] += e.profit
    if e.outcome == "win":
        s["wins"] += 1
    else:
        s["losses"] += 1


_APPLIERS = {
    "coinflip": _apply_coinflip,
    "dice": _apply_dice,
    "mines": _apply_mines,
    "plinko": _apply_plinko,
    "blackjack": _apply_blackjack,
    "crash": _apply_crash,
    "market": _apply_market,
}
