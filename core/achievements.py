"""
PROBABILITY GAMES — Achievements

Fixed, ordered achievement definitions evaluated against the stats snapshot
after every stats write. Unlocked ids persist as a JSON array; an id is never
removed except by ``reset()``.

Usage:
    from core.achievements import AchievementEngine
    engine = AchievementEngine(state, notify=lambda ach: print(ach.title))
    newly = engine.check_achievements(stats)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from core.storage import PersistedState

logger = logging.getLogger("probgames.achievements")

ACHIEVEMENTS_KEY = "pgv2_achievements_v1"


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    check: Callable[[dict], bool]


def _counter(stats: dict, section: str, field: str) -> float:
    """Counter lookup where a missing section or field reads as 0."""
    block = stats.get(section)
    if not isinstance(block, dict):
        return 0
    value = block.get(field, 0)
    return value if isinstance(value, (int, float)) else 0


ACHIEVEMENTS: list[Achievement] = [
    Achievement(
        "first_blood", "First Blood", "Play your first game.",
        lambda s: _counter(s, "global", "totalGames") >= 1,
    ),
    Achievement(
        "high_roller", "High Roller", "Wager a total of 10,000 coins.",
        lambda s: _counter(s, "global", "totalBets") >= 10_000,
    ),
    Achievement(
        "hot_streak", "Hot Streak", "Win 50 games total.",
        lambda s: _counter(s, "global", "totalWins") >= 50,
    ),
    Achievement(
        "sniper", "Sniper", "Cash out at 10x or higher in Crash.",
        lambda s: _counter(s, "crash", "maxMultiplier") >= 10,
    ),
    Achievement(
        "diamond_hands", "Diamond Hands", "Survive 10 rounds of Crash.",
        lambda s: _counter(s, "crash", "wins") >= 10,
    ),
    Achievement(
        "mine_sweeper", "Mine Sweeper", "Cash out 10 times in Mines.",
        lambda s: _counter(s, "mines", "cashouts") >= 10,
    ),
    Achievement(
        "coin_master", "Coin Master", "Flip the coin 100 times.",
        lambda s: _counter(s, "coinflip", "flips") >= 100,
    ),
]


def log_unlock(achievement: Achievement) -> None:
    logger.info(f"Achievement unlocked: {achievement.title} ({achievement.id})")


class AchievementEngine:
    """Evaluates unlock predicates and persists the unlocked id set."""

    def __init__(self, state: PersistedState,
                 notify: Optional[Callable[[Achievement], None]] = None,
                 definitions: Optional[list[Achievement]] = None,
                 key: str = ACHIEVEMENTS_KEY):
        self.state = state
        self.notify = notify or log_unlock
        self.definitions = definitions if definitions is not None else ACHIEVEMENTS
        self.key = key

    def unlocked_ids(self) -> list[str]:
        raw = self.state.read(self.key)
        if not raw:
            return []
        try:
            ids = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Corrupt achievement set, treating as empty")
            return []
        if not isinstance(ids, list):
            return []
        return [i for i in ids if isinstance(i, str)]

    def check_achievements(self, stats: dict) -> list[Achievement]:
        """Unlock every definition whose predicate now holds.

        Notifications fire once per newly unlocked id; the set is written
        once per call, and only when something changed.
        """
        newly: list[Achievement] = []
        with self.state.locked(self.key):
            unlocked = self.unlocked_ids()
            for ach in self.definitions:
                if ach.id in unlocked:
                    continue
                try:
                    passed = bool(ach.check(stats))
                except (KeyError, TypeError, AttributeError):
                    passed = False
                if passed:
                    unlocked.append(ach.id)
                    newly.append(ach)
            if newly:
                self.state.write(self.key, json.dumps(unlocked))

        for ach in newly:
            self.notify(ach)
        return newly

    def get_status(self) -> list[dict]:
        unlocked = set(self.unlocked_ids())
        return [
            {
                "id": ach.id,
                "title": ach.title,
                "description": ach.description,
                "unlocked": ach.id in unlocked,
            }
            for ach in self.definitions
        ]

    def reset(self) -> None:
        logger.info("Achievements reset")
        self.state.write(self.key, json.dumps([]))
