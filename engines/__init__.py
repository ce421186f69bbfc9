"""
PROBABILITY GAMES — Outcome Engines

Math models for every game. Each engine exposes generate_config(),
compute_house_edge(), simulate_round() and simulate().

Usage:
    from engines import get_game_engine
    engine = get_game_engine("crash")
    config = engine.generate_config(eject_at=2.0)
    results = engine.simulate(config, rounds=100_000)
"""

from engines.coinflip import CoinflipEngine
from engines.dice import DiceEngine
from engines.mines import MinesEngine
from engines.plinko import PlinkoEngine
from engines.blackjack import BlackjackEngine
from engines.crash import CrashEngine
from engines.market import MarketEngine

GAME_ENGINES = {
    "coinflip": CoinflipEngine,
    "dice": DiceEngine,
    "mines": MinesEngine,
    "plinko": PlinkoEngine,
    "blackjack": BlackjackEngine,
    "crash": CrashEngine,
    "market": MarketEngine,
}

GAME_TYPES = list(GAME_ENGINES.keys())


def get_game_engine(game_type: str):
    """Get the math engine for a game type."""
    cls = GAME_ENGINES.get(game_type.lower())
    if cls is None:
        raise ValueError(f"Unknown game type: {game_type}. Available: {GAME_TYPES}")
    return cls()
