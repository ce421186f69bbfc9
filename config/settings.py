"""
Probability Games - Configuration

Environment-driven settings (optionally from a .env file) plus factories for
the storage backend, the session random source and the log handler.

    PG_STORAGE_BACKEND   sqlite | memory           (default: sqlite)
    PG_DB_PATH           SQLite key-value file      (default: ./probability_games.db)
    PG_DEFAULT_BALANCE   starting / reset balance   (default: 1000)
    PG_RNG_SEED          integer seed, unset = OS entropy
    PG_LOG_LEVEL         DEBUG / INFO / WARNING     (default: INFO)
    PG_AUTOPLAY_DELAY    seconds between paced auto-play steps (default: 0.26)
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent.parent


def _optional_int(name: str):
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logging.getLogger("probgames.config").warning(f"Ignoring non-integer {name}={raw!r}")
        return None


class GameConfig:

    # --- Persistence ---
    STORAGE_BACKEND = os.getenv("PG_STORAGE_BACKEND", "sqlite").lower()
    DB_PATH = os.getenv("PG_DB_PATH", "./probability_games.db")

    # --- Wallet ---
    DEFAULT_BALANCE = float(os.getenv("PG_DEFAULT_BALANCE", "1000"))

    # --- Randomness ---
    RNG_SEED = _optional_int("PG_RNG_SEED")

    # --- Pacing / logging ---
    AUTOPLAY_DELAY = float(os.getenv("PG_AUTOPLAY_DELAY", "0.26"))
    LOG_LEVEL = os.getenv("PG_LOG_LEVEL", "INFO").upper()


def build_storage(backend: str = None, db_path: str = None):
    """Key-value backend selected by PG_STORAGE_BACKEND."""
    from core.storage import MemoryStorage, SQLiteStorage

    backend = (backend or GameConfig.STORAGE_BACKEND).lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "sqlite":
        return SQLiteStorage(db_path or GameConfig.DB_PATH)
    raise ValueError(f"Unknown storage backend: {backend}. Available: ['sqlite', 'memory']")


def build_rng(seed: int = None):
    from core.rng import SeededRandom
    return SeededRandom(seed if seed is not None else GameConfig.RNG_SEED)


def configure_logging(level: str = None) -> logging.Logger:
    """Attach one stream handler to the ``probgames`` logger tree."""
    root = logging.getLogger("probgames")
    if not root.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(message)s", datefmt="%H:%M:%S"))
        root.addHandler(h)
    root.setLevel(getattr(logging, (level or GameConfig.LOG_LEVEL).upper(), logging.INFO))
    return root
