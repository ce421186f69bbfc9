"""
PROBABILITY GAMES — Key-Value Storage

Client-local storage capability shared by the wallet, stats ledger and
achievement tracker. Stores depend on the KeyValueStorage interface only,
so tests run against MemoryStorage and the CLI against an SQLite file.

Usage:
    from core.storage import SQLiteStorage, PersistedState
    state = PersistedState(SQLiteStorage("probability_games.db"))
    with state.locked("pgv2_stats_v1"):
        raw = state.read("pgv2_stats_v1")
        state.write("pgv2_stats_v1", raw)
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from core.errors import StorageError

logger = logging.getLogger("probgames.storage")


# ═══════════════════════════════════════════════════════════════
# Backends
# ═══════════════════════════════════════════════════════════════

class KeyValueStorage(ABC):
    """String-to-string storage, one independent entry per key."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage(KeyValueStorage):
    """Dict-backed storage for tests and throwaway sessions."""

    def __init__(self, initial: dict | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT (datetime('now'))
)
"""


class SQLiteStorage(KeyValueStorage):
    """Single-table SQLite key-value store (one row per key)."""

    def __init__(self, db_path: str = "probability_games.db"):
        self.db_path = Path(db_path)
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path, timeout=10)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self.db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"SQLite failure on {self.db_path}: {e}") from e
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self.connection() as conn:
            conn.execute(SCHEMA_SQL)

    def get_item(self, key: str) -> Optional[str]:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with self.connection() as conn:
            conn.execute(
                """INSERT INTO kv_store (key, value, updated_at)
                   VALUES (?, ?, datetime('now'))
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                (key, value),
            )

    def remove_item(self, key: str) -> None:
        with self.connection() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))


# ═══════════════════════════════════════════════════════════════
# Session-safe access
# ═══════════════════════════════════════════════════════════════

class PersistedState:
    """Failure-tolerant front for a KeyValueStorage.

    Write failures (quota, disabled or locked storage) are logged and
    swallowed; the written value is kept in a session shadow so reads stay
    correct until the process exits. Read failures behave like a missing key.
    Each key has its own re-entrant lock so a read-modify-write can be made
    atomic with ``locked(key)``.
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self._shadow: dict[str, Optional[str]] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.RLock())
        with lock:
            yield

    def read(self, key: str) -> Optional[str]:
        if key in self._shadow:
            return self._shadow[key]
        try:
            return self.storage.get_item(key)
        except (StorageError, OSError) as e:
            logger.warning(f"Storage read failed for {key}: {e}")
            return None

    def write(self, key: str, value: str) -> bool:
        """Persist value. Returns False when only the session copy was kept."""
        try:
            self.storage.set_item(key, value)
        except (StorageError, OSError) as e:
            logger.warning(f"Storage write failed for {key}, keeping session copy: {e}")
            self._shadow[key] = value
            return False
        self._shadow.pop(key, None)
        return True

    def remove(self, key: str) -> None:
        self._shadow.pop(key, None)
        try:
            self.storage.remove_item(key)
        except (StorageError, OSError) as e:
            logger.warning(f"Storage remove failed for {key}: {e}")
            self._shadow[key] = None
