"""
PROBABILITY GAMES — Shared Wallet

One non-negative balance shared by every game, persisted under a single key.
Absent, unparsable, non-finite or negative stored values read as the default.

Usage:
    from core.storage import MemoryStorage, PersistedState
    from core.wallet import WalletStore
    wallet = WalletStore(PersistedState(MemoryStorage()))
    wallet.change_balance(-100)   # → 900.0
"""

from __future__ import annotations

import logging
import math

from core.storage import PersistedState

logger = logging.getLogger("probgames.wallet")

BALANCE_KEY = "pgv2_shared_balance_v1"
DEFAULT_BALANCE = 1000.0


class WalletStore:
    """Read-modify-write wallet over an injected storage capability."""

    def __init__(self, state: PersistedState, default_balance: float = DEFAULT_BALANCE,
                 key: str = BALANCE_KEY):
        self.state = state
        self.default_balance = float(default_balance)
        self.key = key

    def get_balance(self) -> float:
        raw = self.state.read(self.key)
        if not raw:
            return self.default_balance
        try:
            value = float(raw)
        except (TypeError, ValueError):
            logger.debug(f"Unparsable balance {raw!r}, using default")
            return self.default_balance
        if not math.isfinite(value) or value < 0:
            return self.default_balance
        return value

    def set_balance(self, value) -> float:
        try:
            safe = float(value)
        except (TypeError, ValueError):
            safe = 0.0
        if not math.isfinite(safe) or safe < 0:
            safe = 0.0
        self.state.write(self.key, repr(safe))
        return safe

    def change_balance(self, delta: float) -> float:
        with self.state.locked(self.key):
            return self.set_balance(self.get_balance() + delta)

    def reset_balance(self) -> float:
        logger.info(f"Wallet reset to {self.default_balance:,.2f}")
        return self.set_balance(self.default_balance)


def format_coins(value: float) -> str:
    """Thousands separators, at most two decimals (1234.5 → '1,234.5')."""
    text = f"{value:,.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
