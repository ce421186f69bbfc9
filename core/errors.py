"""
PROBABILITY GAMES — Error Types

Invalid input is reported to the caller synchronously; storage failures are
caught by the storage layer and never escape to game code.
"""


class InvalidBetError(ValueError):
    """Bet is non-finite, not positive, or larger than the current balance."""

    def __init__(self, message: str, bet=None, balance=None):
        super().__init__(message)
        self.bet = bet
        self.balance = balance


class StorageError(RuntimeError):
    """A key-value backend could not complete a read or write."""
