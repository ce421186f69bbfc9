"""
PROBABILITY GAMES — Settlement Events

One event type per game, each carrying exactly the fields that game settles
with. ``GameEvent`` is a discriminated union on ``game`` so the stats ledger
dispatches through a single ``record_event``.

Usage:
    from core.events import DiceEvent, parse_event
    event = DiceEvent(bet=100, profit=86, roll=51, risk=50)
    same = parse_event({"game": "dice", "bet": 100, "profit": 86})
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _EventBase(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    bet: float = Field(gt=0)
    profit: float


class CoinflipEvent(_EventBase):
    game: Literal["coinflip"] = "coinflip"
    pick: Literal["heads", "tails"] = "heads"
    landed: Literal["heads", "tails"] = "heads"


class DiceEvent(_EventBase):
    game: Literal["dice"] = "dice"
    roll: Optional[int] = Field(None, ge=1, le=100)
    risk: Optional[int] = Field(None, ge=1, le=99)


class MinesEvent(_EventBase):
    game: Literal["mines"] = "mines"
    outcome: Literal["cashout", "bust"]
    mines: Optional[int] = None
    reveals: int = 0


class PlinkoEvent(_EventBase):
    game: Literal["plinko"] = "plinko"
    bin_index: Optional[int] = None
    multiplier: Optional[float] = None


class BlackjackEvent(_EventBase):
    game: Literal["blackjack"] = "blackjack"
    outcome: Literal["win", "loss", "push"]
    is_blackjack: bool = False


class CrashEvent(_EventBase):
    game: Literal["crash"] = "crash"
    outcome: Literal["win", "loss"]
    multiplier: float = Field(1.0, ge=1.0)


class MarketEvent(_EventBase):
    game: Literal["market"] = "market"
    outcome: Literal["win", "loss"]
    side: Optional[Literal["long", "short"]] = None
    leverage: Optional[float] = None
    liquidated: bool = False


GameEvent = Annotated[
    Union[CoinflipEvent, DiceEvent, MinesEvent, PlinkoEvent,
          BlackjackEvent, CrashEvent, MarketEvent],
    Field(discriminator="game"),
]

_event_adapter = TypeAdapter(GameEvent)


def parse_event(data: dict) -> GameEvent:
    """Validate a raw mapping into the matching event variant."""
    return _event_adapter.validate_python(data)
