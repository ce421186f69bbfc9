"""
PROBABILITY GAMES — Blackjack Engine

Hand evaluation, a continuously reshuffled 52-card deck, the round state
machine and the basic-strategy advisor. The engine knows nothing about the
wallet: it tracks the stake and reports payout/profit at settlement.

Round flow:
    IDLE → DEALT → PLAYER_ACTING → DEALER_ACTING → SETTLED → IDLE
    A natural on either side after the deal goes straight to SETTLED.

Usage:
    from engines.blackjack import BlackjackRound, Deck
    rnd = BlackjackRound(bet=50, deck=Deck(rng))
    rnd.deal()
    rnd.next_step()          # naturals check
    rnd.stand()
    while rnd.next_step():   # dealer draws one card per step
        pass
    rnd.outcome, rnd.profit
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.rng import RandomSource
from engines.base import BaseGameEngine

logger = logging.getLogger("probgames.blackjack")

RANKS = ["A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K"]
SUITS = ["♠", "♥", "♦", "♣"]

RESHUFFLE_BELOW = 15
DEALER_STANDS_AT = 17
BLACKJACK_PAYS = 1.5


# ═══════════════════════════════════════════════════════════════
# Cards & hands
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Card:
    rank: str
    suit: str = "♠"

    def __post_init__(self):
        if self.rank not in RANKS:
            raise ValueError(f"Unknown rank: {self.rank}")

    @property
    def value(self) -> int:
        return card_value(self.rank)

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"


def card_value(rank: str) -> int:
    if rank == "A":
        return 11
    if rank in ("J", "Q", "K"):
        return 10
    return int(rank)


def _evaluate(hand) -> tuple[int, int]:
    """(total, aces still counted as 11) after demoting aces while over 21."""
    total = sum(card_value(c.rank) for c in hand)
    soft_aces = sum(1 for c in hand if c.rank == "A")
    while total > 21 and soft_aces > 0:
        total -= 10
        soft_aces -= 1
    return total, soft_aces


def hand_value(hand) -> int:
    return _evaluate(hand)[0]


def is_soft(hand) -> bool:
    """At least one ace still valued at 11 in the current total."""
    return _evaluate(hand)[1] > 0


def is_blackjack(hand) -> bool:
    return len(hand) == 2 and hand_value(hand) == 21


def is_bust(hand) -> bool:
    return hand_value(hand) > 21


def format_hand(hand) -> str:
    return " ".join(str(c) for c in hand)


class Deck:
    """Single 52-card deck, rebuilt and reshuffled whenever fewer than 15 remain.

    Cards are drawn from the end of the list. A deck built with
    ``Deck.stacked`` deals a fixed order and never reshuffles.
    """

    def __init__(self, rng: Optional[RandomSource] = None, reshuffle_below: int = RESHUFFLE_BELOW):
        self.rng = rng
        self.reshuffle_below = reshuffle_below
        self.cards: list[Card] = []
        self.shuffles = 0
        if rng is not None:
            self._rebuild()

    @classmethod
    def stacked(cls, order) -> "Deck":
        """Deck that deals ``order`` front to back."""
        deck = cls(rng=None, reshuffle_below=0)
        deck.cards = [c if isinstance(c, Card) else Card(c) for c in reversed(list(order))]
        return deck

    @staticmethod
    def fresh() -> list[Card]:
        return [Card(rank, suit) for suit in SUITS for rank in RANKS]

    def _rebuild(self) -> None:
        self.cards = self.fresh()
        self.rng.shuffle(self.cards)
        self.shuffles += 1
        logger.debug(f"Deck reshuffled (#{self.shuffles})")

    def ensure(self) -> None:
        if self.rng is not None and len(self.cards) < self.reshuffle_below:
            self._rebuild()

    def draw(self) -> Card:
        self.ensure()
        if not self.cards:
            raise IndexError("Stacked deck is out of cards")
        return self.cards.pop()

    def __len__(self) -> int:
        return len(self.cards)


# ═══════════════════════════════════════════════════════════════
# Basic strategy advisor
# ═══════════════════════════════════════════════════════════════

class Move(str, Enum):
    HIT = "H"
    STAND = "S"
    DOUBLE = "D"


def basic_strategy(total: int, soft: bool, dealer_up: int, can_double: bool) -> Move:
    """Advised move for a player total against the dealer's up-card value (Ace = 11).

    Informational only; never consulted by settlement.
    """
    small = 3 <= dealer_up <= 6

    if soft:
        if total >= 19:
            return Move.STAND
        if total == 18:
            if small:
                return Move.DOUBLE if can_double else Move.HIT
            if dealer_up in (2, 7, 8):
                return Move.STAND
            return Move.HIT
        if small and can_double:
            return Move.DOUBLE
        return Move.HIT

    if total >= 17:
        return Move.STAND
    if 13 <= total <= 16:
        return Move.STAND if 2 <= dealer_up <= 6 else Move.HIT
    if total == 12:
        return Move.STAND if 4 <= dealer_up <= 6 else Move.HIT
    if total == 11:
        return Move.DOUBLE if can_double else Move.HIT
    if total == 10:
        return Move.DOUBLE if can_double and dealer_up < 10 else Move.HIT
    if total == 9:
        return Move.DOUBLE if can_double and small else Move.HIT
    return Move.HIT


def strategy_chart() -> dict[str, dict[int, str]]:
    """Advisor output for hard 5–20 and soft 13–20 against dealer 2–11 (two-card hands)."""
    ups = list(range(2, 12))
    chart: dict[str, dict[int, str]] = {}
    for total in range(5, 21):
        chart[f"H{total}"] = {u: basic_strategy(total, False, u, True).value for u in ups}
    for total in range(13, 21):
        chart[f"S{total}"] = {u: basic_strategy(total, True, u, True).value for u in ups}
    return chart


# ═══════════════════════════════════════════════════════════════
# Round state machine
# ═══════════════════════════════════════════════════════════════

class Phase(str, Enum):
    IDLE = "idle"
    DEALT = "dealt"
    PLAYER_ACTING = "player_acting"
    DEALER_ACTING = "dealer_acting"
    SETTLED = "settled"


class BlackjackRound:
    """One hand from deal to settlement. Illegal actions are no-ops."""

    def __init__(self, bet: float, deck: Deck):
        self.bet = bet
        self.stake = bet
        self.deck = deck
        self.player: list[Card] = []
        self.dealer: list[Card] = []
        self.phase = Phase.IDLE
        self.dealer_revealed = False
        self.doubled = False
        self.outcome: Optional[str] = None  # blackjack | win | loss | push
        self.player_bust = False
        self.dealer_bust = False

    # ── Views ──

    @property
    def player_value(self) -> int:
        return hand_value(self.player)

    @property
    def dealer_value(self) -> int:
        return hand_value(self.dealer)

    @property
    def dealer_up_value(self) -> int:
        return self.dealer[0].value if self.dealer else 0

    @property
    def player_natural(self) -> bool:
        return is_blackjack(self.player)

    @property
    def can_double(self) -> bool:
        return self.phase == Phase.PLAYER_ACTING and len(self.player) == 2

    def visible_dealer(self) -> list[Card]:
        return list(self.dealer) if self.dealer_revealed else self.dealer[:1]

    def advice(self) -> Optional[Move]:
        if self.phase != Phase.PLAYER_ACTING:
            return None
        return basic_strategy(self.player_value, is_soft(self.player),
                              self.dealer_up_value, self.can_double)

    # ── Transitions ──

    def deal(self) -> bool:
        """Player, dealer, player, dealer (hole card hidden)."""
        if self.phase != Phase.IDLE or self.outcome is not None:
            return False
        self.deck.ensure()
        for _ in range(2):
            self.player.append(self.deck.draw())
            self.dealer.append(self.deck.draw())
        self.phase = Phase.DEALT
        return True

    def next_step(self) -> bool:
        """Advance one automatic transition. Returns False when waiting on the player or done."""
        if self.phase == Phase.DEALT:
            player_bj = is_blackjack(self.player)
            dealer_bj = is_blackjack(self.dealer)
            if player_bj and dealer_bj:
                self._settle("push")
            elif player_bj:
                self._settle("blackjack")
            elif dealer_bj:
                self._settle("loss")
            else:
                self.phase = Phase.PLAYER_ACTING
            return True
        if self.phase == Phase.DEALER_ACTING:
            self.dealer_revealed = True
            if self.dealer_value < DEALER_STANDS_AT:
                self.dealer.append(self.deck.draw())
            else:
                self._compare()
            return True
        if self.phase == Phase.SETTLED:
            self.phase = Phase.IDLE
            return False
        return False

    def hit(self) -> Optional[Card]:
        if self.phase != Phase.PLAYER_ACTING:
            return None
        card = self.deck.draw()
        self.player.append(card)
        if is_bust(self.player):
            self.player_bust = True
            self._settle("loss")
        return card

    def stand(self) -> bool:
        if self.phase != Phase.PLAYER_ACTING:
            return False
        self.phase = Phase.DEALER_ACTING
        return True

    def double(self) -> Optional[Card]:
        """Double the stake, take exactly one card, then stand unless busted."""
        if not self.can_double:
            return None
        self.doubled = True
        self.stake = self.bet * 2
        card = self.deck.draw()
        self.player.append(card)
        if is_bust(self.player):
            self.player_bust = True
            self._settle("loss")
        else:
            self.phase = Phase.DEALER_ACTING
        return card

    def play_dealer(self) -> None:
        while self.phase == Phase.DEALER_ACTING:
            self.next_step()

    def _compare(self) -> None:
        player, dealer = self.player_value, self.dealer_value
        if dealer > 21:
            self.dealer_bust = True
            self._settle("win")
        elif dealer > player:
            self._settle("loss")
        elif dealer < player:
            self._settle("win")
        else:
            self._settle("push")

    def _settle(self, outcome: str) -> None:
        self.outcome = outcome
        self.dealer_revealed = True
        self.phase = Phase.SETTLED

    # ── Settlement ──

    @property
    def settled(self) -> bool:
        return self.outcome is not None

    @property
    def profit(self) -> float:
        if self.outcome == "blackjack":
            return self.stake * BLACKJACK_PAYS
        if self.outcome == "win":
            return self.stake
        if self.outcome == "loss":
            return -self.stake
        return 0.0

    @property
    def payout(self) -> float:
        """Amount returned to the wallet: stake plus profit, or nothing on a loss."""
        if self.outcome is None or self.outcome == "loss":
            return 0.0
        return self.stake + self.profit

    @property
    def recorded_outcome(self) -> Optional[str]:
        """Ledger outcome; a natural is recorded as a win."""
        return "win" if self.outcome == "blackjack" else self.outcome


def play_basic_strategy(bet: float, deck: Deck) -> BlackjackRound:
    """Auto-play one hand following the advisor."""
    rnd = BlackjackRound(bet, deck)
    rnd.deal()
    rnd.next_step()
    while rnd.phase == Phase.PLAYER_ACTING:
        move = rnd.advice()
        if move == Move.DOUBLE:
            rnd.double()
        elif move == Move.HIT:
            rnd.hit()
        else:
            rnd.stand()
    rnd.play_dealer()
    return rnd


class BlackjackEngine(BaseGameEngine):
    game_type = "blackjack"
    display_name = "Blackjack"

    # No closed form for this rule set (S17, 3:2, double any two, no split);
    # this is the long-run figure the simulator converges to.
    APPROX_HOUSE_EDGE = 0.01

    def __init__(self):
        self._deck: Optional[Deck] = None

    def generate_config(self, **kw) -> dict:
        return {
            "game_type": "blackjack",
            "blackjack_pays": BLACKJACK_PAYS,
            "dealer_stands_at": DEALER_STANDS_AT,
            "reshuffle_below": RESHUFFLE_BELOW,
            "house_edge": self.APPROX_HOUSE_EDGE,
        }

    def compute_house_edge(self, config: dict) -> float:
        return config.get("house_edge", self.APPROX_HOUSE_EDGE)

    def simulate_stake(self, config: dict, rng: RandomSource) -> tuple[float, float]:
        # One shoe per random source, carried across rounds like a real table
        if self._deck is None or self._deck.rng is not rng:
            self._deck = Deck(rng)
        rnd = play_basic_strategy(1.0, self._deck)
        return rnd.stake, rnd.payout

    def simulate_round(self, config: dict, rng: RandomSource) -> float:
        return self.simulate_stake(config, rng)[1]
