"""
PROBABILITY GAMES — Blackjack Controller

Drives a BlackjackRound against the shared wallet. The stake is debited at
the deal; doubling debits a second stake. Settlement credits stake + profit
(nothing on a loss) and records one ledger event.
"""

from __future__ import annotations

import logging
from typing import Optional

from controllers.base import RoundController
from engines.blackjack import BlackjackRound, Card, Deck, Move, Phase, format_hand

logger = logging.getLogger("probgames.blackjack")


class BlackjackController(RoundController):
    """The settled hand stays on ``round`` (cards, outcome, profit) until the
    next ``start()`` deals a new one; actions on it are no-ops.
    """

    game = "blackjack"

    def __init__(self, session, deck: Deck = None):
        super().__init__(session)
        self.deck = deck or Deck(session.rng)
        self.round: Optional[BlackjackRound] = None
        self._recorded = True

    @property
    def active(self) -> bool:
        return self.round is not None and not self.round.settled

    def start(self, bet) -> Optional[BlackjackRound]:
        """Debit and deal. Naturals are resolved by the first ``next_step()``."""
        if self.active:
            return None
        amount = self.debit(bet)
        self.round = BlackjackRound(amount, self.deck)
        self._recorded = False
        self.round.deal()
        return self.round

    def next_step(self) -> bool:
        """One automatic transition (naturals check or one dealer draw)."""
        if self.round is None or self._recorded:
            return False
        progressed = self.round.next_step()
        self._settle_if_done()
        return progressed

    def advice(self) -> Optional[Move]:
        return self.round.advice() if self.round else None

    def hit(self) -> Optional[Card]:
        if self.round is None:
            return None
        card = self.round.hit()
        self._settle_if_done()
        return card

    def stand(self) -> bool:
        if self.round is None:
            return False
        return self.round.stand()

    def double(self) -> Optional[Card]:
        """Needs exactly two cards and a balance covering a second stake."""
        if self.round is None or not self.round.can_double:
            return None
        if self.round.bet > self.balance:
            logger.debug("Double refused: balance does not cover a second stake")
            return None
        self.wallet.change_balance(-self.round.bet)
        card = self.round.double()
        self._settle_if_done()
        return card

    def finish_dealer(self) -> None:
        """Run the dealer's draws to settlement."""
        while self.round is not None and self.round.phase == Phase.DEALER_ACTING:
            self.next_step()

    def play_round(self, bet, strategy=None) -> BlackjackRound:
        """Deal and play a whole hand, following ``strategy`` (default: the advisor)."""
        rnd = self.start(bet)
        if rnd is None:
            raise RuntimeError("A blackjack hand is already in progress")
        self.next_step()
        while rnd.phase == Phase.PLAYER_ACTING:
            move = strategy(rnd) if strategy else rnd.advice()
            if move == Move.DOUBLE and self.double() is not None:
                continue
            if move in (Move.HIT, Move.DOUBLE):
                self.hit()
            else:
                self.stand()
        self.finish_dealer()
        return rnd

    def _settle_if_done(self) -> None:
        rnd = self.round
        if rnd is None or not rnd.settled or self._recorded:
            return
        self._recorded = True
        self.credit(rnd.payout)
        self.stats.record_blackjack(bet=rnd.stake, profit=rnd.profit,
                                    outcome=rnd.recorded_outcome,
                                    is_blackjack=rnd.player_natural)
        logger.debug(f"Player {format_hand(rnd.player)} ({rnd.player_value}) vs "
                     f"dealer {format_hand(rnd.dealer)} ({rnd.dealer_value}): {rnd.outcome}")
        self.finish(rnd.stake, rnd.profit)
