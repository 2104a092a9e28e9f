"""Round state data structures for Jolly."""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List

from .cards import Card, Deck, DiscardRow, Hand, iter_full_deck
from .melds import Meld
from .rules import DEFAULT_DEAL_PATTERN, DEFAULT_THRESHOLDS, DealPattern, Thresholds


class TurnPhase(str, Enum):
    """Phases that track high-level player actions."""

    AWAITING_DRAW = "awaiting_draw"
    AWAITING_DISCARD = "awaiting_discard"
    COMPLETE = "complete"


LOW_TARGET_SCORE = 500
HIGH_TARGET_SCORE = 1000


@dataclass(frozen=True, slots=True)
class JollyConfig:
    """Runtime configuration for a Jolly match."""

    num_players: int = 2
    deal: DealPattern = DEFAULT_DEAL_PATTERN
    thresholds: Thresholds = DEFAULT_THRESHOLDS
    target_score: int = LOW_TARGET_SCORE

    def __post_init__(self) -> None:
        if self.num_players <= 0:
            raise ValueError("num_players must be positive")
        if self.target_score <= 0:
            raise ValueError("target_score must be positive")


@dataclass(slots=True)
class PlayerState:
    """State tracked for each seated player."""

    hand: Hand = field(default_factory=Hand)
    has_melded: bool = False
    phase: TurnPhase = TurnPhase.AWAITING_DRAW


@dataclass(slots=True)
class JollyState:
    """Mutable state of one round, shared by every seat."""

    deck: Deck
    discard_row: DiscardRow = field(default_factory=DiscardRow)
    table: List[Meld] = field(default_factory=list)
    players: List[PlayerState] = field(default_factory=list)
    config: JollyConfig = field(default_factory=JollyConfig)
    current_player: int = 0
    turn_index: int = 0
    winner_index: int | None = None
    closed_by_end_round: bool = False

    def iter_cards(self) -> Iterator[Card]:
        """Yield every card in every zone of the round."""

        yield from self.deck
        yield from self.discard_row
        for player in self.players:
            yield from player.hand
        for meld in self.table:
            yield from meld.cards

    def is_conserved(self) -> bool:
        """Return ``True`` when the zones hold exactly the full deck, once each."""

        return Counter(self.iter_cards()) == Counter(iter_full_deck())


def deal_new_round(
    config: JollyConfig | None = None,
    rng: random.Random | None = None,
    *,
    starting_player: int = 0,
) -> JollyState:
    """Shuffle a fresh deck and deal a round.

    The starting player receives the larger hand and opens by discarding, so
    it begins in :attr:`TurnPhase.AWAITING_DISCARD`.
    """

    config = config or JollyConfig()
    if not 0 <= starting_player < config.num_players:
        raise ValueError("starting_player out of range")
    deck = Deck(rng)
    players = [PlayerState() for _ in range(config.num_players)]

    for offset in range(config.num_players):
        idx = (starting_player + offset) % config.num_players
        for _ in range(config.deal.hand_size_for(offset)):
            if deck.is_empty():
                raise ValueError("insufficient cards in deck for requested hand size")
            players[idx].hand.add(deck.draw())

    players[starting_player].phase = TurnPhase.AWAITING_DISCARD
    return JollyState(
        deck=deck,
        players=players,
        config=config,
        current_player=starting_player,
    )
