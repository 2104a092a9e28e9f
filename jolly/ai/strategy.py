"""Turn pipeline for the computer opponent."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Sequence

from .. import rules
from ..cards import Card, Deck, DiscardRow, Hand, Rank, Suit
from ..melds import Meld, covered_cards, find_melds
from .pacing import PacingToken
from .profiles import MEDIUM, Difficulty, difficulty_by_name

__all__ = ["DrawSource", "TurnAction", "TurnResult", "AIStrategy", "STAGE_DELAY"]

logger = logging.getLogger(__name__)

STAGE_DELAY = 0.5
SKIP_LAYING_CHANCE = 0.5

UpdateCallback = Callable[[str], None]


class DrawSource(str, Enum):
    DECK = "deck"
    DISCARD = "discard"


class TurnAction(str, Enum):
    END_ROUND = "end_round"
    DISCARD = "discard"


@dataclass(frozen=True, slots=True)
class TurnResult:
    """Outcome of one AI turn for the controller to apply."""

    action: TurnAction
    card: Card | None
    melds_laid: List[Meld] = field(default_factory=list)
    drawn: Card | None = None
    source: DrawSource = DrawSource.DECK


class AIStrategy:
    """Difficulty-weighted opponent that plays draw, meld, close or discard.

    The strategy owns its hand. Every random choice goes through ``rng`` so a
    seeded ``random.Random`` replays the same decisions.
    """

    def __init__(
        self,
        difficulty: Difficulty | str = MEDIUM,
        *,
        rng: random.Random | None = None,
        thresholds: rules.Thresholds = rules.DEFAULT_THRESHOLDS,
        pacer: PacingToken | None = None,
        hand: Hand | None = None,
    ) -> None:
        self.difficulty = MEDIUM
        self.set_difficulty(difficulty)
        self.rng = rng if rng is not None else random.Random()
        self.thresholds = thresholds
        self.pacer = pacer if pacer is not None else PacingToken()
        self.hand = hand if hand is not None else Hand()

    def set_difficulty(self, difficulty: Difficulty | str) -> None:
        if isinstance(difficulty, str):
            difficulty = difficulty_by_name(difficulty)
        self.difficulty = difficulty

    def _erred(self) -> bool:
        return self.rng.random() < self.difficulty.error_rate

    # Draw

    def choose_draw_source(self, discard_top: Card | None, has_melded: bool) -> DrawSource:
        """Take the discard row's top card only when it adds a meld."""

        if not has_melded or discard_top is None:
            return DrawSource.DECK
        if self._erred():
            return DrawSource.DISCARD if self.rng.random() < 0.5 else DrawSource.DECK

        current = len(find_melds(self.hand.cards))
        improved = len(find_melds([*self.hand.cards, discard_top]))
        return DrawSource.DISCARD if improved > current else DrawSource.DECK

    def draw(self, deck: Deck, discard_row: DiscardRow, has_melded: bool) -> tuple[Card, DrawSource]:
        source = self.choose_draw_source(discard_row.top, has_melded)
        card = discard_row.take_top() if source is DrawSource.DISCARD else None
        if card is None:
            source = DrawSource.DECK
            card = deck.draw()
        self.hand.add(card)
        logger.debug("AI drew %s from the %s", card.code, source.value)
        return card, source

    # Melds

    def _first_meld_subset(self, melds: Sequence[Meld]) -> list[Meld]:
        # The smallest qualifying subset is the top-k by points for the
        # smallest k whose sum reaches the threshold.
        ranked = sorted(
            melds,
            key=lambda meld: rules.calculate_meld_points(meld, self.thresholds),
            reverse=True,
        )
        total = 0
        for count, meld in enumerate(ranked, start=1):
            total += rules.calculate_meld_points(meld, self.thresholds)
            if total >= self.thresholds.first_meld:
                chosen = {id(item) for item in ranked[:count]}
                return [item for item in melds if id(item) in chosen]
        return []

    def _keep_a_card(self, melds: list[Meld], has_melded: bool) -> list[Meld]:
        while melds and len(covered_cards(melds)) >= len(self.hand):
            melds.pop()
        if melds and not has_melded and not rules.meets_first_meld_requirement(melds, self.thresholds):
            return []
        return melds

    def choose_melds(self, has_melded: bool) -> list[Meld]:
        """Return the melds to lay from the current hand."""

        melds = find_melds(self.hand.cards)
        if not melds:
            return []
        if not has_melded:
            chosen = self._first_meld_subset(melds)
        elif self.difficulty.strategy_depth >= 2 or self.rng.random() >= SKIP_LAYING_CHANCE:
            chosen = list(melds)
        else:
            chosen = []
        return self._keep_a_card(chosen, has_melded)

    def lay_melds(self, melds: Iterable[Meld]) -> None:
        for card in covered_cards(melds):
            self.hand.remove(card)

    # Closing and discarding

    def should_end_round(self, table_melds: Iterable[Meld]) -> bool:
        if self.difficulty.strategy_depth < 2:
            return False
        return rules.can_end_round(self.hand.cards, table_melds)

    def choose_discard(self) -> Card:
        if self._erred():
            return self.rng.choice(self.hand.cards)
        return rules.suggest_discard(self.hand.cards)

    def choose_opening_discard(self) -> Card:
        """Pick the card the starting player throws before anyone draws."""

        return self.choose_discard()

    # Pipeline

    def finish_turn(
        self,
        table_melds: Sequence[Meld],
        has_melded: bool,
        *,
        drawn: Card | None = None,
        source: DrawSource = DrawSource.DECK,
        on_update: UpdateCallback | None = None,
    ) -> TurnResult:
        """Run the meld, close and discard stages on a hand that has drawn."""

        laid = self.choose_melds(has_melded)
        if laid:
            self.lay_melds(laid)
            points = rules.calculate_total_meld_points(laid, self.thresholds)
            logger.debug("AI laid %d meld(s) worth %d", len(laid), points)
            _notify(on_update, f"AI laid {len(laid)} meld(s)")

        if self.should_end_round([*table_melds, *laid]):
            logger.debug("AI closes the round holding %s", self.hand.cards[0].code)
            _notify(on_update, "AI ends the round!")
            return TurnResult(
                action=TurnAction.END_ROUND,
                card=None,
                melds_laid=laid,
                drawn=drawn,
                source=source,
            )

        card = self.choose_discard()
        self.hand.remove(card)
        logger.debug("AI discarded %s", card.code)
        _notify(on_update, "AI discarded a card")
        return TurnResult(
            action=TurnAction.DISCARD,
            card=card,
            melds_laid=laid,
            drawn=drawn,
            source=source,
        )

    def play_turn(
        self,
        deck: Deck,
        discard_row: DiscardRow,
        table_melds: Sequence[Meld],
        has_melded: bool,
        *,
        on_update: UpdateCallback | None = None,
    ) -> TurnResult:
        """Synchronous turn without pacing."""

        drawn, source = self.draw(deck, discard_row, has_melded)
        _notify(on_update, _draw_message(source))
        return self.finish_turn(table_melds, has_melded, drawn=drawn, source=source, on_update=on_update)

    async def take_turn(
        self,
        deck: Deck,
        discard_row: DiscardRow,
        table_melds: Sequence[Meld],
        has_melded: bool,
        *,
        on_update: UpdateCallback | None = None,
    ) -> TurnResult:
        """Paced turn; pauses come from the pacing token and never alter the outcome."""

        await self.pacer.wait(self.difficulty.think_delay)
        drawn, source = self.draw(deck, discard_row, has_melded)
        _notify(on_update, _draw_message(source))
        await self.pacer.wait(STAGE_DELAY)
        return self.finish_turn(table_melds, has_melded, drawn=drawn, source=source, on_update=on_update)

    # Hand insight

    def evaluate_hand_strength(self) -> float:
        """Return the share of the hand covered by melds, from 0 to 100."""

        if not self.hand:
            return 0.0
        used = covered_cards(find_melds(self.hand.cards))
        return min(100.0, len(used) / len(self.hand) * 100.0)

    def needed_cards(self) -> list[Card]:
        """Natural cards that would neighbour or pair with the current hand."""

        wanted: dict[Card, None] = {}
        ranks = list(Rank)
        for card in self.hand:
            if card.is_joker:
                continue
            for value in (card.value - 1, card.value + 1):
                if 1 <= value <= len(ranks):
                    wanted[Card(rank=ranks[value - 1], suit=card.suit)] = None
            for suit in Suit:
                if suit is not card.suit:
                    wanted[Card(rank=card.rank, suit=suit)] = None
        return [card for card in wanted if card not in self.hand]


def _draw_message(source: DrawSource) -> str:
    if source is DrawSource.DISCARD:
        return "AI drew from the discard row"
    return "AI drew from the deck"


def _notify(callback: UpdateCallback | None, message: str) -> None:
    if callback is not None:
        callback(message)
