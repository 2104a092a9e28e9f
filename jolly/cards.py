"""Card abstractions and containers for Jolly."""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Sequence

from . import encoding

__all__ = [
    "Suit",
    "Rank",
    "Card",
    "EmptyDeck",
    "Deck",
    "Hand",
    "DiscardRow",
    "iter_full_deck",
    "sort_cards",
]


class Suit(str, Enum):
    """Enumeration of the four suits, declared in hand-sorting priority."""

    SPADES = "S"
    HEARTS = "H"
    DIAMONDS = "D"
    CLUBS = "C"

    @property
    def symbol(self) -> str:
        return encoding.SUIT_SYMBOLS[self.value]

    @property
    def priority(self) -> int:
        return encoding.SUITS.index(self.value)


class Rank(str, Enum):
    """Enumeration of ranks ordered Ace (low) through King."""

    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    @property
    def value_index(self) -> int:
        """Return the numeric rank value (A=1, J=11, Q=12, K=13)."""

        return encoding.RANK_VALUES[self.value]


@dataclass(frozen=True, slots=True)
class Card:
    """Value object describing a physical Jolly card.

    The deck holds a single copy of each natural card, so ``(rank, suit)`` is
    unique for naturals. Jokers carry a ``copy`` index so each of the eight
    wildcards stays distinguishable.
    """

    rank: Rank | None
    suit: Suit | None
    copy: int = 0

    @classmethod
    def joker(cls, copy: int) -> "Card":
        return cls(rank=None, suit=None, copy=copy)

    @property
    def is_joker(self) -> bool:
        """Return ``True`` when the card represents a Joker."""

        return self.rank is None and self.suit is None

    @property
    def value(self) -> int:
        """Numeric rank value; jokers report ``0``."""

        if self.rank is None:
            return 0
        return self.rank.value_index

    @property
    def code(self) -> str:
        if self.is_joker:
            return f"{encoding.JOKER_CODE}#{self.copy}"
        return f"{self.rank.value}{self.suit.value}"

    def label(self) -> str:
        """Create a display label suitable for terminal representations."""

        if self.is_joker:
            return "🃏"
        return f"{self.rank.value}{self.suit.symbol}"

    def sort_key(self) -> tuple[int, int, int]:
        if self.is_joker:
            return (1, 0, self.copy)
        return (0, self.suit.priority, self.value)

    def __str__(self) -> str:
        return self.label()


def iter_full_deck() -> Iterator[Card]:
    """Yield all physical cards in a fresh Jolly deck."""

    for suit in Suit:
        for rank in Rank:
            yield Card(rank=rank, suit=suit)
    for copy in range(encoding.JOKER_COUNT):
        yield Card.joker(copy)


def sort_cards(cards: Iterable[Card]) -> List[Card]:
    """Return ``cards`` ordered by suit priority, then rank, jokers last."""

    return sorted(cards, key=Card.sort_key)


class EmptyDeck(RuntimeError):
    """Raised when drawing from a deck that has no cards left."""


class Deck:
    """Draw pile; the top of the deck is the end of ``cards``."""

    def __init__(
        self,
        rng: random.Random | None = None,
        *,
        cards: Iterable[Card] | None = None,
        shuffle: bool = True,
    ) -> None:
        self.rng = rng if rng is not None else random.Random()
        self.cards: List[Card] = list(cards) if cards is not None else list(iter_full_deck())
        if shuffle:
            self.shuffle()

    def shuffle(self) -> None:
        """Shuffle in place using the deck's random source (Fisher-Yates)."""

        self.rng.shuffle(self.cards)

    def draw(self) -> Card:
        if not self.cards:
            raise EmptyDeck("deck is empty")
        return self.cards.pop()

    def put_back(self, cards: Iterable[Card], *, shuffle: bool = True) -> None:
        """Return ``cards`` to the deck, reshuffling the whole pile by default."""

        self.cards.extend(cards)
        if shuffle:
            self.shuffle()

    def is_empty(self) -> bool:
        return not self.cards

    @property
    def count(self) -> int:
        return len(self.cards)

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)


class Hand:
    """Cards owned by one player, kept in the order the player arranged them."""

    def __init__(self, cards: Iterable[Card] | None = None) -> None:
        self.cards: List[Card] = list(cards) if cards is not None else []

    def add(self, card: Card) -> None:
        self.cards.append(card)

    def remove(self, card: Card) -> Card | None:
        """Remove ``card`` by identity, returning ``None`` when it is not held."""

        for index, held in enumerate(self.cards):
            if held == card:
                return self.cards.pop(index)
        return None

    def has(self, card: Card) -> bool:
        return card in self.cards

    def sort(self) -> None:
        self.cards.sort(key=Card.sort_key)

    def clear(self) -> None:
        self.cards.clear()

    @property
    def count(self) -> int:
        return len(self.cards)

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __contains__(self, card: object) -> bool:
        return card in self.cards

    def __repr__(self) -> str:
        return f"Hand({encoding.format_cards(self.cards)})"


MAX_VISIBLE_DISCARDS = 5


class DiscardRow:
    """Visible discard area; the most recent discard sits at the end."""

    def __init__(self, cards: Iterable[Card] | None = None) -> None:
        self.cards: List[Card] = list(cards) if cards is not None else []

    def push(self, card: Card) -> None:
        self.cards.append(card)

    @property
    def top(self) -> Card | None:
        return self.cards[-1] if self.cards else None

    def take_top(self) -> Card | None:
        """Remove and return the most recent discard, or ``None`` if empty."""

        if not self.cards:
            return None
        return self.cards.pop()

    def take_all_but_top(self) -> List[Card]:
        """Remove every card except the top one and return them oldest first."""

        if len(self.cards) <= 1:
            return []
        remaining = self.cards[:-1]
        self.cards = self.cards[-1:]
        return remaining

    def visible(self, limit: int = MAX_VISIBLE_DISCARDS) -> Sequence[Card]:
        if limit <= 0:
            return []
        return self.cards[-limit:]

    def is_empty(self) -> bool:
        return not self.cards

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)
