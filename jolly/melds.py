"""Meld validation and discovery for Jolly hands."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Sequence

from . import encoding
from .cards import Card, Suit

__all__ = [
    "MIN_SET_SIZE",
    "MAX_SET_SIZE",
    "MIN_SEQUENCE_SIZE",
    "MeldKind",
    "Meld",
    "is_valid_set",
    "is_valid_sequence",
    "is_pure_sequence",
    "is_high_ace_sequence",
    "is_valid_meld",
    "classify_meld",
    "find_melds",
    "covered_cards",
]

MIN_SET_SIZE = 3
MAX_SET_SIZE = 4
MIN_SEQUENCE_SIZE = 3


class MeldKind(str, Enum):
    """The two meld shapes recognised by the rules."""

    SET = "set"
    SEQUENCE = "sequence"


@dataclass(slots=True)
class Meld:
    """A validated group of cards; placed melds may grow by extension."""

    kind: MeldKind
    cards: List[Card] = field(default_factory=list)
    owner: int | None = None

    @property
    def pure(self) -> bool:
        """``True`` only for sequences without a joker."""

        return self.kind is MeldKind.SEQUENCE and is_pure_sequence(self.cards)

    @property
    def has_joker(self) -> bool:
        return any(card.is_joker for card in self.cards)

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)


def _split_jokers(cards: Iterable[Card]) -> tuple[list[Card], list[Card]]:
    naturals: list[Card] = []
    jokers: list[Card] = []
    for card in cards:
        (jokers if card.is_joker else naturals).append(card)
    return naturals, jokers


def _sequence_value(card: Card, ace_value: int) -> int:
    if card.value == encoding.LOW_ACE:
        return ace_value
    return card.value


def is_valid_set(cards: Sequence[Card]) -> bool:
    """Return ``True`` for 3-4 cards whose naturals share one rank.

    Suits may repeat and at least one natural card is required.
    """

    if not MIN_SET_SIZE <= len(cards) <= MAX_SET_SIZE:
        return False
    naturals, _ = _split_jokers(cards)
    if not naturals:
        return False
    rank = naturals[0].rank
    return all(card.rank == rank for card in naturals)


def _fits_with_ace(naturals: Sequence[Card], joker_count: int, ace_value: int) -> bool:
    values = sorted(_sequence_value(card, ace_value) for card in naturals)
    jokers_needed = 0
    for low, high in zip(values, values[1:]):
        if low == high:
            return False
        jokers_needed += high - low - 1
    return jokers_needed <= joker_count


def is_valid_sequence(cards: Sequence[Card]) -> bool:
    """Return ``True`` for a same-suit run whose gaps the jokers can fill.

    The Ace is tried as low (1) and as high (14); either interpretation makes
    the sequence valid.
    """

    if len(cards) < MIN_SEQUENCE_SIZE:
        return False
    naturals, jokers = _split_jokers(cards)
    if not naturals:
        return False
    suit = naturals[0].suit
    if any(card.suit != suit for card in naturals):
        return False
    return any(
        _fits_with_ace(naturals, len(jokers), ace_value)
        for ace_value in (encoding.LOW_ACE, encoding.HIGH_ACE)
    )


def is_pure_sequence(cards: Sequence[Card]) -> bool:
    if any(card.is_joker for card in cards):
        return False
    return is_valid_sequence(cards)


def is_high_ace_sequence(cards: Sequence[Card]) -> bool:
    """Heuristic: naturals hold an Ace and a King but no Two."""

    ranks = {card.rank.value for card in cards if not card.is_joker}
    return "A" in ranks and "K" in ranks and "2" not in ranks


def is_valid_meld(kind: MeldKind, cards: Sequence[Card]) -> bool:
    if kind is MeldKind.SET:
        return is_valid_set(cards)
    return is_valid_sequence(cards)


def classify_meld(cards: Sequence[Card]) -> MeldKind | None:
    """Return the kind ``cards`` form, preferring a sequence when both fit."""

    if is_valid_sequence(cards):
        return MeldKind.SEQUENCE
    if is_valid_set(cards):
        return MeldKind.SET
    return None


# Discovery.
#
# Candidates are generated from rank groups (sets) and per-suit value windows
# (sequences) instead of the power set of the hand. For a target size ``k`` a
# sequence candidate is the set of naturals of one suit whose values fall in a
# window of width ``k``; the remaining ``k - m`` slots are jokers. The first
# candidate in a fixed order (fewest jokers, suit priority, low ace before
# high ace, lowest start) is accepted and its cards claimed, then the search
# repeats on the unclaimed cards. Scanning a fixed order and skipping
# overlapping candidates is equivalent to this repeated first-fit, so the
# result is the deterministic greedy cover: maximal, not maximum.


def _arrange_sequence(naturals: Sequence[Card], jokers: Sequence[Card], ace_value: int) -> list[Card]:
    ordered = sorted(naturals, key=lambda card: _sequence_value(card, ace_value))
    spare = list(jokers)
    arranged: list[Card] = []
    previous: int | None = None
    for card in ordered:
        current = _sequence_value(card, ace_value)
        if previous is not None:
            for _ in range(current - previous - 1):
                arranged.append(spare.pop(0))
        arranged.append(card)
        previous = current
    top = previous if previous is not None else 0
    while spare and top < encoding.HIGH_ACE:
        arranged.append(spare.pop(0))
        top += 1
    return spare + arranged


def _first_sequence(available: Sequence[Card], size: int) -> list[Card] | None:
    naturals, jokers = _split_jokers(available)
    best_key: tuple[int, int, int, int] | None = None
    best: tuple[list[Card], int] | None = None
    for suit in Suit:
        suited = [card for card in naturals if card.suit is suit]
        if not suited:
            continue
        for ace_order, ace_value in enumerate((encoding.LOW_ACE, encoding.HIGH_ACE)):
            by_value = {_sequence_value(card, ace_value): card for card in suited}
            for start in sorted(by_value):
                window = [by_value[v] for v in range(start, start + size) if v in by_value]
                jokers_needed = size - len(window)
                if jokers_needed > len(jokers):
                    continue
                key = (jokers_needed, suit.priority, ace_order, start)
                if best_key is None or key < best_key:
                    best_key = key
                    best = (window, ace_value)
    if best is None or best_key is None:
        return None
    window, ace_value = best
    return _arrange_sequence(window, jokers[: best_key[0]], ace_value)


def _first_set(available: Sequence[Card], size: int) -> list[Card] | None:
    naturals, jokers = _split_jokers(available)
    by_rank: dict[int, list[Card]] = {}
    for card in naturals:
        by_rank.setdefault(card.value, []).append(card)
    best_key: tuple[int, int] | None = None
    best: list[Card] | None = None
    for value, group in by_rank.items():
        chosen = group[:size]
        jokers_needed = size - len(chosen)
        if jokers_needed > len(jokers):
            continue
        key = (jokers_needed, value)
        if best_key is None or key < best_key:
            best_key = key
            best = chosen + jokers[:jokers_needed]
    return best


def find_melds(cards: Sequence[Card]) -> list[Meld]:
    """Return a greedy, non-overlapping cover of ``cards`` by melds.

    Sizes are tried from largest to smallest; at each size every sequence is
    taken before any set, so a sequence wins over an equal-size set built from
    the same cards.
    """

    available = list(cards)
    found: list[Meld] = []
    for size in range(len(available), MIN_SEQUENCE_SIZE - 1, -1):
        for kind, finder in ((MeldKind.SEQUENCE, _first_sequence), (MeldKind.SET, _first_set)):
            if kind is MeldKind.SET and size > MAX_SET_SIZE:
                continue
            while len(available) >= size:
                group = finder(available, size)
                if group is None:
                    break
                found.append(Meld(kind=kind, cards=group))
                claimed = set(group)
                available = [card for card in available if card not in claimed]
    return found


def covered_cards(melds: Iterable[Meld]) -> set[Card]:
    """Return every card used by ``melds``."""

    used: set[Card] = set()
    for meld in melds:
        used.update(meld.cards)
    return used
