"""Card codes and point tables for Jolly."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, Iterable, Sequence

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .cards import Card

RANKS: Final[list[str]] = ["A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K"]
SUITS: Final[list[str]] = ["S", "H", "D", "C"]
RANK_VALUES: Final[dict[str, int]] = {rank: idx + 1 for idx, rank in enumerate(RANKS)}
SUIT_SYMBOLS: Final[dict[str, str]] = {"S": "♠", "H": "♥", "D": "♦", "C": "♣"}
JOKER_CODE: Final[str] = "JOKER"
JOKER_COUNT: Final[int] = 8
DECK_CARD_COUNT: Final[int] = len(RANKS) * len(SUITS) + JOKER_COUNT

LOW_ACE: Final[int] = 1
HIGH_ACE: Final[int] = 14
FACE_RANKS: Final[frozenset[str]] = frozenset({"10", "J", "Q", "K"})

# Meld values used for the first-meld requirement.
MELD_LOW_POINTS: Final[int] = 5
MELD_HIGH_POINTS: Final[int] = 10
THREE_ACES_POINTS: Final[int] = 25

# Penalty values for cards left in hand when a round ends.
HAND_LOW_POINTS: Final[int] = 5
HAND_FACE_POINTS: Final[int] = 10
HAND_ACE_POINTS: Final[int] = 25
HAND_JOKER_POINTS: Final[int] = 50


def meld_point_value(card: "Card", high_ace: bool = False) -> int:
    """Return the meld value of a natural card (jokers are estimated elsewhere)."""

    if card.is_joker:
        return 0
    rank = card.rank.value
    if rank in FACE_RANKS:
        return MELD_HIGH_POINTS
    if rank == "A":
        return MELD_HIGH_POINTS if high_ace else MELD_LOW_POINTS
    return MELD_LOW_POINTS


def hand_point_value(card: "Card") -> int:
    """Return the end-of-round penalty for holding ``card``."""

    if card.is_joker:
        return HAND_JOKER_POINTS
    rank = card.rank.value
    if rank in FACE_RANKS:
        return HAND_FACE_POINTS
    if rank == "A":
        return HAND_ACE_POINTS
    return HAND_LOW_POINTS


def card_from_code(code: str) -> "Card":
    """Parse codes such as ``"7S"``, ``"10H"`` or ``"JOKER#3"`` into a card."""

    from .cards import Card, Rank, Suit

    text = code.strip().upper()
    if text.startswith(JOKER_CODE):
        _, _, copy_str = text.partition("#")
        copy = int(copy_str) if copy_str else 0
        if not 0 <= copy < JOKER_COUNT:
            raise ValueError(f"invalid joker copy in '{code}'")
        return Card.joker(copy)
    if len(text) < 2:
        raise ValueError(f"invalid card code '{code}'")
    rank, suit = text[:-1], text[-1]
    if rank not in RANK_VALUES or suit not in SUITS:
        raise ValueError(f"invalid card code '{code}'")
    return Card(rank=Rank(rank), suit=Suit(suit))


def cards_from_codes(codes: Iterable[str] | str) -> list["Card"]:
    """Return cards for whitespace-separated codes or an iterable of codes."""

    if isinstance(codes, str):
        codes = codes.split()
    return [card_from_code(code) for code in codes]


def format_cards(cards: Sequence["Card"]) -> str:
    return " ".join(card.code for card in cards)
