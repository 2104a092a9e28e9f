"""Rule utilities, scoring and turn operations for Jolly."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Iterable, Sequence

from . import encoding
from .cards import Card, EmptyDeck
from .melds import (
    Meld,
    MeldKind,
    classify_meld,
    covered_cards,
    find_melds,
    is_high_ace_sequence,
    is_valid_meld,
)

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .ai.strategy import TurnResult
    from .state import JollyState, PlayerState

__all__ = [
    "Thresholds",
    "DealPattern",
    "DEFAULT_THRESHOLDS",
    "DEFAULT_DEAL_PATTERN",
    "IllegalDraw",
    "IllegalMeld",
    "IllegalDiscard",
    "IllegalEndRound",
    "PlayerRoundScore",
    "estimate_joker_value",
    "calculate_meld_points",
    "calculate_total_meld_points",
    "meets_first_meld_requirement",
    "can_extend_meld",
    "can_end_round",
    "calculate_hand_points",
    "deadwood_points",
    "suggest_discard",
    "replenish_deck",
    "draw_from_deck",
    "can_draw_from_discard",
    "draw_from_discard",
    "lay_down",
    "extend_meld",
    "discard_card",
    "end_round",
    "apply_turn_result",
    "round_scores",
    "settle_round",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Thresholds:
    """Point values that regulate melding and round closing."""

    first_meld: int = 30
    three_aces: int = encoding.THREE_ACES_POINTS
    end_round_bonus: int = 30


@dataclass(frozen=True, slots=True)
class DealPattern:
    """Initial hand sizes for the opening deal."""

    first_player_cards: int = 13
    other_player_cards: int = 12

    def hand_size_for(self, player_index: int) -> int:
        """Return the number of cards dealt to the given seat, starter first."""

        return self.first_player_cards if player_index == 0 else self.other_player_cards


DEFAULT_THRESHOLDS: Final[Thresholds] = Thresholds()
DEFAULT_DEAL_PATTERN: Final[DealPattern] = DealPattern()


class IllegalDraw(RuntimeError):
    """Raised when a player attempts to draw illegally."""


class IllegalMeld(RuntimeError):
    """Raised when a lay-down or extension breaks the meld rules."""


class IllegalDiscard(RuntimeError):
    """Raised when a player attempts to discard illegally."""


class IllegalEndRound(RuntimeError):
    """Raised when a player tries to close the round without qualifying."""


@dataclass(frozen=True, slots=True)
class PlayerRoundScore:
    """Per-player scoring breakdown captured at the end of a round."""

    player_index: int
    hand_points: int
    bonus: int
    net_points: int
    won_round: bool


# Scoring


def _half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def estimate_joker_value(meld: Meld) -> int:
    """Value a joker as the rounded average of the meld's natural cards."""

    naturals = [card for card in meld.cards if not card.is_joker]
    if not naturals:
        return encoding.MELD_LOW_POINTS
    high_ace = meld.kind is MeldKind.SEQUENCE and is_high_ace_sequence(meld.cards)
    total = sum(encoding.meld_point_value(card, high_ace) for card in naturals)
    return _half_up(total / len(naturals))


def calculate_meld_points(meld: Meld, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> int:
    """Return the first-meld value of ``meld``.

    A set of exactly three natural Aces scores a flat bonus instead of three
    low Aces.
    """

    if (
        meld.kind is MeldKind.SET
        and len(meld.cards) == 3
        and all(not card.is_joker and card.rank.value == "A" for card in meld.cards)
    ):
        return thresholds.three_aces

    high_ace = meld.kind is MeldKind.SEQUENCE and is_high_ace_sequence(meld.cards)
    points = 0
    for card in meld.cards:
        if card.is_joker:
            points += estimate_joker_value(meld)
        else:
            points += encoding.meld_point_value(card, high_ace)
    return points


def calculate_total_meld_points(melds: Iterable[Meld], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> int:
    return sum(calculate_meld_points(meld, thresholds) for meld in melds)


def meets_first_meld_requirement(melds: Iterable[Meld], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> bool:
    return calculate_total_meld_points(melds, thresholds) >= thresholds.first_meld


def can_extend_meld(meld: Meld, card: Card) -> bool:
    """Return ``True`` when appending ``card`` keeps ``meld`` valid for its kind."""

    return is_valid_meld(meld.kind, [*meld.cards, card])


def can_end_round(hand: Sequence[Card], table_melds: Iterable[Meld]) -> bool:
    """Return ``True`` when a player may close the round (zudrehen).

    The player must hold exactly one natural card that extends no meld on the
    table. A joker can always be used somewhere, so it never qualifies.
    """

    if len(hand) != 1:
        return False
    last_card = hand[0]
    if last_card.is_joker:
        return False
    return not any(can_extend_meld(meld, last_card) for meld in table_melds)


def calculate_hand_points(cards: Iterable[Card]) -> int:
    """Return the end-of-round penalty for ``cards``."""

    return sum(encoding.hand_point_value(card) for card in cards)


def deadwood_points(cards: Sequence[Card]) -> int:
    """Return the penalty of the cards ``find_melds`` leaves uncovered."""

    used = covered_cards(find_melds(cards))
    return calculate_hand_points(card for card in cards if card not in used)


def suggest_discard(cards: Sequence[Card]) -> Card:
    """Pick the card to throw away.

    The highest-penalty natural among uncovered cards goes first, keeping
    jokers. A fully melded hand gives up the first card of its smallest meld.
    """

    if not cards:
        raise ValueError("cannot suggest a discard from an empty hand")

    melds = find_melds(cards)
    used = covered_cards(melds)
    unmatched = [card for card in cards if card not in used]
    if unmatched:
        naturals = [card for card in unmatched if not card.is_joker]
        if not naturals:
            return unmatched[0]
        best = naturals[0]
        for card in naturals[1:]:
            if encoding.hand_point_value(card) > encoding.hand_point_value(best):
                best = card
        return best

    smallest = min(melds, key=len)
    return smallest.cards[0]


# Turn operations


def _player(state: "JollyState", player_index: int, error: type[RuntimeError]) -> "PlayerState":
    if state.winner_index is not None:
        raise error("round already finished")
    if player_index < 0 or player_index >= len(state.players):
        raise error("invalid player index")
    if state.current_player != player_index:
        raise error("not this player's turn")
    return state.players[player_index]


def replenish_deck(state: "JollyState") -> bool:
    """Refill an empty deck from the discard row, keeping its top card.

    Returns ``True`` when cards were moved.
    """

    if not state.deck.is_empty():
        return False
    pool = state.discard_row.take_all_but_top()
    if not pool:
        return False
    state.deck.put_back(pool)
    logger.debug("reshuffled %d discard(s) into the deck", len(pool))
    return True


def draw_from_deck(state: "JollyState", player_index: int) -> Card:
    """Draw the top card of the deck for ``player_index``."""

    from . import state as state_module

    player = _player(state, player_index, IllegalDraw)
    if player.phase != state_module.TurnPhase.AWAITING_DRAW:
        raise IllegalDraw("player must be awaiting a draw")
    replenish_deck(state)
    try:
        card = state.deck.draw()
    except EmptyDeck as exc:
        raise IllegalDraw("no cards left to draw") from exc
    player.hand.add(card)
    player.phase = state_module.TurnPhase.AWAITING_DISCARD
    return card


def can_draw_from_discard(state: "JollyState", player_index: int) -> bool:
    """The discard row opens to a player only after their first meld."""

    from . import state as state_module

    try:
        player = _player(state, player_index, IllegalDraw)
    except IllegalDraw:
        return False
    if player.phase != state_module.TurnPhase.AWAITING_DRAW:
        return False
    return player.has_melded and not state.discard_row.is_empty()


def draw_from_discard(state: "JollyState", player_index: int) -> Card:
    """Take the top card of the discard row for ``player_index``."""

    from . import state as state_module

    if not can_draw_from_discard(state, player_index):
        raise IllegalDraw("discard row draw is not legal at this time")
    player = state.players[player_index]
    card = state.discard_row.take_top()
    if card is None:  # pragma: no cover - guarded above
        raise IllegalDraw("discard row is empty")
    player.hand.add(card)
    player.phase = state_module.TurnPhase.AWAITING_DISCARD
    return card


def _require_play_phase(player: "PlayerState", error: type[RuntimeError]) -> None:
    from . import state as state_module

    if player.phase != state_module.TurnPhase.AWAITING_DISCARD:
        raise error("player must draw first")


def lay_down(
    state: "JollyState",
    player_index: int,
    groups: Sequence[Sequence[Card]],
) -> list[Meld]:
    """Move validated ``groups`` from the player's hand onto the table."""

    player = _player(state, player_index, IllegalMeld)
    _require_play_phase(player, IllegalMeld)
    if not groups:
        raise IllegalMeld("nothing to lay down")

    seen: set[Card] = set()
    melds: list[Meld] = []
    for group in groups:
        kind = classify_meld(group)
        if kind is None:
            raise IllegalMeld(f"not a valid meld: {encoding.format_cards(group)}")
        for card in group:
            if card in seen or not player.hand.has(card):
                raise IllegalMeld(f"card {card.code} is not available in hand")
            seen.add(card)
        melds.append(Meld(kind=kind, cards=list(group), owner=player_index))

    if len(player.hand) - len(seen) < 1:
        raise IllegalMeld("a card must remain in hand")
    if not player.has_melded and not meets_first_meld_requirement(melds, state.config.thresholds):
        raise IllegalMeld(
            f"first meld must be worth at least {state.config.thresholds.first_meld} points"
        )

    for card in seen:
        player.hand.remove(card)
    state.table.extend(melds)
    player.has_melded = True
    logger.info("player %d laid %d meld(s)", player_index, len(melds))
    return melds


def extend_meld(state: "JollyState", player_index: int, meld_index: int, card: Card) -> Meld:
    """Append ``card`` from the player's hand to a meld on the table."""

    player = _player(state, player_index, IllegalMeld)
    _require_play_phase(player, IllegalMeld)
    if not player.has_melded:
        raise IllegalMeld("player must meld before extending")
    if meld_index < 0 or meld_index >= len(state.table):
        raise IllegalMeld("invalid meld index")
    if not player.hand.has(card):
        raise IllegalMeld("card not present in hand")
    if len(player.hand) <= 1:
        raise IllegalMeld("a card must remain in hand")
    meld = state.table[meld_index]
    if not can_extend_meld(meld, card):
        raise IllegalMeld(f"{card.code} does not extend meld {meld_index}")

    player.hand.remove(card)
    meld.cards.append(card)
    return meld


def _advance_turn(state: "JollyState", player_index: int) -> None:
    from . import state as state_module

    state.turn_index += 1
    next_player = (player_index + 1) % len(state.players)
    state.current_player = next_player
    state.players[next_player].phase = state_module.TurnPhase.AWAITING_DRAW


def _finish(state: "JollyState", player_index: int, *, closed: bool) -> None:
    from . import state as state_module

    state.winner_index = player_index
    state.closed_by_end_round = closed
    for player in state.players:
        player.phase = state_module.TurnPhase.COMPLETE
    logger.info("round finished, winner P%d", player_index)


def discard_card(state: "JollyState", player_index: int, card: Card) -> None:
    """Discard ``card`` to the row and pass the turn.

    Emptying the hand of a player who has already melded ends the round.
    """

    from . import state as state_module

    player = _player(state, player_index, IllegalDiscard)
    if player.phase != state_module.TurnPhase.AWAITING_DISCARD:
        raise IllegalDiscard("player must draw before discarding")
    if player.hand.remove(card) is None:
        raise IllegalDiscard("card not present in hand")

    state.discard_row.push(card)
    if not player.hand and player.has_melded:
        _finish(state, player_index, closed=False)
        return
    _advance_turn(state, player_index)


def end_round(state: "JollyState", player_index: int) -> Card:
    """Close the round with the player's single unusable card (zudrehen)."""

    player = _player(state, player_index, IllegalEndRound)
    _require_play_phase(player, IllegalEndRound)
    if not can_end_round(player.hand.cards, state.table):
        raise IllegalEndRound("the last card must be a single natural card that fits no meld")
    _finish(state, player_index, closed=True)
    return player.hand.cards[0]


def apply_turn_result(state: "JollyState", player_index: int, result: "TurnResult") -> None:
    """Apply an AI turn whose draw and hand updates already happened."""

    from .ai.strategy import TurnAction

    player = state.players[player_index]
    if state.winner_index is not None or state.current_player != player_index:
        raise RuntimeError("cannot apply a turn out of order")
    for meld in result.melds_laid:
        meld.owner = player_index
        state.table.append(meld)
    if result.melds_laid:
        player.has_melded = True

    if result.action is TurnAction.END_ROUND:
        if not can_end_round(player.hand.cards, state.table):
            raise IllegalEndRound("AI closed the round without qualifying")
        _finish(state, player_index, closed=True)
        return

    if result.card is None or player.hand.has(result.card):
        raise IllegalDiscard("discarded card must have left the hand")
    state.discard_row.push(result.card)
    if not player.hand and player.has_melded:
        _finish(state, player_index, closed=False)
        return
    _advance_turn(state, player_index)


def round_scores(state: "JollyState") -> list[PlayerRoundScore]:
    """Return the penalty breakdown for each player once the round is over."""

    if state.winner_index is None:
        raise ValueError("winner has not been determined")

    bonus_value = state.config.thresholds.end_round_bonus if state.closed_by_end_round else 0
    scores: list[PlayerRoundScore] = []
    for idx, player in enumerate(state.players):
        won = idx == state.winner_index
        hand_points = 0 if won else calculate_hand_points(player.hand)
        bonus = bonus_value if won else 0
        scores.append(
            PlayerRoundScore(
                player_index=idx,
                hand_points=hand_points,
                bonus=bonus,
                net_points=hand_points - bonus,
                won_round=won,
            )
        )
    return scores


def settle_round(state: "JollyState") -> int:
    """End a stalled round in favour of the lowest hand penalty."""

    if state.winner_index is not None:
        return state.winner_index
    penalties = [calculate_hand_points(player.hand) for player in state.players]
    winner = min(range(len(penalties)), key=penalties.__getitem__)
    _finish(state, winner, closed=False)
    return winner
