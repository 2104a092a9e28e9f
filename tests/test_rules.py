"""Tests covering Jolly rule helpers and turn operations."""

from __future__ import annotations

from typing import Sequence

import pytest

from jolly import rules, state
from jolly.cards import Deck, DiscardRow, Hand
from jolly.encoding import card_from_code, cards_from_codes
from jolly.melds import Meld, MeldKind


def _meld(kind: MeldKind, codes: str, owner: int | None = None) -> Meld:
    return Meld(kind=kind, cards=cards_from_codes(codes), owner=owner)


def _state(
    hands: Sequence[str],
    *,
    deck: str = "",
    discard: str = "",
    melded: Sequence[bool] = (False, False),
    table: Sequence[Meld] = (),
    current: int = 0,
    phase: state.TurnPhase = state.TurnPhase.AWAITING_DRAW,
) -> state.JollyState:
    players = [
        state.PlayerState(hand=Hand(cards_from_codes(codes)), has_melded=has_melded)
        for codes, has_melded in zip(hands, melded)
    ]
    players[current].phase = phase
    return state.JollyState(
        deck=Deck(cards=cards_from_codes(deck), shuffle=False),
        discard_row=DiscardRow(cards_from_codes(discard)),
        table=list(table),
        players=players,
        current_player=current,
    )


@pytest.mark.parametrize(
    ("player_index", "expected"),
    [
        (0, 13),
        (1, 12),
    ],
)
def test_deal_pattern_hand_size(player_index: int, expected: int) -> None:
    assert rules.DEFAULT_DEAL_PATTERN.hand_size_for(player_index) == expected


@pytest.mark.parametrize(
    ("kind", "codes", "card", "expected"),
    [
        (MeldKind.SEQUENCE, "5S 6S 7S", "8S", True),
        (MeldKind.SEQUENCE, "5S 6S 7S", "4S", True),
        (MeldKind.SEQUENCE, "5S 6S 7S", "8H", False),
        (MeldKind.SEQUENCE, "5S 6S 7S", "JOKER#0", True),
        (MeldKind.SEQUENCE, "QS KS", "AS", True),
        (MeldKind.SET, "7S 7H 7D", "7C", True),
        (MeldKind.SET, "7S 7H 7D", "8C", False),
        (MeldKind.SET, "7S 7H 7D 7C", "JOKER#0", False),
    ],
)
def test_can_extend_meld(kind: MeldKind, codes: str, card: str, expected: bool) -> None:
    assert rules.can_extend_meld(_meld(kind, codes), card_from_code(card)) is expected


def test_can_end_round_requires_single_unusable_natural() -> None:
    table = [_meld(MeldKind.SEQUENCE, "5S 6S 7S"), _meld(MeldKind.SET, "KH KD KC")]

    assert rules.can_end_round(cards_from_codes("2C"), table)
    assert rules.can_end_round(cards_from_codes("8S"), [])
    assert not rules.can_end_round(cards_from_codes("8S"), table)
    assert not rules.can_end_round(cards_from_codes("KS"), table)
    assert not rules.can_end_round(cards_from_codes("2C 3C"), table)
    assert not rules.can_end_round([], table)


@pytest.mark.parametrize(
    "table",
    [
        [],
        [_meld(MeldKind.SET, "7S 7H 7D 7C")],
        [_meld(MeldKind.SEQUENCE, "5S 6S 7S")],
    ],
)
def test_joker_never_ends_round(table: list[Meld]) -> None:
    assert not rules.can_end_round(cards_from_codes("JOKER#0"), table)


@pytest.mark.parametrize(
    ("codes", "expected"),
    [
        ("7S 8S 9S KH 3D", "KH"),
        ("JOKER#0 3D KH", "KH"),
        ("JOKER#0 JOKER#1", "JOKER#0"),
        ("7S 8S 9S 4H 4D 4C", "7S"),
        ("2C", "2C"),
    ],
)
def test_suggest_discard(codes: str, expected: str) -> None:
    assert rules.suggest_discard(cards_from_codes(codes)) == card_from_code(expected)


def test_suggest_discard_rejects_empty_hand() -> None:
    with pytest.raises(ValueError):
        rules.suggest_discard([])


def test_draw_from_deck_takes_top_card() -> None:
    game_state = _state(["2H", "3H"], deck="2C 3C")

    card = rules.draw_from_deck(game_state, 0)

    assert card == card_from_code("3C")
    assert game_state.players[0].hand.has(card)
    assert game_state.players[0].phase == state.TurnPhase.AWAITING_DISCARD
    with pytest.raises(rules.IllegalDraw):
        rules.draw_from_deck(game_state, 0)


def test_draw_out_of_turn_is_rejected() -> None:
    game_state = _state(["2H", "3H"], deck="2C", current=1)

    with pytest.raises(rules.IllegalDraw):
        rules.draw_from_deck(game_state, 0)


def test_draw_from_deck_reshuffles_discards_except_top() -> None:
    game_state = _state(["2H", "3H"], discard="2C 3C 4C")

    card = rules.draw_from_deck(game_state, 0)

    assert card in cards_from_codes("2C 3C")
    assert game_state.discard_row.cards == cards_from_codes("4C")
    assert len(game_state.deck) == 1


def test_draw_fails_when_nothing_can_be_reshuffled() -> None:
    game_state = _state(["2H", "3H"], discard="4C")

    assert not rules.replenish_deck(game_state)
    with pytest.raises(rules.IllegalDraw):
        rules.draw_from_deck(game_state, 0)


def test_discard_row_opens_after_first_meld() -> None:
    closed = _state(["2H", "3H"], deck="2C", discard="9D")
    assert not rules.can_draw_from_discard(closed, 0)
    with pytest.raises(rules.IllegalDraw):
        rules.draw_from_discard(closed, 0)

    opened = _state(["2H", "3H"], deck="2C", discard="8D 9D", melded=(True, False))
    card = rules.draw_from_discard(opened, 0)

    assert card == card_from_code("9D")
    assert opened.discard_row.cards == cards_from_codes("8D")
    assert opened.players[0].phase == state.TurnPhase.AWAITING_DISCARD


def test_first_lay_down_must_reach_threshold() -> None:
    game_state = _state(["AS 2S 3S 9H", "3H"], phase=state.TurnPhase.AWAITING_DISCARD)

    with pytest.raises(rules.IllegalMeld):
        rules.lay_down(game_state, 0, [cards_from_codes("AS 2S 3S")])

    assert len(game_state.players[0].hand) == 4
    assert game_state.table == []
    assert not game_state.players[0].has_melded


def test_lay_down_moves_cards_to_table() -> None:
    game_state = _state(["QS KS AS 9H", "3H"], phase=state.TurnPhase.AWAITING_DISCARD)

    melds = rules.lay_down(game_state, 0, [cards_from_codes("QS KS AS")])

    assert len(melds) == 1
    assert melds[0].kind is MeldKind.SEQUENCE
    assert melds[0].owner == 0
    assert game_state.table == melds
    assert game_state.players[0].hand.cards == cards_from_codes("9H")
    assert game_state.players[0].has_melded


def test_later_lay_downs_skip_threshold() -> None:
    game_state = _state(
        ["AS 2S 3S 9H", "3H"],
        melded=(True, False),
        phase=state.TurnPhase.AWAITING_DISCARD,
    )

    rules.lay_down(game_state, 0, [cards_from_codes("AS 2S 3S")])

    assert game_state.players[0].hand.cards == cards_from_codes("9H")


@pytest.mark.parametrize(
    ("hand", "groups"),
    [
        ("QS KS AS", ["QS KS AS"]),
        ("QS KS AS 9H", ["QS KS 9H"]),
        ("QS KS 9H 2C", ["QS KS AS"]),
        ("QS KS AS 9H", ["QS KS AS", "AS QH KH"]),
    ],
)
def test_illegal_lay_downs_leave_state_untouched(hand: str, groups: list[str]) -> None:
    game_state = _state([hand, "3H"], phase=state.TurnPhase.AWAITING_DISCARD)

    with pytest.raises(rules.IllegalMeld):
        rules.lay_down(game_state, 0, [cards_from_codes(group) for group in groups])

    assert game_state.players[0].hand.cards == cards_from_codes(hand)
    assert game_state.table == []


def test_lay_down_requires_draw_first() -> None:
    game_state = _state(["QS KS AS 9H", "3H"])

    with pytest.raises(rules.IllegalMeld):
        rules.lay_down(game_state, 0, [cards_from_codes("QS KS AS")])


def test_extend_meld_appends_card() -> None:
    table = [_meld(MeldKind.SEQUENCE, "5S 6S 7S", owner=1)]
    game_state = _state(
        ["8S 2C", "3H"],
        melded=(True, False),
        table=table,
        phase=state.TurnPhase.AWAITING_DISCARD,
    )

    meld = rules.extend_meld(game_state, 0, 0, card_from_code("8S"))

    assert meld.cards == cards_from_codes("5S 6S 7S 8S")
    assert meld.owner == 1
    assert game_state.players[0].hand.cards == cards_from_codes("2C")


@pytest.mark.parametrize(
    ("hand", "melded", "meld_index", "card"),
    [
        ("8S 2C", False, 0, "8S"),
        ("8S 2C", True, 0, "2C"),
        ("8S 2C", True, 3, "8S"),
        ("8S 2C", True, 0, "9S"),
        ("8S", True, 0, "8S"),
    ],
)
def test_illegal_extensions(hand: str, melded: bool, meld_index: int, card: str) -> None:
    game_state = _state(
        [hand, "3H"],
        melded=(melded, False),
        table=[_meld(MeldKind.SEQUENCE, "5S 6S 7S")],
        phase=state.TurnPhase.AWAITING_DISCARD,
    )

    with pytest.raises(rules.IllegalMeld):
        rules.extend_meld(game_state, 0, meld_index, card_from_code(card))

    assert game_state.table[0].cards == cards_from_codes("5S 6S 7S")


def test_discard_passes_the_turn() -> None:
    game_state = _state(["2C 3C", "3H"], phase=state.TurnPhase.AWAITING_DISCARD)

    rules.discard_card(game_state, 0, card_from_code("2C"))

    assert game_state.discard_row.top == card_from_code("2C")
    assert game_state.current_player == 1
    assert game_state.turn_index == 1
    assert game_state.players[1].phase == state.TurnPhase.AWAITING_DRAW
    assert game_state.winner_index is None


def test_illegal_discards() -> None:
    waiting = _state(["2C 3C", "3H"])
    with pytest.raises(rules.IllegalDiscard):
        rules.discard_card(waiting, 0, card_from_code("2C"))

    ready = _state(["2C 3C", "3H"], phase=state.TurnPhase.AWAITING_DISCARD)
    with pytest.raises(rules.IllegalDiscard):
        rules.discard_card(ready, 0, card_from_code("KD"))
    assert ready.discard_row.is_empty()


def test_discarding_last_card_after_melding_wins() -> None:
    game_state = _state(
        ["2C", "3H KH"],
        melded=(True, False),
        phase=state.TurnPhase.AWAITING_DISCARD,
    )

    rules.discard_card(game_state, 0, card_from_code("2C"))

    assert game_state.winner_index == 0
    assert not game_state.closed_by_end_round
    scores = rules.round_scores(game_state)
    assert [score.net_points for score in scores] == [0, 15]


def test_end_round_scores_bonus() -> None:
    game_state = _state(
        ["2C", "KH AS"],
        melded=(True, False),
        table=[_meld(MeldKind.SEQUENCE, "5S 6S 7S", owner=0)],
        phase=state.TurnPhase.AWAITING_DISCARD,
    )

    closing = rules.end_round(game_state, 0)

    assert closing == card_from_code("2C")
    assert game_state.winner_index == 0
    assert game_state.closed_by_end_round
    winner, loser = rules.round_scores(game_state)
    assert (winner.hand_points, winner.bonus, winner.net_points, winner.won_round) == (0, 30, -30, True)
    assert (loser.hand_points, loser.bonus, loser.net_points, loser.won_round) == (35, 0, 35, False)


@pytest.mark.parametrize("hand", ["8S", "JOKER#0", "2C 3C"])
def test_end_round_rejects_ineligible_hands(hand: str) -> None:
    game_state = _state(
        [hand, "KH"],
        melded=(True, False),
        table=[_meld(MeldKind.SEQUENCE, "5S 6S 7S")],
        phase=state.TurnPhase.AWAITING_DISCARD,
    )

    with pytest.raises(rules.IllegalEndRound):
        rules.end_round(game_state, 0)
    assert game_state.winner_index is None


def test_round_scores_require_a_winner() -> None:
    with pytest.raises(ValueError):
        rules.round_scores(_state(["2C", "3C"]))


def test_settle_round_picks_lowest_penalty() -> None:
    game_state = _state(["KH 2C", "2D"])

    assert rules.settle_round(game_state) == 1
    assert game_state.winner_index == 1
    assert not game_state.closed_by_end_round
    assert rules.settle_round(game_state) == 1
