from __future__ import annotations

import random

import pytest
from rich.console import Console
from typer.testing import CliRunner

from jolly import scoreboard, state
from jolly.cards import Hand
from jolly.cli.main import MAX_EVENT_LOG, _append_event, app, parse_meld_groups, parse_positions
from jolly.cli.render import render_match_summary, render_round_summary, render_state
from jolly.encoding import cards_from_codes
from jolly.rules import PlayerRoundScore

runner = CliRunner()


def test_parse_meld_groups_reads_positions() -> None:
    hand = Hand(cards_from_codes("QS KS AS 2C 3C 4C 9H"))

    groups = parse_meld_groups("1 2 3 / 4 5 6", hand)

    assert groups == [cards_from_codes("QS KS AS"), cards_from_codes("2C 3C 4C")]


@pytest.mark.parametrize("text", ["", "1 2 x", "1 2 9", "1 1 2", "1 2 3 / 3 4 5"])
def test_parse_meld_groups_rejects_bad_input(text: str) -> None:
    hand = Hand(cards_from_codes("QS KS AS 2C 3C"))

    with pytest.raises(ValueError):
        parse_meld_groups(text, hand)


def test_parse_positions_maps_to_cards() -> None:
    hand = Hand(cards_from_codes("QS KS AS"))

    assert parse_positions(["3", "1"], hand) == cards_from_codes("AS QS")


def test_append_event_keeps_log_bounded() -> None:
    log: list[str] = []
    for idx in range(MAX_EVENT_LOG + 3):
        _append_event(log, f"event {idx}")

    assert len(log) == MAX_EVENT_LOG
    assert log[0] == "event 3"


def test_render_state_hides_opponent_hand() -> None:
    game_state = state.deal_new_round(rng=random.Random(4))
    console = Console(record=True, width=160)

    console.print(render_state(game_state, ("You", "AI"), reveal_players=[0]))
    text = console.export_text()

    assert "12 cards" in text
    assert "Deck" in text


def test_render_summaries() -> None:
    summary = scoreboard.RoundSummary(
        round_number=1,
        winner_index=0,
        closed_by_end_round=True,
        scores=[
            PlayerRoundScore(player_index=0, hand_points=0, bonus=30, net_points=-30, won_round=True),
            PlayerRoundScore(player_index=1, hand_points=45, bonus=0, net_points=45, won_round=False),
        ],
    )
    history = scoreboard.MatchHistory(num_players=2)
    history.record(summary)
    console = Console(record=True, width=120)

    console.print(render_round_summary(summary, ("You", "AI")))
    console.print(render_match_summary(history, ("You", "AI")))
    text = console.export_text()

    assert "Closed" in text
    assert "-30" in text
    assert "45" in text


def test_simulate_command_prints_table() -> None:
    result = runner.invoke(app, ["simulate", "--rounds", "2", "--seed", "5"])

    assert result.exit_code == 0, result.output
    assert "AI Match" in result.output


def test_hand_command_reports_melds() -> None:
    result = runner.invoke(app, ["hand", "QS KS AS 2C 9H"])

    assert result.exit_code == 0, result.output
    assert "sequence" in result.output
    assert "30 pts" in result.output
    assert "First meld reached: True" in result.output


def test_unknown_difficulty_is_rejected() -> None:
    result = runner.invoke(app, ["simulate", "--first", "grandmaster"])

    assert result.exit_code != 0


def test_play_command_can_quit() -> None:
    result = runner.invoke(app, ["play", "--seed", "3", "--pace", "0"], input="help\nquit\n")

    assert result.exit_code == 0, result.output
    assert "Round 1 dealt" in result.output
