"""Typer entry-point wiring for the Jolly CLI."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Sequence

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .. import benchmark, rules, scoreboard, state
from ..ai.pacing import PacingToken
from ..ai.profiles import PROFILES, difficulty_by_name
from ..ai.strategy import AIStrategy, TurnAction
from ..cards import Card, Hand
from .render import format_card, format_hand, render_match_summary, render_round_summary, render_state

app = typer.Typer(add_completion=False, rich_markup_mode="rich")
console = Console()

HUMAN = 0
AI_SEAT = 1
LABELS = ("You", "AI")
MAX_EVENT_LOG = 8

HELP_TEXT = (
    "[bold]meld[/bold] 1 2 3 / 4 5 6   lay one or more melds (hand positions)\n"
    "[bold]extend[/bold] M I           add hand card I to table meld M\n"
    "[bold]discard[/bold] I            discard hand card I and pass the turn\n"
    "[bold]end[/bold]                  close the round with your last card\n"
    "[bold]sort[/bold] | [bold]hint[/bold] | [bold]help[/bold] | [bold]quit[/bold]"
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _append_event(log: list[str], message: str) -> None:
    """Append ``message`` to ``log`` maintaining a bounded log length."""

    log.append(message)
    excess = len(log) - MAX_EVENT_LOG
    if excess > 0:
        del log[:excess]


def parse_positions(tokens: Sequence[str], hand: Hand) -> list[Card]:
    """Translate 1-based hand positions into cards."""

    cards: list[Card] = []
    for token in tokens:
        if not token.isdigit():
            raise ValueError(f"'{token}' is not a hand position")
        position = int(token)
        if not 1 <= position <= len(hand):
            raise ValueError(f"position {position} is outside your hand")
        card = hand.cards[position - 1]
        if card in cards:
            raise ValueError(f"position {position} given twice")
        cards.append(card)
    return cards


def parse_meld_groups(text: str, hand: Hand) -> list[list[Card]]:
    """Parse ``"1 2 3 / 4 5 6"`` into groups of hand cards."""

    groups = [chunk.split() for chunk in text.split("/") if chunk.strip()]
    if not groups:
        raise ValueError("name at least one group of hand positions")
    parsed = [parse_positions(group, hand) for group in groups]
    flat = [card for group in parsed for card in group]
    if len(flat) != len(set(flat)):
        raise ValueError("a card cannot appear in two melds")
    return parsed


def _show(game_state: state.JollyState, events: Sequence[str], status: str, *, reveal_ai: bool) -> None:
    reveal = [HUMAN, AI_SEAT] if reveal_ai else [HUMAN]
    console.print(render_state(game_state, LABELS, reveal_players=reveal, title=status))
    for line in events:
        console.print(f"[magenta]•[/magenta] {line}")


def _human_draw(game_state: state.JollyState) -> Card:
    rules.replenish_deck(game_state)
    while True:
        source = "d"
        if rules.can_draw_from_discard(game_state, HUMAN):
            source = typer.prompt("Draw from [d]eck or discard [r]ow", default="d").strip().lower()
        if source.startswith("r"):
            return rules.draw_from_discard(game_state, HUMAN)
        if source.startswith("d"):
            return rules.draw_from_deck(game_state, HUMAN)
        console.print("[red]Please answer d or r.[/red]")


def _human_actions(game_state: state.JollyState, events: list[str], *, reveal_ai: bool) -> None:
    """Prompt for table plays until the human discards or closes the round."""

    player = game_state.players[HUMAN]
    while game_state.winner_index is None and game_state.current_player == HUMAN:
        raw = typer.prompt("Your move (help for commands)").strip()
        command, _, rest = raw.partition(" ")
        command = command.lower()
        try:
            if command == "meld":
                melds = rules.lay_down(game_state, HUMAN, parse_meld_groups(rest, player.hand))
                _append_event(events, f"You laid {len(melds)} meld(s)")
            elif command == "extend":
                meld_token, _, card_token = rest.strip().partition(" ")
                meld_index = int(meld_token.lstrip("mM")) - 1
                (card,) = parse_positions([card_token.strip()], player.hand)
                rules.extend_meld(game_state, HUMAN, meld_index, card)
                _append_event(events, f"You extended M{meld_index + 1} with {format_card(card)}")
            elif command == "discard":
                (card,) = parse_positions(rest.split(), player.hand)
                rules.discard_card(game_state, HUMAN, card)
                _append_event(events, f"You discarded {format_card(card)}")
                return
            elif command == "end":
                rules.end_round(game_state, HUMAN)
                _append_event(events, "You closed the round")
                return
            elif command == "sort":
                player.hand.sort()
            elif command == "hint":
                suggestion = rules.suggest_discard(player.hand.cards)
                console.print(f"Consider discarding {format_card(suggestion)}")
                continue
            elif command == "help":
                console.print(HELP_TEXT)
                continue
            elif command == "quit":
                raise typer.Exit()
            else:
                console.print(f"[red]Unknown command '{command}'.[/red]")
                continue
        except (rules.IllegalMeld, rules.IllegalDiscard, rules.IllegalEndRound, ValueError) as exc:
            console.print(f"[red]{exc}[/red]")
            continue
        _show(game_state, events, "Your turn", reveal_ai=reveal_ai)


def _ai_turn(game_state: state.JollyState, ai: AIStrategy, events: list[str]) -> None:
    rules.replenish_deck(game_state)
    player = game_state.players[AI_SEAT]
    result = asyncio.run(
        ai.take_turn(
            game_state.deck,
            game_state.discard_row,
            game_state.table,
            player.has_melded,
            on_update=lambda message: _append_event(events, message),
        )
    )
    rules.apply_turn_result(game_state, AI_SEAT, result)
    if result.action is TurnAction.DISCARD and result.card is not None:
        _append_event(events, f"AI discarded {format_card(result.card)}")


def _play_interactive_round(
    round_number: int,
    config: state.JollyConfig,
    ai: AIStrategy,
    rng: random.Random,
    starting_player: int,
    *,
    reveal_ai: bool,
) -> scoreboard.RoundSummary:
    game_state = state.deal_new_round(config, rng, starting_player=starting_player)
    ai.hand = game_state.players[AI_SEAT].hand
    events: list[str] = [f"Round {round_number} dealt"]

    if starting_player == AI_SEAT:
        rules.discard_card(game_state, AI_SEAT, ai.choose_opening_discard())
        _append_event(events, "AI opened with a discard")

    while game_state.winner_index is None:
        if game_state.current_player == HUMAN:
            player = game_state.players[HUMAN]
            if player.phase == state.TurnPhase.AWAITING_DRAW:
                if game_state.deck.is_empty() and len(game_state.discard_row) <= 1:
                    rules.settle_round(game_state)
                    break
                _show(game_state, events, "Your turn: draw", reveal_ai=reveal_ai)
                card = _human_draw(game_state)
                _append_event(events, f"You drew {format_card(card)}")
            _show(game_state, events, "Your turn", reveal_ai=reveal_ai)
            _human_actions(game_state, events, reveal_ai=reveal_ai)
        else:
            if game_state.deck.is_empty() and len(game_state.discard_row) <= 1:
                rules.settle_round(game_state)
                break
            console.print("[dim]AI is thinking...[/dim]")
            _ai_turn(game_state, ai, events)

    _show(game_state, events, "Round over", reveal_ai=True)
    return scoreboard.RoundSummary(
        round_number=round_number,
        winner_index=game_state.winner_index if game_state.winner_index is not None else -1,
        closed_by_end_round=game_state.closed_by_end_round,
        scores=rules.round_scores(game_state),
    )


def _difficulty_option(value: str) -> str:
    try:
        difficulty_by_name(value)
    except ValueError as exc:
        raise typer.BadParameter(f"choose one of: {', '.join(PROFILES)}") from exc
    return value


@app.command()
def play(
    difficulty: str = typer.Option("medium", callback=_difficulty_option, help="AI difficulty profile."),
    seed: int | None = typer.Option(None, help="Random seed for reproducible games (omit for randomness)."),
    target: int = typer.Option(state.LOW_TARGET_SCORE, min=1, help="Penalty points that end the match."),
    pace: float = typer.Option(1.0, min=0.0, help="Multiplier for AI thinking pauses (0 disables them)."),
    debug: bool = typer.Option(False, "--debug", help="Reveal the AI hand."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log AI decisions."),
) -> None:
    """Play a match against the computer."""

    _configure_logging(verbose)
    rng = random.Random(seed)
    config = state.JollyConfig(num_players=2, target_score=target)
    ai = AIStrategy(difficulty, rng=random.Random(rng.random()), pacer=PacingToken(scale=pace))
    history = scoreboard.MatchHistory(num_players=2, target_score=target)

    starting_player = HUMAN
    round_number = 1
    while not history.is_over:
        summary = _play_interactive_round(
            round_number, config, ai, rng, starting_player, reveal_ai=debug
        )
        history.record(summary)
        console.print(render_round_summary(summary, LABELS))
        console.print(render_match_summary(history, LABELS))
        if history.is_over or not typer.confirm("Play the next round?", default=True):
            break
        starting_player = (starting_player + 1) % 2
        round_number += 1

    winner = history.leader()
    console.print(f"[bold]{LABELS[winner]} lead{'s' if winner else ''} the match.[/bold]")


@app.command()
def simulate(
    first: str = typer.Option("medium", callback=_difficulty_option, help="Difficulty of seat P0."),
    second: str = typer.Option("hard", callback=_difficulty_option, help="Difficulty of seat P1."),
    seed: int = typer.Option(123, help="Random seed for the match."),
    target: int = typer.Option(state.LOW_TARGET_SCORE, min=1, help="Penalty points that end the match."),
    rounds: int = typer.Option(50, min=1, help="Maximum number of rounds."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every round."),
) -> None:
    """Run an AI vs. AI match and print the summary."""

    _configure_logging(verbose)
    report = benchmark.run_match(
        [difficulty_by_name(first), difficulty_by_name(second)],
        seed=seed,
        target_score=target,
        max_rounds=rounds,
    )

    table = Table(title="AI Match", box=box.SIMPLE_HEAVY)
    table.add_column("Agent", justify="center")
    table.add_column("Wins", justify="right")
    table.add_column("Closes", justify="right")
    table.add_column("Penalty", justify="right")
    table.add_column("Mean / round", justify="right")
    table.add_column("Std / round", justify="right")
    for agent in report.agents:
        table.add_row(
            agent.label,
            str(agent.wins),
            str(agent.closes),
            str(agent.penalty),
            f"{agent.mean_round_penalty:.1f}",
            f"{agent.std_round_penalty:.1f}",
        )
    console.print(table)
    console.print(
        f"[cyan]{len(report.history.rounds)} round(s) played; "
        f"{report.agents[report.winner_index].label} leads.[/cyan]"
    )


@app.command()
def hand(cards: str = typer.Argument(..., help="Card codes, e.g. '7S 7H 7D JOKER#0 QS KS AS'.")) -> None:
    """Show the melds, points and suggested discard for a hand."""

    from ..encoding import cards_from_codes
    from ..melds import find_melds

    try:
        parsed = cards_from_codes(cards)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    melds = find_melds(parsed)
    for meld in melds:
        console.print(
            f"{meld.kind.value:<9} {format_hand(meld.cards)}  ({rules.calculate_meld_points(meld)} pts)"
        )
    console.print(f"First meld reached: {rules.meets_first_meld_requirement(melds)}")
    console.print(f"Hand penalty: {rules.calculate_hand_points(parsed)}")
    console.print(f"Deadwood penalty: {rules.deadwood_points(parsed)}")
    if parsed:
        console.print(f"Suggested discard: {format_card(rules.suggest_discard(parsed))}")


def main() -> None:
    """Entry-point for ``python -m jolly.cli``."""

    app()


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    main()
