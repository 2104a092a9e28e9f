"""Rendering helpers dedicated to the CLI experience."""

from __future__ import annotations

from typing import Iterable, Sequence

from rich import box
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table

from .. import scoreboard
from ..cards import Card
from ..melds import Meld
from ..rules import calculate_meld_points
from ..state import JollyState

_SUIT_COLORS = {
    "S": "cyan",
    "H": "red",
    "D": "magenta",
    "C": "green",
}


def format_card(card: Card) -> str:
    """Return a Rich-rendered label for ``card``."""

    if card.is_joker:
        return "[bold yellow]🃏[/bold yellow]"
    color = _SUIT_COLORS.get(card.suit.value, "white")
    return f"[{color}]{card.label()}[/{color}]"


def format_hand(cards: Sequence[Card], *, numbered: bool = False) -> str:
    if not cards:
        return "-"
    if numbered:
        return "  ".join(f"[dim]{idx}:[/dim]{format_card(card)}" for idx, card in enumerate(cards, start=1))
    return " ".join(format_card(card) for card in cards)


def _meld_table(melds: Sequence[Meld], labels: Sequence[str]) -> Table:
    table = Table(box=box.MINIMAL, expand=True)
    table.add_column("Meld", justify="left", style="bold")
    table.add_column("Owner", justify="left")
    table.add_column("Kind", justify="left")
    table.add_column("Cards", justify="left")
    table.add_column("Points", justify="right")
    for idx, meld in enumerate(melds, start=1):
        owner = labels[meld.owner] if meld.owner is not None and meld.owner < len(labels) else "?"
        kind = meld.kind.value.title()
        if meld.pure:
            kind += " (pure)"
        table.add_row(f"M{idx}", owner, kind, format_hand(meld.cards), str(calculate_meld_points(meld)))
    return table


def render_state(
    state: JollyState,
    labels: Sequence[str],
    *,
    reveal_players: Iterable[int] = (),
    title: str = "Jolly",
) -> RenderableType:
    """Return a Rich panel describing the current table state."""

    revealed = set(reveal_players)
    players = Table(box=box.ROUNDED, expand=True)
    players.add_column("Player", justify="left", style="bold")
    players.add_column("Hand", justify="left")
    players.add_column("Melded", justify="left")
    for idx, player in enumerate(state.players):
        name = labels[idx] if idx < len(labels) else f"P{idx}"
        if idx == state.current_player and state.winner_index is None:
            name = f"[bold yellow]{name}[/bold yellow]"
        if idx in revealed:
            hand = format_hand(player.hand.cards, numbered=True)
        else:
            hand = f"{len(player.hand)} cards"
        players.add_row(name, hand, "yes" if player.has_melded else "no")

    meta = Table.grid(expand=True)
    meta.add_column(justify="left")
    meta.add_row(f"[cyan]Deck[/cyan]: {len(state.deck)} card(s)")
    visible = state.discard_row.visible()
    if visible:
        meta.add_row(f"[cyan]Discard row[/cyan]: {format_hand(visible)} ({len(state.discard_row)} total)")
    else:
        meta.add_row("[cyan]Discard row[/cyan]: empty")
    meta.add_row(f"[cyan]First meld[/cyan]: {state.config.thresholds.first_meld} points")

    components: list[RenderableType] = [players, Panel(meta, box=box.SQUARE, border_style="blue")]
    if state.table:
        components.append(
            Panel(_meld_table(state.table, labels), title="Table Melds", box=box.SQUARE, border_style="green")
        )
    return Panel(Group(*components), title=title, padding=(0, 1), border_style="cyan")


def render_round_summary(summary: scoreboard.RoundSummary, labels: Sequence[str]) -> Table:
    """Return a Rich table describing the outcome of a round."""

    table = Table(title=f"Round {summary.round_number} Summary", box=box.SIMPLE_HEAVY)
    table.add_column("Player", justify="center")
    table.add_column("Result", justify="center")
    table.add_column("Hand", justify="right")
    table.add_column("Bonus", justify="right")
    table.add_column("Penalty", justify="right")
    for entry in summary.scores:
        label = labels[entry.player_index]
        result = "Loss"
        if entry.won_round:
            label = f"[bold green]{label}[/bold green]"
            result = "[bold green]Closed[/bold green]" if summary.closed_by_end_round else "[bold green]Win[/bold green]"
        table.add_row(label, result, str(entry.hand_points), str(entry.bonus), str(entry.net_points))
    return table


def render_match_summary(history: scoreboard.MatchHistory, labels: Sequence[str]) -> Table:
    """Return the aggregated match table; the lowest penalty leads."""

    table = Table(title="Match Summary", box=box.DOUBLE_EDGE)
    table.add_column("Player", justify="center")
    table.add_column("Wins", justify="right")
    table.add_column("Hand", justify="right")
    table.add_column("Bonus", justify="right")
    table.add_column("Penalty", justify="right")
    leader = history.leader() if history.rounds else None
    for total in history.totals():
        label = labels[total.player_index]
        penalty = str(total.penalty)
        if total.player_index == leader:
            label = f"[bold blue]{label}[/bold blue]"
            penalty = f"[bold blue]{penalty}[/bold blue]"
        table.add_row(label, str(total.wins), str(total.hand_points), str(total.bonus), penalty)
    return table
