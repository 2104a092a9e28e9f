"""Benchmark harness for pitting AI difficulty profiles against each other."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from . import rules, scoreboard, state
from .ai.pacing import PacingToken
from .ai.profiles import Difficulty
from .ai.strategy import AIStrategy

__all__ = ["AgentBreakdown", "MatchReport", "play_round", "run_match", "DEFAULT_TURN_LIMIT"]

logger = logging.getLogger(__name__)

DEFAULT_TURN_LIMIT = 400


@dataclass(frozen=True, slots=True)
class AgentBreakdown:
    """Aggregate statistics collected for a single seat across a match."""

    label: str
    wins: int
    closes: int
    penalty: int
    mean_round_penalty: float
    std_round_penalty: float


@dataclass(frozen=True, slots=True)
class MatchReport:
    """Summary of a head-to-head match between AI profiles."""

    history: scoreboard.MatchHistory
    agents: Sequence[AgentBreakdown]
    winner_index: int


def play_round(
    strategies: Sequence[AIStrategy],
    config: state.JollyConfig,
    rng: random.Random,
    *,
    round_number: int = 1,
    starting_player: int = 0,
    turn_limit: int = DEFAULT_TURN_LIMIT,
) -> scoreboard.RoundSummary:
    """Play one round where every seat is driven by an ``AIStrategy``."""

    if len(strategies) != config.num_players:
        raise ValueError("one strategy is required per seat")

    game_state = state.deal_new_round(config, rng, starting_player=starting_player)
    for strategy, player in zip(strategies, game_state.players):
        strategy.hand = player.hand

    opener = strategies[starting_player]
    rules.discard_card(game_state, starting_player, opener.choose_opening_discard())

    for _ in range(turn_limit):
        if game_state.winner_index is not None:
            break
        current = game_state.current_player
        rules.replenish_deck(game_state)
        if game_state.deck.is_empty():
            logger.info("round %d stalled with an exhausted deck", round_number)
            break
        result = strategies[current].play_turn(
            game_state.deck,
            game_state.discard_row,
            game_state.table,
            game_state.players[current].has_melded,
        )
        rules.apply_turn_result(game_state, current, result)

    if game_state.winner_index is None:
        rules.settle_round(game_state)

    winner_index = game_state.winner_index if game_state.winner_index is not None else -1
    return scoreboard.RoundSummary(
        round_number=round_number,
        winner_index=winner_index,
        closed_by_end_round=game_state.closed_by_end_round,
        scores=rules.round_scores(game_state),
    )


def run_match(
    difficulties: Sequence[Difficulty],
    *,
    seed: int = 123,
    target_score: int = state.LOW_TARGET_SCORE,
    max_rounds: int = 50,
    turn_limit: int = DEFAULT_TURN_LIMIT,
) -> MatchReport:
    """Play rounds until a seat reaches ``target_score`` or ``max_rounds`` runs out."""

    if len(difficulties) < 2:
        raise ValueError("a match needs at least two seats")
    if max_rounds <= 0:
        raise ValueError("max_rounds must be positive")

    rng = random.Random(seed)
    config = state.JollyConfig(num_players=len(difficulties), target_score=target_score)
    strategies = [
        AIStrategy(difficulty, rng=random.Random(rng.random()), pacer=PacingToken.instant())
        for difficulty in difficulties
    ]
    history = scoreboard.MatchHistory(num_players=config.num_players, target_score=target_score)

    starting_player = 0
    for round_number in range(1, max_rounds + 1):
        summary = play_round(
            strategies,
            config,
            rng,
            round_number=round_number,
            starting_player=starting_player,
            turn_limit=turn_limit,
        )
        history.record(summary)
        logger.info(
            "round %d won by P%d%s",
            round_number,
            summary.winner_index,
            " (closed)" if summary.closed_by_end_round else "",
        )
        if history.is_over:
            break
        starting_player = (starting_player + 1) % config.num_players

    per_round = np.array(
        [[score.net_points for score in summary.scores] for summary in history.rounds],
        dtype=np.int64,
    )
    means = per_round.mean(axis=0)
    stds = per_round.std(axis=0)
    closes = [0 for _ in difficulties]
    for summary in history.rounds:
        if summary.closed_by_end_round:
            closes[summary.winner_index] += 1

    agents = [
        AgentBreakdown(
            label=f"P{total.player_index} {difficulties[total.player_index].name}",
            wins=total.wins,
            closes=closes[total.player_index],
            penalty=total.penalty,
            mean_round_penalty=float(means[total.player_index]),
            std_round_penalty=float(stds[total.player_index]),
        )
        for total in history.totals()
    ]
    return MatchReport(history=history, agents=agents, winner_index=history.leader())
