"""Helpers for tracking multi-round Jolly match results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .rules import PlayerRoundScore
from .state import LOW_TARGET_SCORE

__all__ = ["RoundSummary", "PlayerMatchTotal", "MatchHistory"]


@dataclass(frozen=True, slots=True)
class RoundSummary:
    """Summary captured after a single round."""

    round_number: int
    winner_index: int
    closed_by_end_round: bool
    scores: Sequence[PlayerRoundScore]


@dataclass(frozen=True, slots=True)
class PlayerMatchTotal:
    """Aggregate match totals accumulated across all recorded rounds."""

    player_index: int
    wins: int
    hand_points: int
    bonus: int
    penalty: int


@dataclass(slots=True)
class MatchHistory:
    """Penalty tracker; the match ends once anyone reaches ``target_score``."""

    num_players: int
    target_score: int = LOW_TARGET_SCORE
    rounds: list[RoundSummary] = field(default_factory=list)
    _wins: list[int] = field(init=False, repr=False)
    _hand: list[int] = field(init=False, repr=False)
    _bonus: list[int] = field(init=False, repr=False)
    _penalty: list[int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.num_players <= 0:
            raise ValueError("num_players must be positive")
        self._wins = [0 for _ in range(self.num_players)]
        self._hand = [0 for _ in range(self.num_players)]
        self._bonus = [0 for _ in range(self.num_players)]
        self._penalty = [0 for _ in range(self.num_players)]

    def record(self, summary: RoundSummary) -> None:
        """Record ``summary`` and update cumulative totals."""

        if len(summary.scores) != self.num_players:
            raise ValueError("score count does not match number of players")
        self.rounds.append(summary)
        for score in summary.scores:
            idx = score.player_index
            if idx < 0 or idx >= self.num_players:
                raise ValueError("player index out of range")
            self._hand[idx] += score.hand_points
            self._bonus[idx] += score.bonus
            self._penalty[idx] += score.net_points
            if score.won_round:
                self._wins[idx] += 1

    def totals(self) -> list[PlayerMatchTotal]:
        """Return the cumulative totals for each player in seating order."""

        return [
            PlayerMatchTotal(
                player_index=idx,
                wins=self._wins[idx],
                hand_points=self._hand[idx],
                bonus=self._bonus[idx],
                penalty=self._penalty[idx],
            )
            for idx in range(self.num_players)
        ]

    @property
    def is_over(self) -> bool:
        return any(penalty >= self.target_score for penalty in self._penalty)

    def leader(self) -> int:
        """Return the seat with the fewest penalty points (lowest index on ties)."""

        return min(range(self.num_players), key=lambda idx: self._penalty[idx])
