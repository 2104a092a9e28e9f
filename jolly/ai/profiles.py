"""Difficulty profiles for the computer opponent."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

__all__ = ["Difficulty", "EASY", "MEDIUM", "HARD", "PROFILES", "difficulty_by_name"]


@dataclass(frozen=True, slots=True)
class Difficulty:
    """Parameters that weaken or sharpen the AI's decisions.

    ``think_delay`` is cosmetic pacing in seconds. ``error_rate`` is the chance
    of replacing a considered choice with a random one. ``strategy_depth``
    gates optional plays: depth 1 may skip later lay-downs and never closes
    the round.
    """

    name: str
    think_delay: float
    error_rate: float
    strategy_depth: int

    def __post_init__(self) -> None:
        if not 0.0 <= self.error_rate <= 1.0:
            raise ValueError("error_rate must be within [0, 1]")
        if self.strategy_depth not in (1, 2, 3):
            raise ValueError("strategy_depth must be 1, 2 or 3")
        if self.think_delay < 0:
            raise ValueError("think_delay cannot be negative")


EASY: Final[Difficulty] = Difficulty(name="Easy", think_delay=1.0, error_rate=0.3, strategy_depth=1)
MEDIUM: Final[Difficulty] = Difficulty(name="Medium", think_delay=1.5, error_rate=0.15, strategy_depth=2)
HARD: Final[Difficulty] = Difficulty(name="Hard", think_delay=2.0, error_rate=0.05, strategy_depth=3)

PROFILES: Final[dict[str, Difficulty]] = {
    "easy": EASY,
    "medium": MEDIUM,
    "hard": HARD,
}


def difficulty_by_name(name: str) -> Difficulty:
    """Return the profile registered under ``name`` (case-insensitive)."""

    try:
        return PROFILES[name.strip().lower()]
    except KeyError:
        raise ValueError(f"unknown difficulty '{name}'") from None
