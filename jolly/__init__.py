"""Top-level package for the Jolly rules engine."""

from . import cards, encoding, melds, rules, state

__all__ = [
    "cards",
    "encoding",
    "melds",
    "rules",
    "state",
]
