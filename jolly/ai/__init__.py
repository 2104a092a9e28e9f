"""Computer opponent for Jolly."""

from . import pacing, profiles, strategy

__all__ = [
    "pacing",
    "profiles",
    "strategy",
]
