"""Terminal front-end for Jolly."""
