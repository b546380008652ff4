"""Kanatype Routers Package"""

from kanatype.routers import (
    game,
    words,
    rankings,
)

__all__ = [
    "game",
    "words",
    "rankings",
]
