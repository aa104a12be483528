"""Game logging module."""

from .formatters import format_card, format_cards, format_hands, format_trick
from .game_logger import GameLogConfig, GameLogger

__all__ = [
    "GameLogConfig",
    "GameLogger",
    "format_card",
    "format_cards",
    "format_hands",
    "format_trick",
]
