"""Game models."""

from .card import PLACEHOLDER_CARD, Card, Rank, Suit
from .game_state import GameState, GameStatus, TrickCard
from .player import Participant, Player, PresenceStatus
from .room import Room

__all__ = [
    "Card",
    "Rank",
    "Suit",
    "PLACEHOLDER_CARD",
    "Participant",
    "Player",
    "PresenceStatus",
    "GameState",
    "GameStatus",
    "TrickCard",
    "Room",
]
