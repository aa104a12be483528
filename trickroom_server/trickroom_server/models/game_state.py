"""Game state models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from .card import Card, Suit
from .player import Player


class GameStatus(str, Enum):
    """Lifecycle status of a game."""

    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


# Status only ever moves forward along this order
_STATUS_ORDER = [GameStatus.WAITING, GameStatus.PLAYING, GameStatus.FINISHED]


class TrickCard(BaseModel):
    """One card contributed to the current trick."""

    player_id: str
    card: Card


class GameState(BaseModel):
    """Canonical record of one game in progress."""

    id: str
    players: list[Player] = Field(default_factory=list)
    deck: list[Card] = Field(default_factory=list)

    # Current trick, in play order
    current_trick: list[TrickCard] = Field(default_factory=list)
    lead_suit: Suit | None = None

    # None while a completed trick is on display
    current_player_id: str | None = None
    turn_order: list[str] = Field(default_factory=list)

    round: int = 1
    trick_number: int = 1
    status: GameStatus = GameStatus.WAITING
    host_id: str = ""
    max_players: Literal[2, 3, 4] = 4

    def get_player(self, player_id: str | None) -> Player | None:
        """Find a seated player by durable id."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def player_ids(self) -> list[str]:
        return [p.id for p in self.players]

    def has_played(self, player_id: str) -> bool:
        """Check if the player already has a card in the current trick."""
        return any(tc.player_id == player_id for tc in self.current_trick)

    def trick_complete(self) -> bool:
        """Check if every seated player has played to the current trick."""
        if not self.current_trick:
            return False
        return all(self.has_played(pid) for pid in self.player_ids())

    def set_status(self, status: GameStatus) -> None:
        """Move the status forward.

        Raises:
            ValueError: If the transition would go backward.
        """
        if _STATUS_ORDER.index(status) < _STATUS_ORDER.index(self.status):
            raise ValueError(f"Cannot move game status from {self.status.value} to {status.value}")
        self.status = status

    @property
    def is_finished(self) -> bool:
        return self.status == GameStatus.FINISHED

    def __str__(self) -> str:
        parts = [f"Game {self.id}, Trick {self.trick_number}"]
        if self.lead_suit:
            parts.append(f"[lead {self.lead_suit.value}]")
        if self.current_player_id:
            parts.append(f"{self.current_player_id}'s turn")
        else:
            parts.append("resolving")
        return " ".join(parts)
