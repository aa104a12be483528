"""Participant and player models."""

from enum import Enum

from pydantic import BaseModel, Field

from .card import Card, Suit

# Voice slot ids are handed out from this base in seat order
VOICE_UID_BASE = 1000


class PresenceStatus(str, Enum):
    """Connection status of a participant."""

    ONLINE = "online"
    OFFLINE = "offline"


class Participant(BaseModel):
    """A person in a room.

    `id` is durable across reconnects; `session_id` is the transport
    session and changes every time the participant reconnects.
    """

    id: str
    session_id: str
    name: str = "Player"
    is_host: bool = False
    status: PresenceStatus = PresenceStatus.ONLINE

    @property
    def is_online(self) -> bool:
        return self.status == PresenceStatus.ONLINE

    def __str__(self) -> str:
        host = " (host)" if self.is_host else ""
        return f"{self.name}[{self.id[:8]}]{host}"


class Player(Participant):
    """A participant seated in a game."""

    hand: list[Card] = Field(default_factory=list)
    tricks_won: int = 0
    voice_uid: int = VOICE_UID_BASE  # Opaque to the engine, passed through

    def holds(self, card: Card) -> bool:
        """Check if the card is in this player's hand."""
        return card in self.hand

    def holds_suit(self, suit: Suit) -> bool:
        """Check if the hand has at least one card of the suit."""
        return any(c.suit == suit for c in self.hand)

    def remove_card(self, card: Card) -> None:
        """Take a card out of the hand."""
        self.hand = [c for c in self.hand if c != card]

    def __repr__(self) -> str:
        return (
            f"Player(id={self.id!r}, name={self.name!r}, "
            f"cards={len(self.hand)}, tricks={self.tricks_won})"
        )
