"""Room model."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .player import Participant


class Room(BaseModel):
    """A lobby of participants that can host one game at a time."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    players: list[Participant] = Field(default_factory=list)
    host_id: str
    game_id: str | None = None
    max_players: Literal[2, 3, 4] = 4

    # Reconnection grace timers by participant id (not part of the wire view)
    reconnect_timers: dict[str, Any] = Field(default_factory=dict, exclude=True)

    def get_participant(self, user_id: str) -> Participant | None:
        for participant in self.players:
            if participant.id == user_id:
                return participant
        return None

    def is_full(self) -> bool:
        return len(self.players) >= self.max_players

    def __str__(self) -> str:
        return f"Room {self.id} ({len(self.players)}/{self.max_players})"
