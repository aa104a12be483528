"""Message transport interface used by the game engine."""

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Delivers named events to participants.

    Participants are addressed by their transient session id; rooms fan
    an event out to every session that joined them.
    """

    @abstractmethod
    def send(self, session_id: str, event: str, data: Any = None) -> None:
        """Send an event to one session."""
        pass

    @abstractmethod
    def broadcast(self, room_id: str, event: str, data: Any = None) -> None:
        """Send an event to every session in a room."""
        pass

    @abstractmethod
    def join(self, session_id: str, room_id: str) -> None:
        """Add a session to a room's fan-out."""
        pass


class RecordingTransport(Transport):
    """In-memory transport that records every emission.

    Used by tests and for running the engine without a network.
    """

    def __init__(self):
        self.sent: list[tuple[str, str, Any]] = []
        self.broadcasts: list[tuple[str, str, Any]] = []
        self.rooms: dict[str, set[str]] = {}

    def send(self, session_id: str, event: str, data: Any = None) -> None:
        self.sent.append((session_id, event, data))

    def broadcast(self, room_id: str, event: str, data: Any = None) -> None:
        self.broadcasts.append((room_id, event, data))

    def join(self, session_id: str, room_id: str) -> None:
        self.rooms.setdefault(room_id, set()).add(session_id)

    def sent_to(self, session_id: str, event: str | None = None) -> list[Any]:
        """Payloads sent to a session, optionally filtered by event."""
        return [
            data
            for sid, name, data in self.sent
            if sid == session_id and (event is None or name == event)
        ]

    def broadcast_events(self, room_id: str, event: str | None = None) -> list[Any]:
        """Payloads broadcast to a room, optionally filtered by event."""
        return [
            data
            for rid, name, data in self.broadcasts
            if rid == room_id and (event is None or name == event)
        ]

    def clear(self) -> None:
        self.sent.clear()
        self.broadcasts.clear()
