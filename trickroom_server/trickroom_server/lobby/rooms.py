"""Room membership: who is in which room and who hosts it."""

import logging
import random
import string
import threading
import uuid

from trickroom_server.errors import RejectReason, RoomError
from trickroom_server.models.player import Participant, PresenceStatus
from trickroom_server.models.room import Room

logger = logging.getLogger(__name__)

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


class RoomManager:
    """Thread-safe registry of rooms and their participants."""

    def __init__(self):
        self._rooms: dict[str, Room] = {}
        self._lock = threading.Lock()

    def create_room(self, user_name: str, max_players: int, session_id: str) -> tuple[Room, Participant]:
        """Create a room hosted by a new participant.

        Args:
            user_name: Display name of the host
            max_players: Room capacity (2-4)
            session_id: Host's transport session

        Returns:
            Tuple of (room, host participant)
        """
        host = Participant(
            id=str(uuid.uuid4()),
            session_id=session_id,
            name=user_name.strip() or "Player",
            is_host=True,
        )
        with self._lock:
            room_id = self._generate_room_code()
            room = Room(id=room_id, players=[host], host_id=host.id, max_players=max_players)
            self._rooms[room_id] = room

        logger.info(f"Room {room_id} created by {host} (max {max_players})")
        return room, host

    def join_room(self, room_id: str, user_name: str, session_id: str) -> tuple[Room, Participant]:
        """Add a new participant to a room.

        Raises:
            RoomError: If the room does not exist or is full
        """
        with self._lock:
            room = self._rooms.get(room_id.upper())
            if room is None:
                raise RoomError(RejectReason.ROOM_NOT_FOUND, "Room not found.")
            if room.is_full():
                raise RoomError(RejectReason.ROOM_FULL, "Room is full.")

            participant = Participant(
                id=str(uuid.uuid4()),
                session_id=session_id,
                name=user_name.strip() or "Player",
            )
            room.players.append(participant)

        logger.info(f"{participant} joined {room}")
        return room, participant

    def get_room(self, room_id: str) -> Room | None:
        with self._lock:
            return self._rooms.get(room_id.upper())

    def rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def find_by_session(self, session_id: str) -> tuple[Room, Participant] | None:
        """Find the room and participant bound to a transport session."""
        with self._lock:
            for room in self._rooms.values():
                for participant in room.players:
                    if participant.session_id == session_id:
                        return room, participant
        return None

    def mark_offline(self, room_id: str, user_id: str) -> Participant | None:
        with self._lock:
            room = self._rooms.get(room_id)
            participant = room.get_participant(user_id) if room else None
            if participant is not None:
                participant.status = PresenceStatus.OFFLINE
            return participant

    def mark_online(
        self, room_id: str, user_id: str, session_id: str, require_offline: bool = False
    ) -> Participant | None:
        """Mark a participant online and bind their new session.

        Raises:
            RoomError: If require_offline is set and the participant is
                still connected
        """
        with self._lock:
            room = self._rooms.get(room_id)
            participant = room.get_participant(user_id) if room else None
            if participant is not None:
                if require_offline and participant.is_online:
                    raise RoomError(RejectReason.PLAYER_ONLINE, "Player is already connected.")
                participant.status = PresenceStatus.ONLINE
                participant.session_id = session_id
            return participant

    def set_game(self, room_id: str, game_id: str | None) -> None:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is not None:
                room.game_id = game_id

    def remove_participant(
        self, room_id: str, user_id: str, require_offline: bool = False
    ) -> tuple[Room | None, str | None]:
        """Remove a participant for good.

        The host role passes to the first remaining participant. A room
        left empty is deleted.

        Returns:
            Tuple of (room or None if deleted/missing, new host id if it changed)

        Raises:
            RoomError: If require_offline is set and the participant is
                missing or back online
        """
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return None, None

            if require_offline:
                participant = room.get_participant(user_id)
                if participant is None:
                    raise RoomError(RejectReason.PLAYER_NOT_FOUND, "Player not found.")
                if participant.is_online:
                    raise RoomError(RejectReason.PLAYER_ONLINE, "Player is back online.")

            room.players = [p for p in room.players if p.id != user_id]
            room.reconnect_timers.pop(user_id, None)

            if not room.players:
                del self._rooms[room_id]
                logger.info(f"Room {room_id} is empty and was removed")
                return None, None

            new_host_id = None
            if room.host_id == user_id:
                room.host_id = room.players[0].id
                room.players[0].is_host = True
                new_host_id = room.host_id
                logger.info(f"Room {room_id}: host passed to {room.players[0]}")

            return room, new_host_id

    def _generate_room_code(self) -> str:
        while True:
            code = "".join(random.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))
            if code not in self._rooms:
                return code
