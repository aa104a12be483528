"""Game engine: the runtime context behind every request.

The engine owns the session registry (a game is inserted when its host
starts it and removed when it finishes or is abandoned), the membership
service and the reconnection grace timers. It turns inbound requests into
calls on the right GameSession and reports rejections to the requester.
No exception escapes a public method; each returns a RequestResult.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from trickroom_server.config import Config
from trickroom_server.errors import RejectReason, RoomError
from trickroom_server.lobby import RoomManager
from trickroom_server.models.card import Card
from trickroom_server.models.game_state import GameState, TrickCard
from trickroom_server.models.player import PresenceStatus
from trickroom_server.network import protocol
from trickroom_server.network.transport import Transport
from trickroom_server.voice import CredentialError, CredentialIssuer, SignedTokenIssuer

from .session import GameSession
from .setup_game import setup_new_game
from .timers import Scheduler, ThreadingScheduler, cancel_timer

if TYPE_CHECKING:
    from trickroom_server.logging import GameLogger

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2


@dataclass
class RequestResult:
    """Outcome of an inbound request."""

    ok: bool
    reason: RejectReason | None = None
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, **data: Any) -> "RequestResult":
        return cls(ok=True, data=data)


def game_id_for_room(room_id: str) -> str:
    return f"game-{room_id}"


class GameEngine:
    """Routes requests to rooms and game sessions."""

    def __init__(
        self,
        transport: Transport,
        config: Config | None = None,
        scheduler: Scheduler | None = None,
        rooms: RoomManager | None = None,
        credential_issuer: CredentialIssuer | None = None,
        game_logger: GameLogger | None = None,
        rng: random.Random | None = None,
    ):
        """Initialize game engine.

        Args:
            transport: Event delivery to participants
            config: Configuration (uses defaults if not provided)
            scheduler: Timer factory (threading timers if not provided)
            rooms: Membership service (a new one if not provided)
            credential_issuer: Voice credential issuer (built from config if not provided)
            game_logger: GameLogger instance for detailed logging
            rng: Random source for shuffles and autoplay tie-breaks
        """
        self.transport = transport
        self.config = config or Config()
        self.scheduler = scheduler or ThreadingScheduler()
        self.rooms = rooms or RoomManager()
        self.credential_issuer = credential_issuer or SignedTokenIssuer(
            self.config.voice.app_id,
            self.config.voice.app_certificate,
            self.config.voice.token_ttl,
        )
        self.game_logger = game_logger
        self.rng = rng

        self._sessions: dict[str, GameSession] = {}
        self._sessions_lock = threading.Lock()

        self._on_game_start: Callable[[GameState], None] | None = None
        self._on_trick_won: Callable[[str, str, list[TrickCard]], None] | None = None
        self._on_game_end: Callable[[str, list[dict[str, Any]]], None] | None = None

    def set_callbacks(
        self,
        on_game_start: Callable[[GameState], None] | None = None,
        on_trick_won: Callable[[str, str, list[TrickCard]], None] | None = None,
        on_game_end: Callable[[str, list[dict[str, Any]]], None] | None = None,
    ) -> None:
        """Set event callbacks.

        Args:
            on_game_start: Called with the dealt state when a game starts
            on_trick_won: Called after each trick (game_id, winner_id, trick)
            on_game_end: Called when a game ends (game_id, results)
        """
        self._on_game_start = on_game_start
        self._on_trick_won = on_trick_won
        self._on_game_end = on_game_end

    # Session registry ---------------------------------------------------------

    def get_session(self, game_id: str | None) -> GameSession | None:
        if game_id is None:
            return None
        with self._sessions_lock:
            return self._sessions.get(game_id)

    @property
    def active_games(self) -> list[str]:
        with self._sessions_lock:
            return list(self._sessions)

    def _register(self, session: GameSession) -> bool:
        """Add a session unless one with its id is already running."""
        with self._sessions_lock:
            if session.game_id in self._sessions:
                return False
            self._sessions[session.game_id] = session
            return True

    def _unregister(self, game_id: str) -> None:
        with self._sessions_lock:
            self._sessions.pop(game_id, None)

    # Request dispatch ---------------------------------------------------------

    def handle(self, request: protocol.Request, session_id: str) -> RequestResult:
        """Dispatch a decoded request from a transport session."""
        try:
            if isinstance(request, protocol.CreateRoomRequest):
                return self.create_room(session_id, request.user_name, request.max_players)
            if isinstance(request, protocol.JoinRoomRequest):
                return self.join_room(session_id, request.room_id, request.user_name)
            if isinstance(request, protocol.ReconnectRequest):
                return self.reconnect(session_id, request.user_id, request.room_id)
            if isinstance(request, protocol.StartGameRequest):
                return self.start_game(session_id, request.room_id, request.player_id)
            if isinstance(request, protocol.PlayCardRequest):
                return self.play_card(session_id, request.game_id, request.player_id, request.card)
            if isinstance(request, protocol.VoiceTokenRequest):
                return self.issue_voice_token(session_id, request.channel_name, request.uid)
        except Exception:
            logger.exception(f"Request {request.event} from {session_id} failed")
            return self._reject(session_id, protocol.GAME_ERROR, RejectReason.INTERNAL_ERROR, "Internal server error.")

        return self._reject(session_id, protocol.GAME_ERROR, RejectReason.INVALID_REQUEST, "Unknown request.")

    def create_room(self, session_id: str, user_name: str, max_players: int) -> RequestResult:
        room, host = self.rooms.create_room(user_name, max_players, session_id)
        self.transport.join(session_id, room.id)
        self.transport.send(
            session_id,
            protocol.ROOM_CREATED,
            {"room_id": room.id, "user_id": host.id, "host_id": host.id},
        )
        return RequestResult.success(room_id=room.id, user_id=host.id)

    def join_room(self, session_id: str, room_id: str, user_name: str) -> RequestResult:
        try:
            room, participant = self.rooms.join_room(room_id, user_name, session_id)
        except RoomError as e:
            return self._reject(session_id, protocol.ROOM_ERROR, e.reason, e.message)

        self.transport.join(session_id, room.id)
        self.transport.send(
            session_id,
            protocol.ROOM_JOINED,
            {
                "room_id": room.id,
                "user_id": participant.id,
                "host_id": room.host_id,
                "max_players": room.max_players,
            },
        )
        self.transport.broadcast(room.id, protocol.PLAYER_JOINED, room.players)
        return RequestResult.success(room_id=room.id, user_id=participant.id)

    def start_game(self, session_id: str, room_id: str, player_id: str) -> RequestResult:
        room = self.rooms.get_room(room_id)
        if room is None:
            return self._reject(session_id, protocol.ROOM_ERROR, RejectReason.ROOM_NOT_FOUND, "Room not found.")
        if room.host_id != player_id:
            return self._reject(session_id, protocol.ROOM_ERROR, RejectReason.NOT_HOST, "Only the host can start the game.")
        if len(room.players) < MIN_PLAYERS:
            return self._reject(
                session_id,
                protocol.ROOM_ERROR,
                RejectReason.NOT_ENOUGH_PLAYERS,
                f"At least {MIN_PLAYERS} players are needed to start.",
            )
        if self.get_session(room.game_id) is not None:
            return self._reject(session_id, protocol.ROOM_ERROR, RejectReason.GAME_IN_PROGRESS, "A game is already in progress.")

        game_id = game_id_for_room(room.id)
        state = setup_new_game(list(room.players), game_id, room.max_players, self.rng)
        session = GameSession(
            state,
            room.id,
            self.transport,
            self.scheduler,
            self.config.timing,
            self.game_logger,
            self.rng,
        )
        session.set_callbacks(on_trick_won=self._trick_won, on_finished=self._game_finished)

        if not self._register(session):
            return self._reject(session_id, protocol.ROOM_ERROR, RejectReason.GAME_IN_PROGRESS, "A game is already in progress.")
        self.rooms.set_game(room.id, game_id)

        logger.info(f"Game {game_id} started in room {room.id} with {len(state.players)} players")
        self.transport.broadcast(room.id, protocol.GAME_STARTED, game_id)
        session.start()
        if self._on_game_start:
            self._on_game_start(state)
        return RequestResult.success(game_id=game_id)

    def play_card(self, session_id: str, game_id: str, player_id: str, card: Card) -> RequestResult:
        session = self.get_session(game_id)
        if session is None:
            return self._reject(session_id, protocol.GAME_ERROR, RejectReason.GAME_NOT_FOUND, "Game not found.")

        result = session.play_card(player_id, card)
        if not result.is_valid:
            return self._reject(session_id, protocol.GAME_ERROR, result.reason, result.error_message)
        return RequestResult.success()

    def reconnect(self, session_id: str, user_id: str, room_id: str) -> RequestResult:
        room = self.rooms.get_room(room_id)
        if room is None:
            return self._reject(session_id, protocol.ROOM_ERROR, RejectReason.ROOM_NOT_FOUND, "Room not found.")
        if room.get_participant(user_id) is None:
            return self._reject(session_id, protocol.ROOM_ERROR, RejectReason.PLAYER_NOT_FOUND, "Player not found.")

        try:
            self.rooms.mark_online(room.id, user_id, session_id, require_offline=True)
        except RoomError as e:
            return self._reject(session_id, protocol.ROOM_ERROR, e.reason, e.message)
        cancel_timer(room.reconnect_timers.pop(user_id, None))
        self.transport.join(session_id, room.id)
        self.transport.broadcast(room.id, protocol.PLAYER_RECONNECTED, {"user_id": user_id})

        session = self.get_session(room.game_id)
        if session is not None:
            session.player_reconnected(user_id, session_id)

        logger.info(f"{user_id} reconnected to room {room.id}")
        return RequestResult.success(room_id=room.id)

    def disconnect(self, session_id: str) -> RequestResult:
        """Handle a transport session going away."""
        found = self.rooms.find_by_session(session_id)
        if found is None:
            return RequestResult.success()

        room, participant = found
        if participant.status == PresenceStatus.OFFLINE:
            return RequestResult.success()

        self.rooms.mark_offline(room.id, participant.id)
        self.transport.broadcast(room.id, protocol.PLAYER_DISCONNECTED, {"user_id": participant.id})
        logger.info(f"{participant} disconnected from room {room.id}")

        session = self.get_session(room.game_id)
        if session is not None:
            session.player_disconnected(participant.id)

        room_id, user_id = room.id, participant.id
        cancel_timer(room.reconnect_timers.pop(user_id, None))
        room.reconnect_timers[user_id] = self.scheduler.call_later(
            self.config.timing.reconnection_timeout,
            lambda: self._reconnection_expired(room_id, user_id),
        )
        return RequestResult.success()

    def issue_voice_token(self, session_id: str, channel_name: str, uid: int) -> RequestResult:
        try:
            token = self.credential_issuer.issue(channel_name, uid)
        except CredentialError as e:
            return self._reject(session_id, protocol.GAME_ERROR, RejectReason.INVALID_REQUEST, str(e))

        self.transport.send(session_id, protocol.VOICE_TOKEN, {"token": token})
        return RequestResult.success(token=token)

    def shutdown(self) -> None:
        """Cancel every timer (server is stopping)."""
        with self._sessions_lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            session.stop()
        for room in self.rooms.rooms():
            for handle in list(room.reconnect_timers.values()):
                cancel_timer(handle)
            room.reconnect_timers.clear()

    # Timer and session callbacks ------------------------------------------------

    def _reconnection_expired(self, room_id: str, user_id: str) -> None:
        room = self.rooms.get_room(room_id)
        participant = room.get_participant(user_id) if room else None
        if room is None or participant is None or participant.is_online:
            return

        game_id = room.game_id
        try:
            room_after, new_host_id = self.rooms.remove_participant(room_id, user_id, require_offline=True)
        except RoomError as e:
            logger.debug(f"Keeping {user_id} in room {room_id}: {e}")
            return
        logger.info(f"Removed {participant} from room {room_id} permanently")

        session = self.get_session(game_id)
        if session is not None:
            session.remove_player(user_id)

        if room_after is not None:
            self.transport.broadcast(
                room_id,
                protocol.PLAYER_LEFT,
                {"players": room_after.players, "host_id": room_after.host_id, "host_changed": new_host_id is not None},
            )

    def _trick_won(self, game_id: str, winner_id: str, trick: list[TrickCard]) -> None:
        if self._on_trick_won:
            self._on_trick_won(game_id, winner_id, trick)

    def _game_finished(self, session: GameSession, results: list[dict[str, Any]]) -> None:
        self._unregister(session.game_id)
        self.rooms.set_game(session.room_id, None)
        if self._on_game_end:
            self._on_game_end(session.game_id, results)

    def _reject(
        self,
        session_id: str,
        event: str,
        reason: RejectReason | None,
        message: str,
    ) -> RequestResult:
        """Report a rejection to the requester only."""
        logger.debug(f"Rejected request from {session_id}: {message}")
        self.transport.send(session_id, event, message)
        return RequestResult(ok=False, reason=reason, message=message)
