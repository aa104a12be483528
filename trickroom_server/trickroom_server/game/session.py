"""A single game in progress: turn flow, timers and broadcasts.

All mutation of one game goes through a GameSession, and every entry
point (requests and timer callbacks alike) runs under the session lock,
so a timed-out autoplay can never interleave with a human play.

States:
    awaiting play (current_player_id set, turn timer armed)
      -> awaiting play (next player) when a trick is still open
      -> resolving (current_player_id None, trick timer armed) when the
         last card of a trick lands
    resolving -> awaiting play (winner) or finished
"""

from __future__ import annotations

import logging
import random
import threading
from typing import TYPE_CHECKING, Any, Callable

from trickroom_server.config import TimingConfig
from trickroom_server.errors import RejectReason, StructuralViolation
from trickroom_server.models.card import Card
from trickroom_server.models.game_state import GameState, GameStatus, TrickCard
from trickroom_server.models.player import PresenceStatus
from trickroom_server.network import protocol
from trickroom_server.network.transport import Transport

from .autoplay import choose_autoplay_card
from .resolver import determine_trick_winner, next_player_id, process_trick_win
from .sanitizer import sanitize_state_for_player
from .timers import Scheduler, TimerHandle, cancel_timer
from .validator import ValidationResult, is_move_valid

if TYPE_CHECKING:
    from trickroom_server.logging import GameLogger

logger = logging.getLogger(__name__)


class GameSession:
    """Owns one GameState and everything that changes it."""

    def __init__(
        self,
        state: GameState,
        room_id: str,
        transport: Transport,
        scheduler: Scheduler,
        timing: TimingConfig | None = None,
        game_logger: GameLogger | None = None,
        rng: random.Random | None = None,
    ):
        """Initialize session.

        Args:
            state: Freshly set up game state
            room_id: Room whose sessions receive public events
            transport: Event delivery
            scheduler: Timer factory
            timing: Timeouts (defaults if not provided)
            game_logger: GameLogger instance for detailed logging
            rng: Random source for autoplay tie-breaks
        """
        self.state = state
        self.room_id = room_id
        self.transport = transport
        self.scheduler = scheduler
        self.timing = timing or TimingConfig()
        self.game_logger = game_logger
        self.rng = rng

        self._lock = threading.RLock()
        self._turn_timer: TimerHandle | None = None
        self._trick_timer: TimerHandle | None = None

        self._on_trick_won: Callable[[str, str, list[TrickCard]], None] | None = None
        self._on_finished: Callable[[GameSession, list[dict[str, Any]]], None] | None = None

    @property
    def game_id(self) -> str:
        return self.state.id

    @property
    def is_finished(self) -> bool:
        return self.state.is_finished

    def set_callbacks(
        self,
        on_trick_won: Callable[[str, str, list[TrickCard]], None] | None = None,
        on_finished: Callable[[GameSession, list[dict[str, Any]]], None] | None = None,
    ) -> None:
        """Set event callbacks.

        Args:
            on_trick_won: Called after a trick resolves (game_id, winner_id, trick)
            on_finished: Called once when the game ends (session, results)
        """
        self._on_trick_won = on_trick_won
        self._on_finished = on_finished

    # Public entry points ------------------------------------------------

    def start(self) -> None:
        """Send every player their first view and start the first turn."""
        with self._lock:
            if self.game_logger:
                self.game_logger.log_game_start(self.state)
            self._broadcast_state()
            if self.state.current_player_id is not None:
                self._arm_turn_timer(self.state.current_player_id)

    def play_card(self, player_id: str, card: Card, autoplay: bool = False) -> ValidationResult:
        """Play a card for a player.

        Args:
            player_id: Durable id of the acting player
            card: Card to play
            autoplay: True when chosen by the timeout heuristic

        Returns:
            ValidationResult; on rejection nothing changed
        """
        with self._lock:
            if self.state.status != GameStatus.PLAYING:
                return ValidationResult.reject(RejectReason.GAME_NOT_FOUND, "Game is not in progress.")

            validation = is_move_valid(self.state, player_id, card)
            if not validation.is_valid:
                logger.debug(f"Rejected {card} from {player_id}: {validation.error_message}")
                return validation

            self._apply_play(player_id, card, autoplay)
            return validation

    def send_state_to(self, player_id: str) -> None:
        """Push one player a fresh sanitized view."""
        with self._lock:
            player = self.state.get_player(player_id)
            if player is not None:
                self._send_state(player_id, player.session_id)

    def player_disconnected(self, player_id: str) -> None:
        """Mark a player offline and move the turn on if it was theirs."""
        with self._lock:
            player = self.state.get_player(player_id)
            if player is None or self.is_finished:
                return

            player.status = PresenceStatus.OFFLINE

            if self.state.current_player_id != player_id:
                return

            cancel_timer(self._turn_timer)
            self._turn_timer = None

            next_id = self._next_eligible()
            if next_id is not None and next_id != player_id:
                logger.info(f"Game {self.game_id}: {player.name} disconnected on turn, advancing to {next_id}")
                self._set_turn(next_id)
            else:
                logger.info(f"Game {self.game_id}: waiting on offline player {player.name}")

    def player_reconnected(self, player_id: str, session_id: str) -> None:
        """Rebind a player's session and send them the current view."""
        with self._lock:
            player = self.state.get_player(player_id)
            if player is None:
                return

            player.status = PresenceStatus.ONLINE
            player.session_id = session_id
            self._send_state(player_id, session_id)

            # A parked turn resumes with a fresh timer
            if (
                not self.is_finished
                and self.state.current_player_id == player_id
                and (self._turn_timer is None or not self._turn_timer.active)
            ):
                self._arm_turn_timer(player_id)

    def remove_player(self, player_id: str) -> None:
        """Permanently remove a player from the game.

        Their hand and any card they put on the open trick leave the game
        with them. Below two players the game ends without a result.
        """
        with self._lock:
            state = self.state
            player = state.get_player(player_id)
            if player is None or self.is_finished:
                return

            was_current = state.current_player_id == player_id
            successor = next_player_id(state, player_id)

            if was_current:
                cancel_timer(self._turn_timer)
                self._turn_timer = None

            state.players = [p for p in state.players if p.id != player_id]
            state.turn_order = [pid for pid in state.turn_order if pid != player_id]
            state.current_trick = [tc for tc in state.current_trick if tc.player_id != player_id]
            state.lead_suit = state.current_trick[0].card.suit if state.current_trick else None

            if state.host_id == player_id and state.players:
                state.host_id = state.players[0].id
                state.players[0].is_host = True

            logger.info(f"Game {self.game_id}: removed {player.name}, {len(state.players)} players left")
            if self.game_logger:
                self.game_logger.log_player_removed(self.game_id, player_id, len(state.players))

            if len(state.players) < 2:
                self._finish([])
                return

            if state.current_player_id is None:
                # Trick resolution is already scheduled
                self._broadcast_state()
            elif was_current:
                if state.trick_complete():
                    self._begin_resolution()
                else:
                    self._set_turn(self._eligible_from(successor))
            else:
                self._broadcast_state()

    def stop(self) -> None:
        """Cancel all timers without ending the game (server shutdown)."""
        with self._lock:
            self._cancel_timers()

    # Turn flow ------------------------------------------------------------

    def _apply_play(self, player_id: str, card: Card, autoplay: bool) -> None:
        state = self.state
        player = state.get_player(player_id)
        assert player is not None

        cancel_timer(self._turn_timer)
        self._turn_timer = None

        player.remove_card(card)
        state.current_trick.append(TrickCard(player_id=player_id, card=card))
        if state.lead_suit is None:
            state.lead_suit = card.suit

        source = "autoplay" if autoplay else "player"
        logger.debug(f"Game {self.game_id}: {player.name} played {card} ({source})")
        if self.game_logger:
            self.game_logger.log_play(self.game_id, state.trick_number, player_id, card, autoplay)

        if state.trick_complete():
            self._begin_resolution()
        else:
            next_id = self._next_eligible()
            if next_id is None:
                raise StructuralViolation(f"Game {self.game_id}: open trick with nobody left to play")
            self._set_turn(next_id)

    def _begin_resolution(self) -> None:
        """Show the completed trick, then resolve it after a short delay."""
        self.state.current_player_id = None
        self._broadcast_state()
        cancel_timer(self._trick_timer)
        self._trick_timer = self.scheduler.call_later(self.timing.trick_end_delay, self._on_trick_timer)

    def _on_trick_timer(self) -> None:
        with self._lock:
            self._trick_timer = None
            if self.is_finished or not self.state.trick_complete():
                return
            try:
                self._resolve_trick()
            except StructuralViolation:
                logger.exception(f"Game {self.game_id}: trick could not be resolved, ending game")
                self._finish([])

    def _resolve_trick(self) -> None:
        state = self.state
        if state.lead_suit is None:
            raise StructuralViolation(f"Game {self.game_id}: completed trick without a lead suit")

        trick = list(state.current_trick)
        trick_number = state.trick_number
        winner_id = determine_trick_winner(trick, state.lead_suit)
        process_trick_win(state, winner_id)

        logger.info(f"Game {self.game_id}: trick {trick_number} won by {winner_id}")
        self.transport.broadcast(
            self.room_id,
            protocol.TRICK_WON,
            {"winner_id": winner_id, "trick": trick},
        )
        if self.game_logger:
            self.game_logger.log_trick(self.game_id, trick_number, winner_id, trick)
        if self._on_trick_won:
            self._on_trick_won(self.game_id, winner_id, trick)

        if state.is_finished:
            self._finish(self._results())
        else:
            # An offline winner's lead passes on like any other offline turn
            self._set_turn(self._eligible_from(winner_id))

    def _set_turn(self, player_id: str) -> None:
        self.state.current_player_id = player_id
        self._broadcast_state()
        self._arm_turn_timer(player_id)

    def _arm_turn_timer(self, player_id: str) -> None:
        cancel_timer(self._turn_timer)
        self._turn_timer = self.scheduler.call_later(
            self.timing.turn_timeout,
            lambda: self._on_turn_timeout(player_id),
        )

    def _on_turn_timeout(self, player_id: str) -> None:
        with self._lock:
            # The player may have played just before the timer fired
            if self.is_finished or self.state.current_player_id != player_id:
                return

            player = self.state.get_player(player_id)
            if player is None or not player.hand:
                return

            if not player.is_online:
                next_id = self._next_eligible()
                next_player = self.state.get_player(next_id)
                if next_player is not None and next_player.is_online:
                    logger.info(f"Game {self.game_id}: {player.name} is offline, advancing to {next_id}")
                    self._set_turn(next_id)
                else:
                    logger.info(f"Game {self.game_id}: {player.name} timed out while offline, turn parked")
                return

            card = choose_autoplay_card(player.hand, self.state.current_trick, self.state.lead_suit, self.rng)
            logger.info(f"[AutoPlay] Game {self.game_id}: playing {card} for {player.name}")

            result = self.play_card(player_id, card, autoplay=True)
            if not result.is_valid:
                logger.error(f"Game {self.game_id}: autoplay chose an illegal card: {result.error_message}")

    def _next_eligible(self) -> str | None:
        current = self.state.current_player_id
        if current is None or current not in self.state.turn_order:
            return self._eligible_from(self.state.turn_order[0])
        return self._eligible_from(next_player_id(self.state, current))

    def _eligible_from(self, start_id: str) -> str | None:
        """First player from start_id onward who still owes a card this trick.

        Online players are preferred; an offline player is only chosen
        when nobody else is left to play.
        """
        order = self.state.turn_order
        if start_id not in order:
            start_id = order[0]
        index = order.index(start_id)
        rotated = order[index:] + order[:index]

        pending = [pid for pid in rotated if not self.state.has_played(pid)]
        for pid in pending:
            player = self.state.get_player(pid)
            if player is not None and player.is_online:
                return pid
        return pending[0] if pending else None

    # End of game ------------------------------------------------------------

    def _results(self) -> list[dict[str, Any]]:
        return [
            {"id": p.id, "name": p.name, "tricks_won": p.tricks_won}
            for p in self.state.players
        ]

    def _finish(self, results: list[dict[str, Any]]) -> None:
        self._cancel_timers()
        if not self.is_finished:
            self.state.set_status(GameStatus.FINISHED)

        logger.info(f"Game {self.game_id} over: {results or 'abandoned'}")
        self.transport.broadcast(self.room_id, protocol.GAME_OVER, results)
        if self.game_logger:
            self.game_logger.log_game_end(self.game_id, results)
        if self._on_finished:
            self._on_finished(self, results)

    def _cancel_timers(self) -> None:
        cancel_timer(self._turn_timer)
        cancel_timer(self._trick_timer)
        self._turn_timer = None
        self._trick_timer = None

    # Broadcasting -------------------------------------------------------------

    def _send_state(self, player_id: str, session_id: str) -> None:
        view = sanitize_state_for_player(self.state, player_id)
        self.transport.send(session_id, protocol.GAME_STATE_UPDATED, view)

    def _broadcast_state(self) -> None:
        """Send each player their own sanitized view."""
        for player in self.state.players:
            self._send_state(player.id, player.session_id)
