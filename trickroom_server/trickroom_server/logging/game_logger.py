"""Game logger for detailed game replay."""

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, TextIO

from pydantic import BaseModel

from trickroom_server.models.card import Card
from trickroom_server.models.game_state import GameState, TrickCard

from .formatters import format_card, format_hands, format_trick


class GameLogConfig(BaseModel):
    """Configuration for game logging."""

    enabled: bool = False
    output_path: str = "game_log.jsonl"


class GameLogger:
    """Logger for detailed game events in JSONL format.

    Each line in the output file is a JSON object representing one event.
    This allows step-by-step replay of a game. Games run concurrently, so
    every record carries its game id and writes are serialized.
    """

    def __init__(self, config: GameLogConfig | None = None):
        """Initialize game logger.

        Args:
            config: Logging configuration. If None, logging is disabled.
        """
        self.config = config or GameLogConfig()
        self._file: TextIO | None = None
        self._lock = threading.Lock()

    def __enter__(self) -> "GameLogger":
        """Context manager entry."""
        if self.config.enabled and self.config.output_path:
            path = Path(self.config.output_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(path, "a", encoding="utf-8")
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the log file."""
        with self._lock:
            if self._file:
                self._file.close()
                self._file = None

    def _write(self, event: dict[str, Any]) -> None:
        """Write an event to the log file.

        Args:
            event: Event dictionary to write as JSON.
        """
        with self._lock:
            if self._file:
                self._file.write(json.dumps(event, ensure_ascii=False) + "\n")
                self._file.flush()

    def log_game_start(self, state: GameState) -> None:
        """Log game start with the dealt hands.

        Args:
            state: Freshly set up game state.
        """
        self._write({
            "type": "game_start",
            "timestamp": datetime.now().isoformat(),
            "game": state.id,
            "players": [
                {"id": p.id, "name": p.name, "voice_uid": p.voice_uid}
                for p in state.players
            ],
            "hands": format_hands(state.players),
            "turn_order": state.turn_order,
            "first_player": state.current_player_id,
        })

    def log_play(
        self,
        game_id: str,
        trick_num: int,
        player_id: str,
        card: Card,
        autoplay: bool = False,
    ) -> None:
        """Log a single card play.

        Args:
            game_id: Game id.
            trick_num: Trick number within the game.
            player_id: Player who played.
            card: Card played.
            autoplay: True if the card was chosen on a timeout.
        """
        self._write({
            "type": "play",
            "game": game_id,
            "trick": trick_num,
            "player": player_id,
            "card": format_card(card),
            "autoplay": autoplay,
        })

    def log_trick(
        self,
        game_id: str,
        trick_num: int,
        winner_id: str,
        trick: list[TrickCard],
    ) -> None:
        """Log a resolved trick.

        Args:
            game_id: Game id.
            trick_num: Number of the trick that was resolved.
            winner_id: Winning player.
            trick: Cards in play order.
        """
        self._write({
            "type": "trick",
            "game": game_id,
            "trick": trick_num,
            "winner": winner_id,
            "cards": format_trick(trick),
        })

    def log_player_removed(self, game_id: str, player_id: str, remaining: int) -> None:
        """Log a player pruned from a game after disconnecting."""
        self._write({
            "type": "player_removed",
            "game": game_id,
            "player": player_id,
            "remaining": remaining,
        })

    def log_game_end(self, game_id: str, results: list[dict[str, Any]]) -> None:
        """Log game end with results.

        Args:
            game_id: Game id.
            results: Per-player trick counts (empty if the game was abandoned).
        """
        self._write({
            "type": "game_end",
            "timestamp": datetime.now().isoformat(),
            "game": game_id,
            "results": results,
        })
