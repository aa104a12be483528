"""Logging utilities and game event display."""

import logging
import sys
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from trickroom_server.models.game_state import GameState, TrickCard


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )


class GameDisplay:
    """Display game events to stdout."""

    def __init__(self, show_hands: bool = False):
        """Initialize display.

        Args:
            show_hands: Whether to show player hands
        """
        self.show_hands = show_hands

    def print_separator(self) -> None:
        """Print a separator line."""
        print("=" * 60)

    def print_trick_won(
        self,
        game_id: str,
        winner_id: str,
        trick: list["TrickCard"],
    ) -> None:
        """Print a resolved trick."""
        plays = " ".join(f"{tc.player_id[:8]}:{tc.card}" for tc in trick)
        print(f"[{game_id}] Trick won by {winner_id[:8]}  ({plays})")

    def print_hands(self, state: "GameState") -> None:
        """Print hands for all players (if show_hands is enabled)."""
        if not self.show_hands:
            return

        print(f"\n[{state.id}] Hands:")
        for player in state.players:
            cards = " ".join(str(c) for c in player.hand)
            print(f"  {player.name}: {cards or '[EMPTY]'}")

    def print_game_end(self, game_id: str, results: list[dict[str, Any]]) -> None:
        """Print game end results."""
        self.print_separator()
        if not results:
            print(f"Game {game_id} ended without a result (not enough players)")
            self.print_separator()
            return

        print(f"Game {game_id} finished!")
        ranked = sorted(results, key=lambda r: r["tricks_won"], reverse=True)
        for rank, entry in enumerate(ranked, 1):
            print(f"  #{rank}: {entry['name']} - {entry['tricks_won']} tricks")
        self.print_separator()
