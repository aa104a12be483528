"""Game logic."""

from .autoplay import choose_autoplay_card
from .deck import create_deck, deal_cards
from .engine import GameEngine, RequestResult
from .resolver import determine_trick_winner, next_player_id, process_trick_win
from .sanitizer import sanitize_state_for_player
from .session import GameSession
from .setup_game import setup_new_game
from .timers import Scheduler, ThreadingScheduler, TimerHandle
from .validator import ValidationResult, is_move_valid

__all__ = [
    "GameEngine",
    "GameSession",
    "RequestResult",
    "Scheduler",
    "ThreadingScheduler",
    "TimerHandle",
    "ValidationResult",
    "choose_autoplay_card",
    "create_deck",
    "deal_cards",
    "determine_trick_winner",
    "is_move_valid",
    "next_player_id",
    "process_trick_win",
    "sanitize_state_for_player",
    "setup_new_game",
]
