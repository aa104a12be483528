"""Trick resolution and turn rotation."""

import logging

from trickroom_server.errors import StructuralViolation
from trickroom_server.models.card import Suit
from trickroom_server.models.game_state import GameState, GameStatus, TrickCard

logger = logging.getLogger(__name__)


def determine_trick_winner(trick: list[TrickCard], lead_suit: Suit) -> str:
    """Find the winner of a completed trick.

    Only cards of the lead suit can win; there is no trump.

    Args:
        trick: Cards played to the trick
        lead_suit: Suit of the first card

    Returns:
        Durable id of the winning player

    Raises:
        StructuralViolation: If no card of the lead suit was played
    """
    winning: TrickCard | None = None
    for trick_card in trick:
        if trick_card.card.suit != lead_suit:
            continue
        if winning is None or trick_card.card.value > winning.card.value:
            winning = trick_card

    if winning is None:
        raise StructuralViolation(f"Trick has no {lead_suit.value} card to win it: {trick}")
    return winning.player_id


def process_trick_win(state: GameState, winner_id: str) -> GameState:
    """Apply a trick win to the state.

    The winner's trick count goes up by one, the trick is cleared and the
    winner leads next. The game is finished once hands are empty; hands are
    dealt evenly so checking the first player is enough.

    Args:
        state: Game state with a completed trick (mutated in place)
        winner_id: Id returned by determine_trick_winner

    Returns:
        The same state object
    """
    winner = state.get_player(winner_id)
    if winner is not None:
        winner.tricks_won += 1

    state.current_trick = []
    state.lead_suit = None
    state.current_player_id = winner_id
    state.trick_number += 1

    if state.players and not state.players[0].hand:
        state.set_status(GameStatus.FINISHED)
        logger.info(f"Game {state.id}: all hands empty, game finished")

    return state


def next_player_id(state: GameState, after: str | None = None) -> str:
    """Get the id following `after` in the turn order.

    Args:
        state: Game state
        after: Player id to start from (defaults to the current player)

    Returns:
        Next player id, wrapping around the turn order
    """
    if not state.turn_order:
        raise StructuralViolation(f"Game {state.id} has an empty turn order")

    after = after if after is not None else state.current_player_id
    if after not in state.turn_order:
        return state.turn_order[0]

    index = state.turn_order.index(after)
    return state.turn_order[(index + 1) % len(state.turn_order)]
