"""Per-recipient views of game state."""

from trickroom_server.models.card import PLACEHOLDER_CARD
from trickroom_server.models.game_state import GameState


def sanitize_state_for_player(state: GameState, target_player_id: str) -> GameState:
    """Build the view of the game one player is allowed to see.

    Other players' hands are replaced by placeholder cards of the same
    length, so card counts stay visible. The target's own hand is kept.
    Cards in the current trick are face up and are left as they are.

    Args:
        state: Canonical game state (not modified)
        target_player_id: Recipient's durable id

    Returns:
        Independent copy safe to send to the recipient
    """
    view = state.model_copy(deep=True)
    for player in view.players:
        if player.id != target_player_id:
            player.hand = [PLACEHOLDER_CARD] * len(player.hand)
    return view
